"""
Domain enumerations.

Member names equal their stored values so the database holds the same
lowercase strings the API exposes.
"""

import enum


class UserTier(str, enum.Enum):
    """
    User classification.

    Tiers select the pricing multiplier. ``admin`` additionally carries the
    administrative capabilities (see ``core.permissions``).
    """
    basic = "basic"
    silver = "silver"
    gold = "gold"
    vip = "vip"
    admin = "admin"


class LedgerTransactionType(str, enum.Enum):
    """Point ledger entry type."""
    charge = "charge"  # top-up, positive
    deduct = "deduct"  # order payment, negative
    refund = "refund"  # refund credit, positive
    admin_adjust = "admin_adjust"  # manual correction, either sign


class OrderStatus(str, enum.Enum):
    """Status shared by orders and order items."""
    received = "received"
    pause = "pause"
    running = "running"
    done = "done"
    cancelled = "cancelled"
    refunded = "refunded"


class CancellationRequestType(str, enum.Enum):
    pause = "pause"
    cancel = "cancel"
    refund = "refund"


class CancellationRequestStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    completed = "completed"


class CancellationAction(str, enum.Enum):
    approve = "approve"
    reject = "reject"


class MessageAuthorRole(str, enum.Enum):
    user = "user"
    admin = "admin"


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"
