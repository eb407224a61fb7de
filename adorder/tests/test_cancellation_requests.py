"""
Cancellation workflow tests.

Owners raise pause / cancel / refund requests; administrators approve,
reject and complete them.
"""

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError

from adorder.app.domain.cancellations.cancellation_service import CancellationService
from adorder.app.domain.wallet.ledger_service import LedgerService
from adorder.app.models.cancellation_request import CancellationRequest
from adorder.app.models.enums import CancellationRequestStatus, OrderStatus
from adorder.app.models.order import OrderItem


async def raise_request(client, headers, item_id, request_type="cancel", reason="Campaign ended early"):
    return await client.post(
        "/v1/cancellation-requests",
        json={"order_item_id": item_id, "request_type": request_type, "reason": reason},
        headers=headers,
    )


async def item_status(session_factory, item_id):
    async with session_factory() as db:
        item = await db.get(OrderItem, item_id)
        return item.status


@pytest.fixture
async def owner(make_user):
    return await make_user("owner@example.com")


@pytest.fixture
async def item_id(owner, make_order_item):
    owner_id, _ = owner
    return await make_order_item(owner_id)


# ============================================================================
# TEST 1: Raising requests
# ============================================================================

@pytest.mark.asyncio
async def test_create_request(client, owner, item_id):
    owner_id, headers = owner

    response = await raise_request(client, headers, item_id, "pause")

    assert response.status_code == 201
    data = response.json()
    assert data["order_item_id"] == item_id
    assert data["user_id"] == owner_id
    assert data["request_type"] == "pause"
    assert data["status"] == "pending"


@pytest.mark.asyncio
async def test_second_pending_request_conflicts(client, owner, item_id):
    _, headers = owner
    await raise_request(client, headers, item_id)

    response = await raise_request(client, headers, item_id, "refund")

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "ERR_CONFLICT"
    assert body["details"]["reason"] == "AlreadyPending"


@pytest.mark.asyncio
async def test_pending_index_rejects_concurrent_request(client, owner, item_id, session_factory, mocker):
    """Two requests that both pass the pre-check: the unique index decides."""
    _, headers = owner
    await raise_request(client, headers, item_id)
    mocker.patch.object(CancellationService, "_has_pending_request", return_value=False)

    response = await raise_request(client, headers, item_id, "refund")

    assert response.status_code == 400
    assert response.json()["details"]["reason"] == "AlreadyPending"
    async with session_factory() as db:
        result = await db.execute(
            select(func.count())
            .select_from(CancellationRequest)
            .where(CancellationRequest.status == CancellationRequestStatus.pending)
        )
    assert result.scalar() == 1


@pytest.mark.asyncio
async def test_non_owner_cannot_request(client, make_user, item_id, session_factory):
    _, stranger = await make_user("stranger@example.com")

    response = await raise_request(client, stranger, item_id)

    assert response.status_code == 403
    async with session_factory() as db:
        count = (await db.execute(select(func.count()).select_from(CancellationRequest))).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_unknown_item(client, owner):
    _, headers = owner

    response = await raise_request(client, headers, 9999)

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("with_item, payload, error_code", [
    (False, {"request_type": "cancel", "reason": "x"}, "ERR_MISSING_FIELDS"),
    (True, {"request_type": "cancel", "reason": "   "}, "ERR_MISSING_FIELDS"),
    (True, {"reason": "x"}, "ERR_MISSING_FIELDS"),
    (True, {"request_type": "terminate", "reason": "x"}, "ERR_INVALID_ARGUMENT"),
])
async def test_invalid_request_body(client, owner, item_id, with_item, payload, error_code):
    _, headers = owner
    if with_item:
        payload = {"order_item_id": item_id, **payload}

    response = await client.post("/v1/cancellation-requests", json=payload, headers=headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == error_code


@pytest.mark.asyncio
async def test_owner_list_requires_item_id(client, owner, item_id):
    _, headers = owner
    await raise_request(client, headers, item_id)

    response = await client.get("/v1/cancellation-requests", headers=headers)
    assert response.status_code == 400

    response = await client.get(f"/v1/cancellation-requests?order_item_id={item_id}", headers=headers)
    assert response.status_code == 200
    assert len(response.json()) == 1


# ============================================================================
# TEST 2: Admin decisions
# ============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("request_type, expected_status, label", [
    ("pause", OrderStatus.pause, "pause"),
    ("cancel", OrderStatus.cancelled, "cancellation"),
    ("refund", OrderStatus.refunded, "refund"),
])
async def test_approval_moves_item_status(
    client, admin, owner, item_id, session_factory, request_type, expected_status, label
):
    admin_id, admin_headers = admin
    _, headers = owner
    request_id = (await raise_request(client, headers, item_id, request_type)).json()["id"]

    response = await client.patch(
        f"/v1/admin/cancellation-requests/{request_id}",
        json={"action": "approve", "admin_notes": "ok"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["request"]["status"] == "approved"
    assert data["request"]["processed_by"] == admin_id
    assert data["request"]["admin_note"] == "ok"
    assert data["message"] == f"The {label} request has been approved"
    assert await item_status(session_factory, item_id) == expected_status


@pytest.mark.asyncio
async def test_reject_leaves_item_untouched(client, admin, owner, item_id, session_factory):
    _, admin_headers = admin
    _, headers = owner
    request_id = (await raise_request(client, headers, item_id)).json()["id"]

    response = await client.patch(
        f"/v1/admin/cancellation-requests/{request_id}",
        json={"action": "reject", "admin_notes": "Already delivered"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["request"]["status"] == "rejected"
    assert await item_status(session_factory, item_id) == OrderStatus.received

    # A rejected request no longer blocks a new one
    response = await raise_request(client, headers, item_id, "pause")
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_processed_request_cannot_be_processed_again(client, admin, owner, item_id):
    _, admin_headers = admin
    _, headers = owner
    request_id = (await raise_request(client, headers, item_id)).json()["id"]
    url = f"/v1/admin/cancellation-requests/{request_id}"

    await client.patch(url, json={"action": "approve"}, headers=admin_headers)
    response = await client.patch(url, json={"action": "reject"}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["details"]["reason"] == "AlreadyProcessed"


@pytest.mark.asyncio
async def test_non_admin_cannot_process(client, owner, item_id):
    _, headers = owner
    request_id = (await raise_request(client, headers, item_id)).json()["id"]

    response = await client.patch(
        f"/v1/admin/cancellation-requests/{request_id}",
        json={"action": "approve"},
        headers=headers,
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invalid_action(client, admin, owner, item_id):
    _, admin_headers = admin
    _, headers = owner
    request_id = (await raise_request(client, headers, item_id)).json()["id"]

    response = await client.patch(
        f"/v1/admin/cancellation-requests/{request_id}",
        json={"action": "escalate"},
        headers=admin_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_request(client, admin):
    _, admin_headers = admin

    response = await client.patch(
        "/v1/admin/cancellation-requests/9999", json={"action": "approve"}, headers=admin_headers
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_item_update_failure_keeps_request_pending(
    client, admin, owner, item_id, session_factory, mocker
):
    _, admin_headers = admin
    _, headers = owner
    request_id = (await raise_request(client, headers, item_id)).json()["id"]
    mocker.patch.object(
        CancellationService, "_apply_item_status", side_effect=SQLAlchemyError("lock timeout")
    )

    response = await client.patch(
        f"/v1/admin/cancellation-requests/{request_id}",
        json={"action": "approve"},
        headers=admin_headers,
    )

    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_ITEM_STATUS_UPDATE_FAILED"
    async with session_factory() as db:
        request = await db.get(CancellationRequest, request_id)
        assert request.status == CancellationRequestStatus.pending
        assert request.processed_by is None
    assert await item_status(session_factory, item_id) == OrderStatus.received


# ============================================================================
# TEST 3: Completion and refunds
# ============================================================================

@pytest.mark.asyncio
async def test_complete_refund_credits_wallet(client, admin, owner, item_id, session_factory):
    owner_id, headers = owner
    _, admin_headers = admin
    request_id = (await raise_request(client, headers, item_id, "refund")).json()["id"]
    await client.patch(
        f"/v1/admin/cancellation-requests/{request_id}", json={"action": "approve"}, headers=admin_headers
    )

    response = await client.post(
        f"/v1/admin/cancellation-requests/{request_id}/complete", json={}, headers=admin_headers
    )

    assert response.status_code == 200
    data = response.json()
    # Default order item: 5 per day x 7 x 2 weeks x 100 points
    assert data["refunded_amount"] == 7000
    assert data["new_balance"] == 7000
    assert data["request"]["status"] == "completed"
    assert data["request"]["completed_at"] is not None

    async with session_factory() as db:
        entries = await LedgerService.list_entries(db, owner_id)
        assert entries[0].transaction_type.value == "refund"
        assert entries[0].amount == 7000

    response = await client.post(
        f"/v1/admin/cancellation-requests/{request_id}/complete", json={}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["details"]["reason"] == "AlreadyProcessed"


@pytest.mark.asyncio
async def test_complete_with_partial_amount(client, admin, owner, item_id):
    _, headers = owner
    _, admin_headers = admin
    request_id = (await raise_request(client, headers, item_id, "refund")).json()["id"]
    await client.patch(
        f"/v1/admin/cancellation-requests/{request_id}", json={"action": "approve"}, headers=admin_headers
    )

    response = await client.post(
        f"/v1/admin/cancellation-requests/{request_id}/complete",
        json={"amount": 2500, "admin_notes": "Half delivered"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["refunded_amount"] == 2500
    assert response.json()["request"]["admin_note"] == "Half delivered"


@pytest.mark.asyncio
async def test_complete_cancel_has_no_refund(client, admin, owner, item_id):
    _, headers = owner
    _, admin_headers = admin
    request_id = (await raise_request(client, headers, item_id, "cancel")).json()["id"]
    await client.patch(
        f"/v1/admin/cancellation-requests/{request_id}", json={"action": "approve"}, headers=admin_headers
    )

    response = await client.post(
        f"/v1/admin/cancellation-requests/{request_id}/complete", json={}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["refunded_amount"] == 0
    assert response.json()["new_balance"] is None


@pytest.mark.asyncio
async def test_pending_request_cannot_be_completed(client, admin, owner, item_id):
    _, headers = owner
    _, admin_headers = admin
    request_id = (await raise_request(client, headers, item_id, "refund")).json()["id"]

    response = await client.post(
        f"/v1/admin/cancellation-requests/{request_id}/complete", json={}, headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["details"]["reason"] == "NotApproved"


# ============================================================================
# TEST 4: Admin listing
# ============================================================================

@pytest.mark.asyncio
async def test_admin_list_with_filters(client, admin, owner, make_order_item):
    owner_id, headers = owner
    _, admin_headers = admin
    first_item = await make_order_item(owner_id)
    second_item = await make_order_item(owner_id)
    first = (await raise_request(client, headers, first_item, "pause")).json()["id"]
    await raise_request(client, headers, second_item, "refund")
    await client.patch(
        f"/v1/admin/cancellation-requests/{first}", json={"action": "reject"}, headers=admin_headers
    )

    response = await client.get("/v1/admin/cancellation-requests", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    newest = data["requests"][0]
    assert newest["request_type"] == "refund"
    assert newest["order_item"]["id"] == second_item
    assert newest["order_item"]["order_number"].startswith("#")
    assert newest["requester"]["email"] == "owner@example.com"
    assert newest["processor"] is None

    response = await client.get("/v1/admin/cancellation-requests?status=rejected", headers=admin_headers)
    data = response.json()
    assert data["total"] == 1
    assert data["requests"][0]["processor"]["email"] == "admin@example.com"

    response = await client.get("/v1/admin/cancellation-requests?type=refund", headers=admin_headers)
    assert response.json()["total"] == 1

    response = await client.get("/v1/admin/cancellation-requests?status=bogus", headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_admin_list_forbidden_for_users(client, owner):
    _, headers = owner

    response = await client.get("/v1/admin/cancellation-requests", headers=headers)

    assert response.status_code == 403
