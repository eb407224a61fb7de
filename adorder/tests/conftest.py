"""
Centralized Test Configuration.

Each test gets its own in-memory SQLite database and an in-memory Redis double.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from adorder.app.main import app
from adorder.app.db.session import get_db, Base
from adorder.app.core.jwt import create_access_token
from adorder.app.core.security import get_password_hash
from adorder.app.domain.wallet.ledger_service import LedgerService
from adorder.app.models.enums import LedgerTransactionType, OrderStatus, UserTier
from adorder.app.models.order import Order, OrderItem
from adorder.app.models.user import User
import adorder.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "password123"


def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.published = []
        self._closed = False

    async def ping(self):
        return not self._closed

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True

    async def setex(self, key, ttl, value):
        return await self.set(key, value, ex=ttl)

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def publish(self, channel, message):
        if self._closed:
            raise ConnectionError("redis closed")
        self.published.append((channel, message))
        return 1

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine.sync_engine, "connect", set_sqlite_pragma)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
async def db_session(session_factory):
    """Shared session for fixture data creation and assertions."""
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def mock_redis(monkeypatch):
    """Swap the global Redis client for the in-memory double."""
    fake = MockRedis()
    monkeypatch.setattr(redis_client_module, "redis_client", fake)
    return fake


@pytest.fixture
async def client(session_factory):
    """Async client for testing, bound to the per-test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides = {}


def auth_headers(user_id: int, email: str) -> dict:
    token = create_access_token(data={"sub": email, "user_id": user_id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(session_factory):
    """
    Create a user directly in the database.

    A starting balance is funded through a ``charge`` ledger entry so the
    running balance always matches the ledger.
    """
    async def _make_user(email: str, tier: UserTier = UserTier.basic, balance: int = 0, is_active: bool = True):
        async with session_factory() as db:
            user = User(
                email=email,
                hashed_password=get_password_hash(TEST_PASSWORD),
                tier=tier,
                is_active=is_active,
                balance=0,
            )
            db.add(user)
            await db.flush()
            if balance:
                await LedgerService.append_entry(
                    db, user.id, LedgerTransactionType.charge, balance, memo="test funding"
                )
            await db.commit()
            return user.id, auth_headers(user.id, email)

    return _make_user


@pytest.fixture
async def admin(make_user):
    """(user_id, headers) of an administrator."""
    return await make_user("admin@example.com", tier=UserTier.admin)


@pytest.fixture
def make_order_item(session_factory):
    """Create an order with one item owned by ``user_id``; returns the item id."""
    async def _make_order_item(user_id: int, daily_qty: int = 5, weeks: int = 2, unit_price: int = 100):
        total_qty = daily_qty * 7 * weeks
        async with session_factory() as db:
            order = Order(
                user_id=user_id,
                product_name="Test product",
                unit_price=unit_price,
                quantity=total_qty,
                total_price=total_qty * unit_price,
                status=OrderStatus.received,
            )
            db.add(order)
            await db.flush()
            item = OrderItem(
                order_id=order.id,
                client_name="Client A",
                daily_qty=daily_qty,
                weeks=weeks,
                total_qty=total_qty,
                unit_price=unit_price,
                item_price=total_qty * unit_price,
                status=OrderStatus.received,
            )
            db.add(item)
            await db.commit()
            return item.id

    return _make_order_item
