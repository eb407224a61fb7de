"""
Order placement tests.

Checkout must be all-or-nothing: the order, its items and the wallet debit
are persisted together or not at all.
"""

import pytest
from sqlalchemy import select, func, update
from sqlalchemy.exc import SQLAlchemyError

from adorder.app.domain.orders.order_service import OrderService, compute_item_totals
from adorder.app.domain.wallet.ledger_service import LedgerService
from adorder.app.models.enums import LedgerTransactionType
from adorder.app.models.ledger_entry import LedgerEntry
from adorder.app.models.order import Order, OrderItem
from adorder.app.models.product import Product, ProductInputDefinition
from adorder.app.models.user import User


def cart(*lines, unit_price=1000, product_id=None):
    return {
        "productId": product_id,
        "productName": "Place traffic booster",
        "unitPrice": unit_price,
        "items": [
            {"clientName": name, "dailyCount": daily, "weeks": weeks}
            for name, daily, weeks in lines
        ],
    }


async def count_rows(session_factory, model):
    async with session_factory() as db:
        result = await db.execute(select(func.count()).select_from(model))
        return result.scalar()


@pytest.mark.parametrize("daily, weeks, unit_price, expected", [
    (5, 2, 100, (70, 7000)),
    (10, 1, 1000, (70, 70000)),
    (0, 4, 500, (0, 0)),
    (3, 0, 500, (0, 0)),
])
def test_compute_item_totals(daily, weeks, unit_price, expected):
    assert compute_item_totals(daily, weeks, unit_price) == expected


# ============================================================================
# TEST 1: Successful checkout debits the wallet
# ============================================================================

@pytest.mark.asyncio
async def test_confirm_order_then_insufficient_balance(client, make_user, session_factory):
    """
    Balance 100,000; a 70,000 order leaves 30,000. A second 70,000 order is
    refused with the exact shortage.
    """
    user_id, headers = await make_user("buyer@example.com", balance=100000)

    response = await client.post("/v1/orders/confirm", json=cart(("Cafe A", 5, 2)), headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["totalQuantity"] == 70
    assert data["totalPrice"] == 70000
    assert data["itemCount"] == 1
    assert data["newBalance"] == 30000
    assert data["orderNumber"] == f"#{data['orderId']:08d}"

    response = await client.post("/v1/orders/confirm", json=cart(("Cafe A", 5, 2)), headers=headers)

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "ERR_INSUFFICIENT_BALANCE"
    assert body["details"] == {"required": 70000, "current": 30000, "shortage": 40000}

    async with session_factory() as db:
        assert await LedgerService.get_balance(db, user_id) == 30000
        assert await LedgerService.compute_balance(db, user_id) == 30000
        entries = await LedgerService.list_entries(db, user_id)
        deducts = [e.amount for e in entries if e.transaction_type == LedgerTransactionType.deduct]
        assert deducts == [-70000]
    assert await count_rows(session_factory, Order) == 1


@pytest.mark.asyncio
async def test_confirm_order_records_items_and_deduct_entry(client, make_user, session_factory):
    user_id, headers = await make_user("multi@example.com", balance=50000)

    response = await client.post(
        "/v1/orders/confirm",
        json=cart(("Cafe A", 5, 2), ("Cafe B", 1, 1), unit_price=100),
        headers=headers,
    )

    assert response.status_code == 200
    order_id = response.json()["orderId"]

    async with session_factory() as db:
        items = (await db.execute(select(OrderItem).where(OrderItem.order_id == order_id))).scalars().all()
        assert sorted(i.item_price for i in items) == [700, 7000]
        for item in items:
            assert item.total_qty == item.daily_qty * 7 * item.weeks
            assert item.item_price == item.total_qty * item.unit_price

        entries = await LedgerService.list_entries(db, user_id)
        deduct = entries[0]
        assert deduct.transaction_type == LedgerTransactionType.deduct
        assert deduct.amount == -7700
        assert deduct.order_id == order_id
        assert deduct.balance_after == 42300


# ============================================================================
# TEST 2: Cart validation
# ============================================================================

@pytest.mark.asyncio
async def test_empty_cart_rejected(client, make_user):
    _, headers = await make_user("empty@example.com", balance=1000)

    response = await client.post("/v1/orders/confirm", json=cart(), headers=headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_EMPTY_CART"


@pytest.mark.asyncio
async def test_client_totals_must_match(client, make_user, session_factory):
    _, headers = await make_user("mismatch@example.com", balance=100000)
    payload = cart(("Cafe A", 5, 2), unit_price=100)
    payload["items"][0]["totalCount"] = 70
    payload["items"][0]["estimatedPrice"] = 6999

    response = await client.post("/v1/orders/confirm", json=payload, headers=headers)

    assert response.status_code == 400
    assert response.json()["details"]["expected"] == 7000
    assert await count_rows(session_factory, Order) == 0


@pytest.mark.asyncio
async def test_negative_quantities_rejected(client, make_user):
    _, headers = await make_user("negative@example.com", balance=100000)

    response = await client.post("/v1/orders/confirm", json=cart(("Cafe A", -1, 2)), headers=headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_malformed_cart_is_invalid_argument(client, make_user):
    _, headers = await make_user("malformed@example.com", balance=100000)
    payload = cart(("Cafe A", 1, 1))
    payload["items"][0]["dailyCount"] = "x"

    response = await client.post("/v1/orders/confirm", json=payload, headers=headers)

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "ERR_INVALID_ARGUMENT"
    assert body["details"]["errors"][0]["loc"] == ["body", "items", 0, "dailyCount"]


@pytest.mark.asyncio
async def test_unknown_product(client, make_user):
    _, headers = await make_user("noproduct@example.com", balance=100000)

    response = await client.post(
        "/v1/orders/confirm", json=cart(("Cafe A", 1, 1), product_id=4242), headers=headers
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_confirm_requires_authentication(client):
    response = await client.post("/v1/orders/confirm", json=cart(("Cafe A", 1, 1)))

    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_UNAUTHENTICATED"


# ============================================================================
# TEST 3: Failure injection - nothing is persisted
# ============================================================================

@pytest.mark.asyncio
async def test_item_creation_failure_rolls_back(client, make_user, session_factory, mocker):
    user_id, headers = await make_user("itemfail@example.com", balance=100000)
    mocker.patch.object(OrderService, "_create_items", side_effect=SQLAlchemyError("disk full"))

    response = await client.post("/v1/orders/confirm", json=cart(("Cafe A", 1, 1)), headers=headers)

    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_ITEM_CREATION_FAILED"
    assert await count_rows(session_factory, Order) == 0
    assert await count_rows(session_factory, OrderItem) == 0
    async with session_factory() as db:
        assert await LedgerService.get_balance(db, user_id) == 100000


@pytest.mark.asyncio
async def test_ledger_failure_rolls_back(client, make_user, session_factory, mocker):
    user_id, headers = await make_user("ledgerfail@example.com", balance=100000)
    mocker.patch.object(LedgerService, "append_entry", side_effect=SQLAlchemyError("deadlock"))

    response = await client.post("/v1/orders/confirm", json=cart(("Cafe A", 1, 1)), headers=headers)

    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_LEDGER_WRITE_FAILED"
    assert await count_rows(session_factory, Order) == 0
    assert await count_rows(session_factory, OrderItem) == 0
    # Only the funding entry from the fixture
    assert await count_rows(session_factory, LedgerEntry) == 1
    async with session_factory() as db:
        assert await LedgerService.get_balance(db, user_id) == 100000


@pytest.mark.asyncio
async def test_balance_spent_before_debit(client, make_user, session_factory, mocker):
    """The balance drops between the up-front check and the conditional debit."""
    user_id, headers = await make_user("racer@example.com", balance=100000)
    debit = LedgerService.append_entry

    async def spend_then_debit(db, **kwargs):
        await db.execute(update(User).where(User.id == kwargs["user_id"]).values(balance=10))
        return await debit(db, **kwargs)

    mocker.patch.object(LedgerService, "append_entry", side_effect=spend_then_debit)

    response = await client.post("/v1/orders/confirm", json=cart(("Cafe A", 5, 2)), headers=headers)

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "ERR_INSUFFICIENT_BALANCE"
    assert body["details"] == {"required": 70000, "current": 10, "shortage": 69990}
    assert await count_rows(session_factory, Order) == 0
    assert await count_rows(session_factory, OrderItem) == 0
    async with session_factory() as db:
        assert await LedgerService.get_balance(db, user_id) == 100000


# ============================================================================
# TEST 4: Reads are scoped to the owner
# ============================================================================

@pytest.mark.asyncio
async def test_list_orders_only_returns_own(client, make_user):
    _, alice = await make_user("alice@example.com", balance=100000)
    _, bob = await make_user("bob@example.com", balance=100000)

    await client.post("/v1/orders/confirm", json=cart(("Cafe A", 1, 1)), headers=alice)
    await client.post("/v1/orders/confirm", json=cart(("Cafe B", 1, 1)), headers=alice)
    await client.post("/v1/orders/confirm", json=cart(("Cafe C", 1, 1)), headers=bob)

    response = await client.get("/v1/orders", headers=alice)

    assert response.status_code == 200
    orders = response.json()
    assert len(orders) == 2
    assert orders[0]["id"] > orders[1]["id"]
    assert orders[0]["items"][0]["client_name"] == "Cafe B"


@pytest.mark.asyncio
async def test_order_detail(client, make_user, session_factory):
    async with session_factory() as db:
        product = Product(name="Blog review", vendor_base_price=100)
        db.add(product)
        await db.flush()
        db.add_all([
            ProductInputDefinition(product_id=product.id, field_key="url", label="URL", field_type="URL", sort_order=1),
            ProductInputDefinition(product_id=product.id, field_key="keyword", label="Keyword", field_type="TEXT", sort_order=0),
        ])
        await db.commit()
        product_id = product.id

    _, headers = await make_user("detail@example.com", balance=100000)
    created = await client.post(
        "/v1/orders/confirm",
        json=cart(("Cafe A", 1, 2), unit_price=100, product_id=product_id),
        headers=headers,
    )
    order_id = created.json()["orderId"]

    response = await client.get(f"/v1/orders/{order_id}", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["order"]["id"] == order_id
    assert len(data["order"]["items"]) == 1
    assert [d["field_key"] for d in data["input_definitions"]] == ["keyword", "url"]
    start, end = data["start_date"], data["end_date"]
    assert data["period_text"] == f"{start.replace('-', '.')} ~ {end.replace('-', '.')}"


@pytest.mark.asyncio
async def test_foreign_order_is_not_found(client, make_user):
    _, owner = await make_user("owner@example.com", balance=100000)
    _, other = await make_user("other@example.com")
    created = await client.post("/v1/orders/confirm", json=cart(("Cafe A", 1, 1)), headers=owner)
    order_id = created.json()["orderId"]

    response = await client.get(f"/v1/orders/{order_id}", headers=other)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_foreign_order_item_is_forbidden(client, make_user, make_order_item):
    owner_id, owner = await make_user("itemowner@example.com")
    _, other = await make_user("itemother@example.com")
    item_id = await make_order_item(owner_id)

    response = await client.get(f"/v1/orders/items/{item_id}", headers=owner)
    assert response.status_code == 200
    assert response.json()["item"]["id"] == item_id

    response = await client.get(f"/v1/orders/items/{item_id}", headers=other)
    assert response.status_code == 403

    response = await client.get("/v1/orders/items/9999", headers=owner)
    assert response.status_code == 404
