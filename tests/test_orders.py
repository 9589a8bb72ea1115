"""Tests for order placement, views and status transitions."""

import asyncio

import pytest
import pytest_asyncio

from auth import PermissionDeniedError
from listings import ListingManager, ListingNotFoundError
from orders import (
    OrderManager,
    OrderError,
    OrderNotFoundError,
    InsufficientQuantityError,
    OrderConflictError,
    InvalidStatusTransitionError
)
from store import WriteConflictError, keys

@pytest_asyncio.fixture
async def order_manager(store):
    return OrderManager(store, write_attempts=3)

@pytest_asyncio.fixture
async def listing(store, seller):
    """A published listing with two units at 150.00."""
    manager = ListingManager(store)
    return await manager.create_listing(
        seller_id=seller["id"],
        title="Desk lamp",
        category="home",
        price=150,
        quantity=2
    )

@pytest.mark.asyncio
async def test_create_order(order_manager, store, listing, buyer, seller):
    """Test placing an order records it, indexes it and decrements the listing."""
    order = await order_manager.create_order(buyer["id"], listing["id"], 1)

    assert order["buyer_id"] == buyer["id"]
    assert order["seller_id"] == seller["id"]
    assert order["total_cents"] == 15000
    assert order["status"] == "pending"
    assert order["delivery_method"] == "collection"

    assert await store.get(keys.order_by_buyer(buyer["id"], order["id"])) == order["id"]
    assert await store.get(keys.order_by_seller(seller["id"], order["id"])) == order["id"]

    stored_listing = await store.get(keys.listing(listing["id"]))
    assert stored_listing["quantity"] == 1
    assert stored_listing["status"] == "published"

@pytest.mark.asyncio
async def test_last_unit_marks_listing_sold(order_manager, store, listing, buyer):
    """Test buying the remaining units marks the listing sold."""
    order = await order_manager.create_order(buyer["id"], listing["id"], 2, "delivery")
    assert order["total_cents"] == 30000
    assert order["delivery_method"] == "delivery"

    stored_listing = await store.get(keys.listing(listing["id"]))
    assert stored_listing["quantity"] == 0
    assert stored_listing["status"] == "sold"

@pytest.mark.asyncio
async def test_insufficient_quantity(order_manager, store, listing, buyer):
    """Test ordering more than is available changes nothing."""
    with pytest.raises(InsufficientQuantityError) as exc_info:
        await order_manager.create_order(buyer["id"], listing["id"], 3)

    assert str(exc_info.value) == "Insufficient quantity"
    assert exc_info.value.available == 2
    assert (await store.get(keys.listing(listing["id"])))["quantity"] == 2
    assert await store.scan_records(keys.ORDERS) == []

@pytest.mark.asyncio
async def test_create_order_validation(order_manager, listing, buyer):
    """Test quantity, delivery method and listing checks."""
    with pytest.raises(OrderError):
        await order_manager.create_order(buyer["id"], listing["id"], 0)
    with pytest.raises(OrderError):
        await order_manager.create_order(buyer["id"], listing["id"], 1, "drone")
    with pytest.raises(ListingNotFoundError):
        await order_manager.create_order(buyer["id"], "missing", 1)

@pytest.mark.asyncio
async def test_concurrent_orders_for_last_unit(store, seller, buyer, other):
    """Test two buyers racing for the last unit: exactly one wins."""
    listing = await ListingManager(store).create_listing(
        seller_id=seller["id"], title="Rare vinyl", category="books", price=500
    )
    manager = OrderManager(store, write_attempts=3)

    results = await asyncio.gather(
        manager.create_order(buyer["id"], listing["id"], 1),
        manager.create_order(other["id"], listing["id"], 1),
        return_exceptions=True
    )

    orders = [r for r in results if isinstance(r, dict)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(orders) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientQuantityError)

    stored_listing = await store.get(keys.listing(listing["id"]))
    assert stored_listing["quantity"] == 0
    assert stored_listing["status"] == "sold"
    assert len(await store.scan_records(keys.ORDERS)) == 1

@pytest.mark.asyncio
async def test_conflict_retries_exhausted(store, listing, buyer, monkeypatch):
    """Test a listing that keeps changing fails after the configured attempts."""
    manager = OrderManager(store, write_attempts=2)
    calls = []

    async def always_conflict(*args, **kwargs):
        calls.append(kwargs)
        raise WriteConflictError(keys.listing(listing["id"]))

    monkeypatch.setattr(store, "put_indexed", always_conflict)

    with pytest.raises(OrderConflictError):
        await manager.create_order(buyer["id"], listing["id"], 1)
    assert len(calls) == 2

@pytest.mark.asyncio
async def test_conflict_then_success(store, listing, buyer, monkeypatch):
    """Test a single conflict is retried against a fresh read."""
    manager = OrderManager(store, write_attempts=3)
    original = store.put_indexed
    attempts = []

    async def conflict_once(*args, **kwargs):
        attempts.append(1)
        if len(attempts) == 1:
            raise WriteConflictError(keys.listing(listing["id"]))
        return await original(*args, **kwargs)

    monkeypatch.setattr(store, "put_indexed", conflict_once)

    order = await manager.create_order(buyer["id"], listing["id"], 1)
    assert len(attempts) == 2
    assert await store.get(keys.order(order["id"])) == order

@pytest.mark.asyncio
async def test_get_order_enriched(order_manager, listing, buyer, seller, admin):
    """Test order parties see the order with listing, buyer and seller."""
    order = await order_manager.create_order(buyer["id"], listing["id"], 1)

    for actor in (buyer, seller):
        result = await order_manager.get_order(actor, order["id"])
        assert result["listing"]["id"] == listing["id"]
        assert result["buyer"]["id"] == buyer["id"]
        assert result["seller"]["id"] == seller["id"]

    with pytest.raises(PermissionDeniedError):
        await order_manager.get_order(admin, order["id"])
    with pytest.raises(OrderNotFoundError):
        await order_manager.get_order(buyer, "missing")

@pytest.mark.asyncio
async def test_buyer_and_seller_views(order_manager, listing, buyer, seller, other):
    """Test per-party order lists are resolved through their indexes."""
    first = await order_manager.create_order(buyer["id"], listing["id"], 1)
    second = await order_manager.create_order(other["id"], listing["id"], 1)

    buyer_orders = await order_manager.get_buyer_orders(buyer["id"])
    assert [o["id"] for o in buyer_orders] == [first["id"]]
    assert buyer_orders[0]["seller"]["id"] == seller["id"]
    assert buyer_orders[0]["listing"]["id"] == listing["id"]

    seller_orders = await order_manager.get_seller_orders(seller["id"])
    assert [o["id"] for o in seller_orders] == [second["id"], first["id"]]
    assert {o["buyer"]["id"] for o in seller_orders} == {buyer["id"], other["id"]}

@pytest.mark.asyncio
async def test_status_transitions(order_manager, store, listing, buyer, seller):
    """Test the legal path to delivered and that delivered is terminal."""
    order = await order_manager.create_order(buyer["id"], listing["id"], 1)

    order = await order_manager.update_status(seller, order["id"], "paid")
    assert order["status"] == "paid"
    assert "updated_at" in order

    order = await order_manager.update_status(seller, order["id"], "shipped")
    order = await order_manager.update_status(buyer, order["id"], "delivered")
    assert (await store.get(keys.order(order["id"])))["status"] == "delivered"

    with pytest.raises(InvalidStatusTransitionError):
        await order_manager.update_status(seller, order["id"], "shipped")

@pytest.mark.asyncio
async def test_illegal_and_unknown_status(order_manager, listing, buyer, seller, other):
    """Test unknown statuses, skipped steps and outsiders are rejected."""
    order = await order_manager.create_order(buyer["id"], listing["id"], 1)

    with pytest.raises(InvalidStatusTransitionError):
        await order_manager.update_status(seller, order["id"], "refunded")
    with pytest.raises(InvalidStatusTransitionError):
        await order_manager.update_status(seller, order["id"], "delivered")
    with pytest.raises(PermissionDeniedError):
        await order_manager.update_status(other, order["id"], "paid")

@pytest.mark.asyncio
async def test_total_is_fixed_at_creation(order_manager, store, listing, buyer, seller):
    """Test later price changes do not alter an order's total."""
    order = await order_manager.create_order(buyer["id"], listing["id"], 1)
    await ListingManager(store).update_listing(seller, listing["id"], {"price": 999})

    stored = await store.get(keys.order(order["id"]))
    assert stored["total_cents"] == 15000
