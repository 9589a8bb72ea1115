"""Tests for reports, moderation and admin analytics."""

import pytest
import pytest_asyncio

from auth import PermissionDeniedError
from listings import ListingManager
from orders import OrderManager
from reports import ReportManager, ReportError, ReportNotFoundError, get_analytics
from verification import VerificationManager

@pytest_asyncio.fixture
async def report_manager(store):
    return ReportManager(store)

@pytest.mark.asyncio
async def test_create_report(report_manager, buyer):
    """Test any user can file a pending report."""
    report = await report_manager.create_report(buyer, "listing", "listing-1", "  Counterfeit  ")

    assert report["reporter_id"] == buyer["id"]
    assert report["status"] == "pending"
    assert report["reason"] == "Counterfeit"

@pytest.mark.asyncio
async def test_create_report_validation(report_manager, buyer):
    """Test target type and reason are required."""
    with pytest.raises(ReportError):
        await report_manager.create_report(buyer, "planet", "x", "Too round")
    with pytest.raises(ReportError):
        await report_manager.create_report(buyer, "user", "", "Rude")
    with pytest.raises(ReportError):
        await report_manager.create_report(buyer, "user", "seller", " ")

@pytest.mark.asyncio
async def test_review_report(report_manager, buyer, admin):
    """Test admins list and mark reports reviewed, once."""
    report = await report_manager.create_report(buyer, "user", "seller", "Never showed up")

    assert [r["id"] for r in await report_manager.list_reports(admin, "pending")] == [report["id"]]

    reviewed = await report_manager.review_report(admin, report["id"])
    assert reviewed["status"] == "reviewed"
    assert reviewed["reviewed_by"] == admin["id"]
    assert "reviewed_at" in reviewed

    assert await report_manager.list_reports(admin, "pending") == []
    assert len(await report_manager.list_reports(admin)) == 1

    with pytest.raises(ReportError):
        await report_manager.review_report(admin, report["id"])
    with pytest.raises(ReportNotFoundError):
        await report_manager.review_report(admin, "missing")

@pytest.mark.asyncio
async def test_reports_admin_only(report_manager, buyer):
    """Test non-admins cannot read or moderate reports."""
    report = await report_manager.create_report(buyer, "review", "review-1", "Spam")

    with pytest.raises(PermissionDeniedError):
        await report_manager.list_reports(buyer)
    with pytest.raises(PermissionDeniedError):
        await report_manager.review_report(buyer, report["id"])

@pytest.mark.asyncio
async def test_analytics(store, buyer, seller, admin, other):
    """Test totals ignore pointer records and count paid and delivered revenue."""
    listing = await ListingManager(store).create_listing(
        seller_id=seller["id"], title="Chair", category="home", price=100.50, quantity=5
    )
    await ListingManager(store).create_listing(
        seller_id=seller["id"], title="Table", category="home", price=400
    )

    orders = OrderManager(store)
    paid = await orders.create_order(buyer["id"], listing["id"], 2)
    await orders.update_status(seller, paid["id"], "paid")
    delivered = await orders.create_order(other["id"], listing["id"], 1)
    await orders.update_status(seller, delivered["id"], "shipped")
    await orders.update_status(other, delivered["id"], "delivered")
    await orders.create_order(buyer["id"], listing["id"], 1)

    await ReportManager(store).create_report(buyer, "listing", listing["id"], "Wrong colour")
    await VerificationManager(store).create_request(seller, listing_id=listing["id"])

    totals = await get_analytics(store, admin)
    assert totals == {
        'totalUsers': 4,
        'totalListings': 2,
        'totalOrders': 3,
        'totalRevenue': 301.5,
        'pendingReports': 1,
        'pendingVerifications': 1,
    }

    with pytest.raises(PermissionDeniedError):
        await get_analytics(store, seller)
