""" Marketplace-wide totals for the admin dashboard """
import asyncio
import logging
from typing import Dict, Any

from auth.policy import authorize
from listings.pricing import from_cents
from store import RecordStore, keys

logger = logging.getLogger(__name__)

# Order statuses that count towards revenue
REVENUE_STATUSES = ('paid', 'delivered')

async def get_analytics(store: RecordStore, actor: Dict[str, Any]) -> Dict[str, Any]:
    """Count users, listings, orders and open moderation items.

    Pointer records are excluded from every count. Revenue is the sum of
    `total_cents` over paid and delivered orders, in major units.

    Raises:
        PermissionDeniedError: If the caller is not an admin
    """
    authorize('analytics:read', actor)

    users, listings, orders, reports, verifications = await asyncio.gather(
        store.scan_records(keys.USERS),
        store.scan_records(keys.LISTINGS),
        store.scan_records(keys.ORDERS),
        store.scan_records(keys.REPORTS),
        store.scan_records(keys.VERIFICATION_REQUESTS),
    )

    revenue_cents = sum(
        order.get('total_cents', 0)
        for order in orders
        if order.get('status') in REVENUE_STATUSES
    )

    return {
        'totalUsers': len(users),
        'totalListings': len(listings),
        'totalOrders': len(orders),
        'totalRevenue': from_cents(revenue_cents),
        'pendingReports': sum(1 for r in reports if r.get('status') == 'pending'),
        'pendingVerifications': sum(1 for v in verifications if v.get('status') == 'pending'),
    }
