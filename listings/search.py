""" Search listings in the record store """
from datetime import datetime, timezone
from typing import Optional, Dict, Any
import logging

from store import RecordStore, keys
from .pricing import to_cents, Number

logger = logging.getLogger(__name__)

EPOCH = datetime.min.replace(tzinfo=timezone.utc)

def created_at_key(listing: Dict[str, Any]) -> datetime:
    """Sort key for recency; records without a timestamp sort last."""
    try:
        created = datetime.fromisoformat(listing.get('created_at') or '')
    except ValueError:
        return EPOCH
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created

def matches(
    listing: Dict[str, Any],
    category: Optional[str] = None,
    q: Optional[str] = None,
    min_cents: Optional[int] = None,
    max_cents: Optional[int] = None,
    condition: Optional[str] = None,
    status: Optional[str] = None
) -> bool:
    """Apply every given predicate to one listing."""
    if status and listing.get('status') != status:
        return False
    if category and listing.get('category') != category:
        return False
    if condition and listing.get('condition') != condition:
        return False
    price_cents = listing.get('price_cents', 0)
    if min_cents is not None and price_cents < min_cents:
        return False
    if max_cents is not None and price_cents > max_cents:
        return False
    if q and q.lower() not in (listing.get('title') or '').lower():
        return False
    return True

async def search(
        store: RecordStore,
        category: Optional[str] = None,
        q: Optional[str] = None,
        min_price: Optional[Number] = None,
        max_price: Optional[Number] = None,
        condition: Optional[str] = None,
        status: Optional[str] = 'published',
        limit: int = 50,
        offset: int = 0
    ) -> Dict[str, Any]:
        """Filter, sort and paginate listings in memory.

        Every listing is scanned, filtered on all given predicates, sorted by
        `created_at` descending, then sliced by offset/limit.

        Args:
            store: Record store to scan
            category: Exact category match
            q: Case-insensitive substring of the title
            min_price: Inclusive lower bound in major units
            max_price: Inclusive upper bound in major units
            condition: Exact condition match ('new' or 'used')
            status: Exact status match (default 'published')
            limit: Maximum number of results to return
            offset: Number of results to skip

        Returns:
            Dict containing:
                - listings: The requested page of raw listing records
                - total: Number of listings matching the filters before pagination
                - offset, limit: Echo of the pagination window
        """
        min_cents = to_cents(min_price) if min_price is not None else None
        max_cents = to_cents(max_price) if max_price is not None else None

        listings = [
            listing for listing in await store.scan_records(keys.LISTINGS)
            if matches(listing, category, q, min_cents, max_cents, condition, status)
        ]
        listings.sort(key=created_at_key, reverse=True)

        logger.debug(f"Listing search matched {len(listings)} records")

        return {
            'listings': listings[offset:offset + limit],
            'total': len(listings),
            'offset': offset,
            'limit': limit,
        }
