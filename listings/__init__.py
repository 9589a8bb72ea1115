"""Listings module for managing marketplace listings.

This module provides functionality for:
- Creating listings with their images and seller pointer record
- Allow-listed updates of seller-editable fields
- Deleting a listing together with its pointer and image records
- Searching, filtering and paginating listings
- Enriching listings with seller and image data for display
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from auth.policy import authorize
from config import settings_conf
from store import RecordStore, WriteConflictError, keys
from .categories import CATEGORIES, CATEGORY_IDS
from .pricing import to_cents, from_cents
from .search import search, created_at_key

logger = logging.getLogger(__name__)

CONDITIONS = ('new', 'used')

# User-mutable fields for listings
MUTABLE_FIELDS = {
    'title',
    'description',
    'category',
    'condition',
    'price',
    'quantity',
    'address_text',
    'location_lat',
    'location_lng'
}

UPDATE_ATTEMPTS = 3

class ListingError(Exception):
    """Base exception for listing operations."""
    pass

class ListingNotFoundError(ListingError, LookupError):
    """Raised when a listing is not found."""
    pass

class InvalidPriceError(ListingError):
    """Raised when a price is missing, negative or not a number."""
    pass

def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()

def status_for_quantity(quantity: int) -> str:
    """A listing with nothing left to sell is sold."""
    return 'sold' if quantity == 0 else 'published'

def with_price(listing: Dict[str, Any]) -> Dict[str, Any]:
    """Add the major-unit `price` shown to clients next to the stored cents."""
    if listing and 'price_cents' in listing:
        listing['price'] = from_cents(listing['price_cents'])
    return listing

def sort_images(images: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Primary image first, then by id for a stable order."""
    return sorted(images, key=lambda image: (not image.get('is_primary'), image.get('id', '')))

class ListingManager:
    """Manager class for handling listing operations."""

    def __init__(self, store: RecordStore, currency: Optional[str] = None):
        """Initialize the listing manager.

        Args:
            store: Record store holding listings and their images
            currency: Currency code stamped on new listings
        """
        self.store = store
        self.currency = currency or settings_conf['currency']

    def _validate(self, fields: Dict[str, Any]) -> None:
        """Validate user-supplied listing fields.

        Raises:
            ListingError: If a field has an invalid value
            InvalidPriceError: If the price is invalid
        """
        if 'title' in fields and not (fields['title'] or '').strip():
            raise ListingError("Title is required")
        if 'category' in fields and fields['category'] not in CATEGORY_IDS:
            raise ListingError(f"Unknown category: {fields['category']}")
        if 'condition' in fields and fields['condition'] not in CONDITIONS:
            raise ListingError(f"Condition must be one of: {', '.join(CONDITIONS)}")
        if 'quantity' in fields:
            quantity = fields['quantity']
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 0:
                raise ListingError("Quantity must be a non-negative integer")
        if 'price' in fields:
            try:
                price_cents = to_cents(fields['price'])
            except (TypeError, ValueError) as e:
                raise InvalidPriceError(str(e))
            if price_cents < 0:
                raise InvalidPriceError("Price must not be negative")

    async def create_listing(
        self,
        seller_id: str,
        title: str,
        category: str,
        price: Any,
        description: Optional[str] = None,
        condition: Optional[str] = None,
        quantity: Optional[int] = None,
        location_lat: Optional[float] = None,
        location_lng: Optional[float] = None,
        address_text: Optional[str] = None,
        images: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """Create a new listing.

        The listing, its seller pointer and its image records are written
        as one batch. The first image URL becomes the primary image.

        Args:
            seller_id: The authenticated seller's user id
            title: Listing title
            category: One of the static category ids
            price: Price in major units, stored as integer cents
            description: Optional description
            condition: 'new' (default) or 'used'
            quantity: Units for sale (default 1)
            location_lat: Optional latitude
            location_lng: Optional longitude
            address_text: Optional human-readable location
            images: Public image URLs, already uploaded to object storage

        Returns:
            The stored listing record

        Raises:
            ListingError: If a field is invalid
            InvalidPriceError: If the price is invalid
        """
        condition = condition or 'new'
        quantity = 1 if quantity is None else quantity
        self._validate({
            'title': title,
            'category': category,
            'price': price,
            'condition': condition,
            'quantity': quantity,
        })
        if quantity < 1:
            raise ListingError("Quantity must be at least 1")

        listing_id = str(uuid.uuid4())
        listing = {
            'id': listing_id,
            'seller_id': seller_id,
            'title': title.strip(),
            'category': category,
            'price_cents': to_cents(price),
            'currency': self.currency,
            'description': description,
            'condition': condition,
            'quantity': quantity,
            'status': 'published',
            'created_at': utcnow(),
            'verified_flag': False,
            'location_lat': location_lat,
            'location_lng': location_lng,
            'address_text': address_text,
        }

        image_records = {}
        for i, image_url in enumerate(images or []):
            image_id = str(uuid.uuid4())
            image_records[keys.listing_image(listing_id, image_id)] = {
                'id': image_id,
                'listing_id': listing_id,
                'image_url': image_url,
                'is_primary': i == 0,
            }

        await self.store.put_indexed(
            keys.listing(listing_id),
            listing,
            [keys.listing_by_seller(seller_id, listing_id)],
            extra=image_records
        )
        logger.info(f"Created listing {listing_id} for seller {seller_id}")
        return with_price(dict(listing))

    async def get_listing(self, listing_id: str) -> Dict[str, Any]:
        """Get a listing enriched with seller, seller profile and images.

        Raises:
            ListingNotFoundError: If listing doesn't exist
        """
        listing = await self.store.get(keys.listing(listing_id))
        if not listing:
            raise ListingNotFoundError("Listing not found")
        enriched = await self.enrich([listing])
        return enriched[0]

    async def get_images(self, listing_id: str) -> List[Dict[str, Any]]:
        """Get a listing's image records, primary first."""
        return sort_images(await self.store.scan_records(keys.listing_images(listing_id)))

    async def enrich(
        self,
        listings: List[Dict[str, Any]],
        include_seller: bool = True
    ) -> List[Dict[str, Any]]:
        """Attach images (and optionally seller data) to listings.

        Seller records are fetched with one batched read for the whole page;
        image prefix scans run concurrently.
        """
        if not listings:
            return []

        images = await asyncio.gather(
            *(self.get_images(listing['id']) for listing in listings)
        )

        sellers: Dict[str, Optional[Dict[str, Any]]] = {}
        if include_seller:
            seller_ids = [listing['seller_id'] for listing in listings]
            sellers = await self.store.get_records(
                [keys.user(sid) for sid in seller_ids] +
                [keys.seller(sid) for sid in seller_ids]
            )

        enriched = []
        for listing, listing_images in zip(listings, images):
            result = with_price(dict(listing))
            result['images'] = listing_images
            if include_seller:
                result['seller'] = sellers.get(keys.user(listing['seller_id'])) or {}
                result['seller_profile'] = sellers.get(keys.seller(listing['seller_id'])) or {}
            enriched.append(result)
        return enriched

    async def search_listings(
        self,
        category: Optional[str] = None,
        q: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        condition: Optional[str] = None,
        status: Optional[str] = 'published',
        limit: Optional[int] = None,
        offset: int = 0
    ) -> Dict[str, Any]:
        """Search listings and enrich the requested page.

        Returns:
            Dict with `listings`, `total` (filtered count before
            pagination), `offset` and `limit`
        """
        if limit is None:
            limit = settings_conf['listing_page_size']
        if limit < 0 or offset < 0:
            raise ListingError("limit and offset must not be negative")

        result = await search(
            self.store,
            category=category,
            q=q,
            min_price=min_price,
            max_price=max_price,
            condition=condition,
            status=status,
            limit=limit,
            offset=offset
        )
        result['listings'] = await self.enrich(result['listings'])
        return result

    async def get_seller_listings(self, seller_id: str) -> List[Dict[str, Any]]:
        """Get all listings owned by a seller, newest first, with images."""
        listings = await self.store.resolve_index(
            keys.listings_by_seller(seller_id),
            keys.LISTINGS
        )
        listings.sort(key=created_at_key, reverse=True)
        return await self.enrich(listings, include_seller=False)

    async def update_listing(
        self,
        actor: Dict[str, Any],
        listing_id: str,
        updates: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Update a listing's seller-editable fields.

        Args:
            actor: The caller's user record
            listing_id: The listing id
            updates: Fields to change, limited to MUTABLE_FIELDS. `price` is
                given in major units and stored as cents; `quantity`
                re-derives the status.

        Returns:
            The updated listing record

        Raises:
            ListingNotFoundError: If listing doesn't exist
            PermissionDeniedError: If the caller does not own the listing
            ListingError: If update contains invalid fields or values
        """
        invalid_fields = set(updates) - MUTABLE_FIELDS
        if invalid_fields:
            raise ListingError(f"Cannot update fields: {', '.join(sorted(invalid_fields))}")
        self._validate(updates)

        for attempt in range(1, UPDATE_ATTEMPTS + 1):
            current = await self.store.get(keys.listing(listing_id))
            if not current:
                raise ListingNotFoundError("Listing not found")
            authorize('listing:update', actor, current)

            listing = dict(current)
            for field, value in updates.items():
                if field == 'price':
                    listing['price_cents'] = to_cents(value)
                else:
                    listing[field] = value
            if 'quantity' in updates:
                listing['status'] = status_for_quantity(listing['quantity'])
            listing['updated_at'] = utcnow()

            try:
                # Guard against overwriting a concurrent order's quantity decrement
                await self.store.write_batch(
                    sets={keys.listing(listing_id): listing},
                    expected={keys.listing(listing_id): current}
                )
                return with_price(listing)
            except WriteConflictError:
                logger.warning(
                    f"Listing {listing_id} changed during update (attempt {attempt})"
                )

        raise ListingError("Listing changed concurrently, please retry")

    async def delete_listing(self, actor: Dict[str, Any], listing_id: str) -> None:
        """Delete a listing, its seller pointer and its images in one batch.

        Orders and reviews that reference the listing are left untouched.

        Raises:
            ListingNotFoundError: If listing doesn't exist
            PermissionDeniedError: If the caller does not own the listing
        """
        listing = await self.store.get(keys.listing(listing_id))
        if not listing:
            raise ListingNotFoundError("Listing not found")
        authorize('listing:delete', actor, listing)

        images = await self.store.scan_records(keys.listing_images(listing_id))
        await self.store.write_batch(deletes=[
            keys.listing(listing_id),
            keys.listing_by_seller(listing['seller_id'], listing_id),
            *(keys.listing_image(listing_id, image['id']) for image in images)
        ])
        logger.info(f"Deleted listing {listing_id} and {len(images)} images")

# Export public interface
__all__ = [
    'ListingManager',
    'ListingError',
    'ListingNotFoundError',
    'InvalidPriceError',
    'CATEGORIES',
    'CONDITIONS',
    'MUTABLE_FIELDS',
    'search',
    'to_cents',
    'from_cents',
    'status_for_quantity',
    'created_at_key',
    'with_price'
]
