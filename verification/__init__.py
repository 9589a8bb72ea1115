"""Verification module for the seller moderation workflow.

Sellers submit verification requests (item, phone, bank or ID) with
evidence links. An admin approves or rejects each request exactly once;
approval sets the matching flag:

- item-verification: `verified_flag` on the listing
- phone-verification: `phone_verified` on the seller profile
- bank-verification: `bank_verified` on the seller profile
- id-verification: `id_verified` on the seller profile

The decision and its flag update are written as one batch.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any

from auth.policy import authorize
from listings import ListingNotFoundError
from store import RecordStore, WriteConflictError, keys
from users import new_seller_profile

logger = logging.getLogger(__name__)

REQUEST_STATUSES = ('pending', 'approved', 'rejected')

ITEM_VERIFICATION = 'item-verification'

# Seller profile flag set by each approved request type
SELLER_FLAGS = {
    'phone-verification': 'phone_verified',
    'bank-verification': 'bank_verified',
    'id-verification': 'id_verified',
}

REQUEST_TYPES = (ITEM_VERIFICATION,) + tuple(SELLER_FLAGS)

DECIDE_ATTEMPTS = 3

class VerificationError(Exception):
    """Base class for verification-related errors."""
    pass

class VerificationNotFoundError(VerificationError, LookupError):
    """Raised when a verification request is not found."""
    pass

class AlreadyDecidedError(VerificationError):
    """Raised when deciding a request that is no longer pending."""
    pass

def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()

class VerificationManager:
    """Manages verification requests and their approval side effects."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def create_request(
        self,
        actor: Dict[str, Any],
        listing_id: Optional[str] = None,
        type: Optional[str] = None,
        evidence_urls: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """Submit a verification request.

        Args:
            actor: The caller's user record; becomes the request's seller
            listing_id: Listing to verify; required for item verification
            type: One of REQUEST_TYPES, default item-verification
            evidence_urls: Links to uploaded evidence

        Returns:
            The stored request record

        Raises:
            VerificationError: If the type is unknown or the listing id is missing
            ListingNotFoundError: If the listing doesn't exist
            PermissionDeniedError: If the caller does not own the listing
        """
        request_type = type or ITEM_VERIFICATION
        if request_type not in REQUEST_TYPES:
            raise VerificationError(f"Type must be one of: {', '.join(REQUEST_TYPES)}")

        if request_type == ITEM_VERIFICATION and not listing_id:
            raise VerificationError("Item verification requires a listing")

        if listing_id:
            listing = await self.store.get(keys.listing(listing_id))
            if not listing:
                raise ListingNotFoundError("Listing not found")
            authorize('listing:request-verification', actor, listing)

        request_id = str(uuid.uuid4())
        request = {
            'id': request_id,
            'listing_id': listing_id,
            'seller_id': actor['id'],
            'type': request_type,
            'status': 'pending',
            'evidence_urls': list(evidence_urls or []),
            'created_at': utcnow(),
            'admin_comment': None,
        }

        pointers = []
        if listing_id:
            pointers.append(keys.verification_request_by_listing(listing_id, request_id))
        await self.store.put_indexed(keys.verification_request(request_id), request, pointers)

        logger.info(f"Verification request {request_id} ({request_type}) from {actor['id']}")
        return request

    async def list_requests(self, actor: Dict[str, Any], status: Optional[str] = None) -> List[Dict[str, Any]]:
        """All verification requests, newest first, optionally by status. Admin only."""
        authorize('verification:list', actor)
        if status and status not in REQUEST_STATUSES:
            raise VerificationError(f"Status must be one of: {', '.join(REQUEST_STATUSES)}")

        requests = await self.store.scan_records(keys.VERIFICATION_REQUESTS)
        if status:
            requests = [request for request in requests if request.get('status') == status]
        requests.sort(key=lambda request: request.get('created_at') or '', reverse=True)
        return requests

    async def _cascade(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Build the flag write for an approved request.

        Returns a mapping of key -> (record as read, updated record); empty
        when the target no longer exists.
        """
        if request['type'] == ITEM_VERIFICATION:
            key = keys.listing(request['listing_id'])
            listing = await self.store.get(key)
            if not listing:
                logger.warning(f"Listing {request['listing_id']} gone; approving without flag")
                return {}
            return {key: (listing, {**listing, 'verified_flag': True})}

        key = keys.seller(request['seller_id'])
        seller = await self.store.get(key)
        base = seller or new_seller_profile(request['seller_id'])
        return {key: (seller, {**base, SELLER_FLAGS[request['type']]: True})}

    async def decide(
        self,
        actor: Dict[str, Any],
        request_id: str,
        approved: bool,
        comment: Optional[str] = None
    ) -> Dict[str, Any]:
        """Approve or reject a pending request. Admin only.

        Args:
            actor: The caller's user record
            request_id: The request id
            approved: True to approve, False to reject
            comment: Optional note stored as `admin_comment`

        Returns:
            The decided request record

        Raises:
            PermissionDeniedError: If the caller is not an admin
            VerificationNotFoundError: If the request doesn't exist
            AlreadyDecidedError: If the request was already approved or rejected
        """
        authorize('verification:decide', actor)

        for attempt in range(1, DECIDE_ATTEMPTS + 1):
            current = await self.store.get(keys.verification_request(request_id))
            if not current:
                raise VerificationNotFoundError("Request not found")
            if current['status'] != 'pending':
                raise AlreadyDecidedError(f"Request has already been {current['status']}")

            request = dict(current)
            request['status'] = 'approved' if approved else 'rejected'
            request['admin_comment'] = comment
            request['reviewed_at'] = utcnow()

            sets = {keys.verification_request(request_id): request}
            expected = {keys.verification_request(request_id): current}
            if approved:
                for key, (before, after) in (await self._cascade(request)).items():
                    sets[key] = after
                    expected[key] = before

            try:
                await self.store.write_batch(sets=sets, expected=expected)
            except WriteConflictError:
                logger.warning(f"Verification request {request_id} raced (attempt {attempt})")
                continue

            logger.info(f"Verification request {request_id} {request['status']} by {actor['id']}")
            return request

        raise VerificationError("Request changed concurrently, please retry")

# Export public interface
__all__ = [
    'VerificationManager',
    'VerificationError',
    'VerificationNotFoundError',
    'AlreadyDecidedError',
    'REQUEST_STATUSES',
    'REQUEST_TYPES',
    'SELLER_FLAGS'
]
