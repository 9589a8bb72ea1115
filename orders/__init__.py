"""Orders module for managing marketplace orders.

This module handles order creation, listing quantity bookkeeping, order views
for buyers and sellers, and order status transitions.

Order creation writes the order, its buyer and seller pointer records, and
the decremented listing as one batch that only applies if the listing is
unchanged since it was read. Two buyers racing for the last unit cannot
both succeed.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any

from auth.policy import authorize
from config import settings_conf
from listings import ListingNotFoundError, status_for_quantity, created_at_key
from store import RecordStore, WriteConflictError, keys

logger = logging.getLogger(__name__)

ORDER_STATUSES = ('pending', 'paid', 'shipped', 'delivered')
DELIVERY_METHODS = ('collection', 'delivery')

# Legal status transitions; 'delivered' is terminal
TRANSITIONS = {
    'pending': {'paid', 'shipped'},
    'paid': {'shipped', 'delivered'},
    'shipped': {'delivered'},
    'delivered': set(),
}

class OrderError(Exception):
    """Base class for order-related errors."""
    pass

class OrderNotFoundError(OrderError, LookupError):
    """Raised when an order is not found."""
    pass

class InsufficientQuantityError(OrderError):
    """Raised when a listing has fewer units than requested."""
    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__("Insufficient quantity")

class OrderConflictError(OrderError):
    """Raised when the listing kept changing while placing an order."""
    pass

class InvalidStatusTransitionError(OrderError):
    """Raised when a status change is unknown or not allowed."""
    pass

def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()

class OrderManager:
    """Manages order operations and state transitions."""

    def __init__(self, store: RecordStore, write_attempts: Optional[int] = None) -> None:
        """Initialize order manager.

        Args:
            store: Record store holding orders and listings
            write_attempts: Compare-and-set attempts when placing an order
        """
        self.store = store
        self.write_attempts = write_attempts or settings_conf['order_write_attempts']

    async def create_order(
        self,
        buyer_id: str,
        listing_id: str,
        quantity: int,
        delivery_method: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create an order and take its units off the listing.

        `total_cents` is fixed at creation from the listing's current price.
        When the listing reaches zero units it becomes 'sold'.

        Args:
            buyer_id: The authenticated buyer's user id
            listing_id: Listing being bought
            quantity: Units to buy
            delivery_method: 'collection' (default) or 'delivery'

        Returns:
            The stored order record

        Raises:
            ListingNotFoundError: If the listing doesn't exist
            InsufficientQuantityError: If the listing has fewer units than requested
            OrderConflictError: If the listing changed on every attempt
            OrderError: If quantity or delivery method is invalid
        """
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise OrderError("Quantity must be a positive integer")
        delivery_method = delivery_method or 'collection'
        if delivery_method not in DELIVERY_METHODS:
            raise OrderError(f"Delivery method must be one of: {', '.join(DELIVERY_METHODS)}")

        listing_key = keys.listing(listing_id)

        for attempt in range(1, self.write_attempts + 1):
            listing = await self.store.get(listing_key)
            if not listing:
                raise ListingNotFoundError("Listing not found")

            if listing.get('quantity', 0) < quantity:
                raise InsufficientQuantityError(listing.get('quantity', 0), quantity)

            order_id = str(uuid.uuid4())
            order = {
                'id': order_id,
                'buyer_id': buyer_id,
                'seller_id': listing['seller_id'],
                'listing_id': listing_id,
                'quantity': quantity,
                'total_cents': listing['price_cents'] * quantity,
                'status': 'pending',
                'delivery_method': delivery_method,
                'created_at': utcnow(),
            }

            updated_listing = dict(listing)
            updated_listing['quantity'] = listing['quantity'] - quantity
            updated_listing['status'] = status_for_quantity(updated_listing['quantity'])

            try:
                await self.store.put_indexed(
                    keys.order(order_id),
                    order,
                    [
                        keys.order_by_buyer(buyer_id, order_id),
                        keys.order_by_seller(listing['seller_id'], order_id),
                    ],
                    extra={listing_key: updated_listing},
                    expected={listing_key: listing}
                )
            except WriteConflictError:
                logger.warning(
                    f"Listing {listing_id} changed while ordering (attempt {attempt})"
                )
                continue

            logger.info(
                f"Created order {order_id} for {quantity} of listing {listing_id}; "
                f"{updated_listing['quantity']} left"
            )
            return order

        raise OrderConflictError("Listing changed concurrently, please retry")

    async def get_order(self, actor: Dict[str, Any], order_id: str) -> Dict[str, Any]:
        """Get an order with its listing, buyer and seller.

        Raises:
            OrderNotFoundError: If the order doesn't exist
            PermissionDeniedError: If the caller is neither buyer nor seller
        """
        order = await self.store.get(keys.order(order_id))
        if not order:
            raise OrderNotFoundError("Order not found")
        authorize('order:read', actor, order)

        related = await self.store.get_records([
            keys.listing(order['listing_id']),
            keys.user(order['buyer_id']),
            keys.user(order['seller_id']),
        ])
        return {
            **order,
            'listing': related[keys.listing(order['listing_id'])],
            'buyer': related[keys.user(order['buyer_id'])],
            'seller': related[keys.user(order['seller_id'])],
        }

    async def _orders_for(self, pointer_prefix: str, party_field: str, party_name: str) -> List[Dict[str, Any]]:
        """Resolve an order index and attach listings and the other party."""
        orders = await self.store.resolve_index(pointer_prefix, keys.ORDERS)
        orders.sort(key=created_at_key, reverse=True)

        related = await self.store.get_records(
            [keys.listing(order['listing_id']) for order in orders] +
            [keys.user(order[party_field]) for order in orders]
        )
        return [
            {
                **order,
                'listing': related[keys.listing(order['listing_id'])],
                party_name: related[keys.user(order[party_field])],
            }
            for order in orders
        ]

    async def get_buyer_orders(self, buyer_id: str) -> List[Dict[str, Any]]:
        """Orders placed by a buyer, newest first, with listing and seller."""
        return await self._orders_for(keys.orders_by_buyer(buyer_id), 'seller_id', 'seller')

    async def get_seller_orders(self, seller_id: str) -> List[Dict[str, Any]]:
        """Orders received by a seller, newest first, with listing and buyer."""
        return await self._orders_for(keys.orders_by_seller(seller_id), 'buyer_id', 'buyer')

    async def update_status(self, actor: Dict[str, Any], order_id: str, status: str) -> Dict[str, Any]:
        """Move an order to a new status.

        Args:
            actor: The caller's user record
            order_id: The order id
            status: Target status

        Returns:
            The updated order record

        Raises:
            OrderNotFoundError: If the order doesn't exist
            PermissionDeniedError: If the caller is neither buyer nor seller
            InvalidStatusTransitionError: If the status is unknown or not
                reachable from the current one
        """
        if status not in ORDER_STATUSES:
            raise InvalidStatusTransitionError(
                f"Status must be one of: {', '.join(ORDER_STATUSES)}"
            )

        current = await self.store.get(keys.order(order_id))
        if not current:
            raise OrderNotFoundError("Order not found")
        authorize('order:update-status', actor, current)

        if status not in TRANSITIONS.get(current['status'], set()):
            raise InvalidStatusTransitionError(
                f"Cannot change order status from {current['status']} to {status}"
            )

        order = dict(current)
        order['status'] = status
        order['updated_at'] = utcnow()

        try:
            await self.store.write_batch(
                sets={keys.order(order_id): order},
                expected={keys.order(order_id): current}
            )
        except WriteConflictError:
            raise OrderConflictError("Order changed concurrently, please retry")

        logger.info(f"Order {order_id} moved from {current['status']} to {status}")
        return order

# Export public interface
__all__ = [
    'OrderManager',
    'OrderError',
    'OrderNotFoundError',
    'InsufficientQuantityError',
    'OrderConflictError',
    'InvalidStatusTransitionError',
    'ORDER_STATUSES',
    'DELIVERY_METHODS',
    'TRANSITIONS'
]
