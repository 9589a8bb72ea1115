"""Orders API endpoints."""
import logging
from typing import Optional, Dict, Any

from fastapi import APIRouter, HTTPException, status, Security, Depends
from pydantic import BaseModel, Field

from auth import get_current_user, PermissionDeniedError
from orders import OrderManager, OrderError
from ..dependencies import get_order_manager

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/orders",
    tags=["Orders"]
)

buyer_router = APIRouter(
    prefix="/buyer",
    tags=["Orders"]
)

class CreateOrderRequest(BaseModel):
    """Request model for creating an order."""
    listing_id: str
    quantity: int = Field(1, ge=1)
    delivery_method: Optional[str] = Field(None, description="'collection' (default) or 'delivery'")

class UpdateStatusRequest(BaseModel):
    """Request model for moving an order to a new status."""
    status: str

@router.post("")
async def create_order(
    order_request: CreateOrderRequest,
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: OrderManager = Depends(get_order_manager)
):
    """Place an order for a listing as the caller."""
    try:
        return await manager.create_order(
            buyer_id=current_user['id'],
            listing_id=order_request.listing_id,
            quantity=order_request.quantity,
            delivery_method=order_request.delivery_method
        )
    except LookupError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Listing not found"
        )
    except OrderError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error creating order: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create order"
        )

@router.get("/{order_id}")
async def get_order(
    order_id: str,
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: OrderManager = Depends(get_order_manager)
):
    """Get an order with its listing, buyer and seller."""
    try:
        return await manager.get_order(current_user, order_id)
    except PermissionDeniedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except LookupError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )
    except Exception as e:
        logger.error(f"Error fetching order {order_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch order"
        )

@router.put("/{order_id}/status")
async def update_order_status(
    order_id: str,
    request: UpdateStatusRequest,
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: OrderManager = Depends(get_order_manager)
):
    """Move an order to its next status."""
    try:
        return await manager.update_status(current_user, order_id, request.status)
    except PermissionDeniedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except LookupError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )
    except OrderError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error updating order {order_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update order status"
        )

@buyer_router.get("/orders")
async def get_my_orders(
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: OrderManager = Depends(get_order_manager)
):
    """Get the caller's orders, newest first, with listing and seller."""
    try:
        return {"orders": await manager.get_buyer_orders(current_user['id'])}
    except Exception as e:
        logger.error(f"Error fetching buyer orders: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch orders"
        )
