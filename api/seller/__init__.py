"""Seller dashboard endpoints: own listings, profile and received orders."""
import logging
from typing import Optional, Dict, Any

from fastapi import APIRouter, HTTPException, status, Security, Depends
from pydantic import BaseModel

from auth import get_current_user
from listings import ListingManager
from orders import OrderManager
from users import UserManager, UserError
from ..dependencies import get_listing_manager, get_order_manager, get_user_manager

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/seller",
    tags=["Seller"]
)

class SellerProfileUpdate(BaseModel):
    """Request model for updating the seller profile. Only the fields sent are changed."""
    business_name: Optional[str] = None
    description: Optional[str] = None
    address_text: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None

@router.get("/listings")
async def get_my_listings(
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: ListingManager = Depends(get_listing_manager)
):
    """Get the caller's listings, newest first, with images."""
    try:
        return {"listings": await manager.get_seller_listings(current_user['id'])}
    except Exception as e:
        logger.error(f"Error fetching seller listings: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch listings"
        )

@router.get("/profile")
async def get_profile(
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: UserManager = Depends(get_user_manager)
):
    """Get the caller's seller profile and user record."""
    try:
        return await manager.get_seller_profile(current_user['id'])
    except Exception as e:
        logger.error(f"Error fetching seller profile: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch seller profile"
        )

@router.put("/profile")
async def update_profile(
    updates: SellerProfileUpdate,
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: UserManager = Depends(get_user_manager)
):
    """Create or update the caller's seller profile."""
    try:
        return await manager.update_seller_profile(
            current_user['id'],
            updates.model_dump(exclude_unset=True)
        )
    except UserError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error updating seller profile: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update seller profile"
        )

@router.get("/orders")
async def get_received_orders(
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: OrderManager = Depends(get_order_manager)
):
    """Get orders placed with the caller, newest first, with listing and buyer."""
    try:
        return {"orders": await manager.get_seller_orders(current_user['id'])}
    except Exception as e:
        logger.error(f"Error fetching seller orders: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch orders"
        )
