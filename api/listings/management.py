"""Seller endpoints for creating, editing and removing listings."""
import logging
from typing import List, Optional, Dict, Any

from fastapi import APIRouter, HTTPException, status, Depends, Security
from pydantic import BaseModel, Field

from auth import get_current_user, PermissionDeniedError
from listings import ListingManager, ListingError
from ..dependencies import get_listing_manager

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/listings",
    tags=["Listings"]
)

class CreateListingRequest(BaseModel):
    """Model for creating a new listing."""
    title: str = Field(..., description="Title of the listing")
    category: str = Field(..., description="One of the ids from GET /categories")
    price: float = Field(..., ge=0, description="Price in major units, e.g. 199.99")
    description: Optional[str] = Field(None, description="Description of the listing")
    condition: Optional[str] = Field(None, description="'new' (default) or 'used'")
    quantity: Optional[int] = Field(None, ge=1, description="Units for sale (default 1)")
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    address_text: Optional[str] = None
    images: List[str] = Field(default=[], description="Image URLs; the first one is the primary image")

class UpdateListingRequest(BaseModel):
    """Model for updating a listing. Only the fields sent are changed."""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    condition: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=0)
    address_text: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None

@router.post("")
async def create_listing(
    listing: CreateListingRequest,
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: ListingManager = Depends(get_listing_manager)
):
    """Create a new listing owned by the caller.

    Returns:
        The created listing record
    """
    try:
        return await manager.create_listing(
            seller_id=current_user['id'],
            **listing.model_dump()
        )
    except ListingError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error creating listing: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create listing"
        )

@router.put("/{listing_id}")
async def update_listing(
    listing_id: str,
    updates: UpdateListingRequest,
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: ListingManager = Depends(get_listing_manager)
):
    """Update the caller's listing. Unknown fields are ignored."""
    try:
        return await manager.update_listing(
            current_user,
            listing_id,
            updates.model_dump(exclude_unset=True)
        )
    except PermissionDeniedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except LookupError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Listing not found"
        )
    except ListingError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error updating listing {listing_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update listing"
        )

@router.delete("/{listing_id}")
async def delete_listing(
    listing_id: str,
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: ListingManager = Depends(get_listing_manager)
):
    """Delete the caller's listing together with its images."""
    try:
        await manager.delete_listing(current_user, listing_id)
        return {"success": True}
    except PermissionDeniedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except LookupError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Listing not found"
        )
    except Exception as e:
        logger.error(f"Error deleting listing {listing_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete listing"
        )
