"""Listings API endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status, Depends

from listings import ListingManager, ListingError, CATEGORIES
from ..dependencies import get_listing_manager

logger = logging.getLogger(__name__)

# Create router without global security
router = APIRouter(
    prefix="/listings",
    tags=["Listings"]
)

categories_router = APIRouter(tags=["Listings"])

# Protected endpoints, included by the app next to this router
from .management import router as management_router

""" Public Endpoints - No Authentication Required """
@categories_router.get("/categories")
async def get_categories():
    """Get the static listing categories."""
    return {"categories": CATEGORIES}

@router.get("")
async def list_listings(
    category: Optional[str] = Query(None),
    q: Optional[str] = Query(None, description="Case-insensitive title search"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    condition: Optional[str] = Query(None),
    listing_status: str = Query("published", alias="status"),
    limit: Optional[int] = Query(None, ge=0),
    offset: int = Query(0, ge=0),
    manager: ListingManager = Depends(get_listing_manager)
):
    """Search listings with filters, newest first, with pagination metadata."""
    try:
        return await manager.search_listings(
            category=category,
            q=q,
            min_price=min_price,
            max_price=max_price,
            condition=condition,
            status=listing_status,
            limit=limit,
            offset=offset
        )
    except ListingError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error fetching listings: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch listings"
        )

@router.get("/{listing_id}")
async def get_listing(
    listing_id: str,
    manager: ListingManager = Depends(get_listing_manager)
):
    """Get a listing with its seller, seller profile and images."""
    try:
        return await manager.get_listing(listing_id)
    except LookupError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Listing not found"
        )
    except Exception as e:
        logger.error(f"Error fetching listing {listing_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch listing"
        )
