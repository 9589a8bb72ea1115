"""Review endpoints."""
import logging
from typing import Optional, Dict, Any

from fastapi import APIRouter, HTTPException, status, Security, Depends
from pydantic import BaseModel

from auth import get_current_user, PermissionDeniedError
from reviews import ReviewManager, ReviewError
from ..dependencies import get_review_manager

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reviews",
    tags=["Reviews"]
)

class CreateReviewRequest(BaseModel):
    """Request model for reviewing the seller of an order."""
    order_id: str
    rating: float
    text: Optional[str] = None

@router.post("")
async def create_review(
    request: CreateReviewRequest,
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: ReviewManager = Depends(get_review_manager)
):
    """Review the seller of one of the caller's orders."""
    try:
        return await manager.create_review(
            current_user,
            request.order_id,
            request.rating,
            request.text
        )
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
    except ReviewError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error creating review: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create review"
        )

@router.get("/seller/{seller_id}")
async def get_seller_reviews(
    seller_id: str,
    manager: ReviewManager = Depends(get_review_manager)
):
    """Get a seller's reviews, each with its reviewer."""
    try:
        return {"reviews": await manager.get_seller_reviews(seller_id)}
    except Exception as e:
        logger.error(f"Error fetching reviews for {seller_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch reviews"
        )
