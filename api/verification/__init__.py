"""Verification request endpoints for sellers."""
import logging
from typing import List, Optional, Dict, Any

from fastapi import APIRouter, HTTPException, status, Security, Depends
from pydantic import BaseModel, Field

from auth import get_current_user, PermissionDeniedError
from verification import VerificationManager, VerificationError
from ..dependencies import get_verification_manager

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/verification-requests",
    tags=["Moderation"]
)

class CreateVerificationRequest(BaseModel):
    """Request model for submitting a verification request."""
    listing_id: Optional[str] = None
    type: Optional[str] = Field(
        None,
        description="item-verification (default), phone-verification, bank-verification or id-verification"
    )
    evidence_urls: List[str] = []

@router.post("")
async def create_verification_request(
    request: CreateVerificationRequest,
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: VerificationManager = Depends(get_verification_manager)
):
    """Submit a verification request for review by an admin."""
    try:
        return await manager.create_request(
            current_user,
            listing_id=request.listing_id,
            type=request.type,
            evidence_urls=request.evidence_urls
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
    except VerificationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error creating verification request: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create verification request"
        )
