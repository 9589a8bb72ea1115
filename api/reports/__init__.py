"""Report endpoints."""
import logging
from typing import Dict, Any

from fastapi import APIRouter, HTTPException, status, Security, Depends
from pydantic import BaseModel, Field

from auth import get_current_user
from reports import ReportManager, ReportError
from ..dependencies import get_report_manager

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/reports",
    tags=["Moderation"]
)

class CreateReportRequest(BaseModel):
    """Request model for reporting a listing, user or review."""
    target_type: str = Field(..., description="'listing', 'user' or 'review'")
    target_id: str
    reason: str

@router.post("")
async def create_report(
    request: CreateReportRequest,
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: ReportManager = Depends(get_report_manager)
):
    """File a report for the moderation queue."""
    try:
        return await manager.create_report(
            current_user,
            request.target_type,
            request.target_id,
            request.reason
        )
    except ReportError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error creating report: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create report"
        )
