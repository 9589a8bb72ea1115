"""Admin endpoints: verification decisions, report moderation and analytics.

Every route requires a caller whose stored role is 'admin'; the check is
made by the authorization policy, not by the router.
"""
import logging
from typing import Optional, Dict, Any

from fastapi import APIRouter, HTTPException, Query, status, Security, Depends
from pydantic import BaseModel

from auth import get_current_user, PermissionDeniedError
from reports import ReportManager, ReportError, get_analytics
from store import RecordStore
from verification import VerificationManager, VerificationError
from ..dependencies import get_report_manager, get_store, get_verification_manager

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"]
)

class DecisionRequest(BaseModel):
    """Request model for approving or rejecting a verification request."""
    approved: bool
    comment: Optional[str] = None

def forbidden(e: PermissionDeniedError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=str(e)
    )

""" Verification Requests """
@router.get("/verification-requests")
async def list_verification_requests(
    request_status: Optional[str] = Query(None, alias="status"),
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: VerificationManager = Depends(get_verification_manager)
):
    """List verification requests, optionally by status."""
    try:
        return {"requests": await manager.list_requests(current_user, request_status)}
    except PermissionDeniedError as e:
        raise forbidden(e)
    except VerificationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error fetching verification requests: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch verification requests"
        )

@router.put("/verification-requests/{request_id}/approve")
async def decide_verification_request(
    request_id: str,
    decision: DecisionRequest,
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: VerificationManager = Depends(get_verification_manager)
):
    """Approve or reject a pending verification request."""
    try:
        return await manager.decide(
            current_user,
            request_id,
            decision.approved,
            decision.comment
        )
    except PermissionDeniedError as e:
        raise forbidden(e)
    except LookupError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Request not found"
        )
    except VerificationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error deciding verification request {request_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to approve verification request"
        )

""" Reports """
@router.get("/reports")
async def list_reports(
    report_status: Optional[str] = Query(None, alias="status"),
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: ReportManager = Depends(get_report_manager)
):
    """List reports, optionally by status."""
    try:
        return {"reports": await manager.list_reports(current_user, report_status)}
    except PermissionDeniedError as e:
        raise forbidden(e)
    except ReportError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error fetching reports: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch reports"
        )

@router.put("/reports/{report_id}/review")
async def review_report(
    report_id: str,
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: ReportManager = Depends(get_report_manager)
):
    """Mark a report as reviewed."""
    try:
        return await manager.review_report(current_user, report_id)
    except PermissionDeniedError as e:
        raise forbidden(e)
    except LookupError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Report not found"
        )
    except ReportError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error reviewing report {report_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to review report"
        )

""" Analytics """
@router.get("/analytics")
async def analytics(
    current_user: Dict[str, Any] = Security(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Marketplace totals: users, listings, orders, revenue and open moderation items."""
    try:
        return await get_analytics(store, current_user)
    except PermissionDeniedError as e:
        raise forbidden(e)
    except Exception as e:
        logger.error(f"Error fetching analytics: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch analytics"
        )
