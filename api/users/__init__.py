"""User lookup endpoints."""
import logging
from typing import Dict, Any

from fastapi import APIRouter, HTTPException, status, Security, Depends

from auth import get_current_user, PermissionDeniedError
from users import UserManager
from ..dependencies import get_user_manager

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["Users"]
)

@router.get("/{user_id}")
async def get_user(
    user_id: str,
    current_user: Dict[str, Any] = Security(get_current_user),
    manager: UserManager = Depends(get_user_manager)
):
    """Get a user. Callers may read themselves; admins may read anyone."""
    try:
        return {"user": await manager.get_user(current_user, user_id)}
    except PermissionDeniedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except LookupError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    except Exception as e:
        logger.error(f"Error fetching user {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch user"
        )
