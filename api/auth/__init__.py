"""Authentication API endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, status, Depends
from pydantic import BaseModel, Field

from auth import IdentityProviderError
from users import UserManager, SignupError
from ..dependencies import get_user_manager

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)

class SignupRequest(BaseModel):
    """Request model for creating an account."""
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    role: Optional[str] = Field(None, description="'buyer' (default) or 'seller'")

@router.post("/signup")
async def signup(
    request: SignupRequest,
    manager: UserManager = Depends(get_user_manager)
):
    """Create an identity and the matching user (and seller) records."""
    try:
        user = await manager.signup(
            email=request.email,
            password=request.password,
            name=request.name,
            phone=request.phone,
            role=request.role
        )
        return {"user": user}
    except SignupError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except IdentityProviderError as e:
        logger.error(f"Identity provider error during signup: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create account"
        )
    except Exception as e:
        logger.error(f"Error during signup: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create account"
        )
