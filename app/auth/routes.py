# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# Signup/login is handled by Supabase Auth on the client. This route lets a
# client check its token and learn which user it belongs to.
# =============================================================================

from fastapi import APIRouter

from app.auth.dependencies import CurrentUser
from app.auth.models import UserResponse
from core.models.base import ApiResponse

router = APIRouter()


@router.get("/me", response_model=ApiResponse[UserResponse])
def get_current_user_info(user: CurrentUser):
    """
    Get the current authenticated user.

    Raises:
        401: If not authenticated
    """
    return ApiResponse(data=UserResponse(id=user.id, email=user.email))
