"""
Current-user endpoints.

GET /api/user/verification-status - Whether the signed-in user's email is verified
"""

from fastapi import APIRouter, Depends

from app.core.auth import get_current_user
from app.core.responses import ok
from app.models.user import User
from workspace_shared.schemas.users import VerificationStatus

router = APIRouter()


@router.get("/verification-status")
async def verification_status(user: User = Depends(get_current_user)):
    return ok(VerificationStatus(email_verified=user.email_verified))
