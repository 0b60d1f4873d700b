"""
Current-user API endpoints.

GET    /api/v1/users/me    — Own profile
PATCH  /api/v1/users/me    — Update display name
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_user
from app.core.database import get_session
from app.models.user import User
from app.services import users as user_service
from syncnotes_shared.schemas.users import ProfileUpdateRequest, UserResponse

router = APIRouter()


@router.get("/me", response_model=UserResponse, tags=["Users"])
async def get_me(user: User = Depends(get_current_user)):
    return user_service.to_user_response(user)


@router.patch("/me", response_model=UserResponse, tags=["Users"])
async def update_me(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    user = await user_service.update_profile(user, body.name, session)
    await session.commit()
    return user_service.to_user_response(user)
