"""
Endpoints de la cuenta del usuario autenticado y perfil público.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas.doctor import PublicUserProfile
from app.schemas.user import UserProfileUpdate, UserResponse
from app.services import user_service

router = APIRouter()


@router.put("/me", response_model=UserResponse)
async def update_me(
    data: UserProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Actualiza nombre, email o teléfono de la cuenta propia."""
    return await user_service.update_me(db, user, data)


@router.get("/profile/{email}", response_model=PublicUserProfile)
async def get_public_profile(
    email: str,
    db: AsyncSession = Depends(get_db),
):
    """Perfil público por email. No requiere autenticación."""
    return await user_service.get_public_profile(db, email)
