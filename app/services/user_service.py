"""
Servicio de usuarios: edición de la cuenta propia y perfil público.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException
from app.models.user import User, UserRole
from app.schemas.doctor import DoctorResponse, PublicUserProfile
from app.schemas.user import UserProfileUpdate
from app.services.auth_service import find_user_by_email
from app.services.doctor_service import find_doctor_by_user

logger = logging.getLogger(__name__)


async def update_me(db: AsyncSession, user: User, data: UserProfileUpdate) -> User:
    """
    Actualiza solo los campos permitidos (nombre, email, teléfono).
    Rol, contraseña y estado no se editan por esta vía.
    """
    update_data = data.model_dump(exclude_unset=True)

    new_email = update_data.get("email")
    if new_email:
        new_email = new_email.lower()
        update_data["email"] = new_email
        if new_email != user.email:
            existing = await find_user_by_email(db, new_email)
            if existing:
                raise ConflictException("User already exists with this email")

    for field, value in update_data.items():
        if value is not None:
            setattr(user, field, value)

    await db.flush()
    await db.refresh(user)
    logger.info(f"Usuario {user.id} actualizó su perfil")
    return user


async def get_public_profile(db: AsyncSession, email: str) -> PublicUserProfile:
    """Perfil público de una cuenta; incluye el perfil de doctor si lo tiene."""
    user = await find_user_by_email(db, email)
    if not user:
        raise NotFoundException("User")

    profile = PublicUserProfile.model_validate(user)
    if user.role == UserRole.DOCTOR:
        doctor = await find_doctor_by_user(db, user.id)
        if doctor:
            profile.doctor_profile = DoctorResponse.model_validate(doctor)
    return profile
