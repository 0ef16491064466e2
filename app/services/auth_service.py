"""
Servicio de autenticación: registro, login, refresh y cuenta admin inicial.
"""

import logging
from uuid import UUID

import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import (
    TokenType,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from app.config import get_settings
from app.core.exceptions import ConflictException, CredentialsException
from app.core.security import hash_password, verify_password
from app.models.user import User, UserRole
from app.schemas.auth import (
    AuthResponse,
    LoginRequest,
    SignupRequest,
    TokenData,
)
from app.schemas.user import UserResponse

settings = get_settings()
logger = logging.getLogger(__name__)


def _issue_tokens(user: User) -> TokenData:
    return TokenData(
        access_token=create_access_token(user.id, user.role.value),
        refresh_token=create_refresh_token(user.id),
    )


async def find_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def signup(db: AsyncSession, data: SignupRequest) -> AuthResponse:
    """
    Registra una cuenta de paciente o doctor y retorna tokens para
    auto-login inmediato. El perfil clínico se crea después.
    """
    if await find_user_by_email(db, data.email):
        raise ConflictException("User already exists with this email")

    user = User(
        email=data.email.lower(),
        hashed_password=hash_password(data.password),
        role=data.role,
        name=data.name,
        phone=data.phone,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info(f"Usuario {user.id} registrado con rol {user.role.value}")

    return AuthResponse(
        user=UserResponse.model_validate(user),
        tokens=_issue_tokens(user),
    )


async def signin(db: AsyncSession, data: LoginRequest) -> AuthResponse:
    """Autentica con email y contraseña."""
    user = await find_user_by_email(db, data.email)

    if not user or not user.is_active:
        logger.warning("Login fallido: usuario no encontrado para email=%s", data.email)
        raise CredentialsException("Invalid email or password")

    if not verify_password(data.password, user.hashed_password):
        logger.warning("Login fallido: contraseña incorrecta para user_id=%s", user.id)
        raise CredentialsException("Invalid email or password")

    return AuthResponse(
        user=UserResponse.model_validate(user),
        tokens=_issue_tokens(user),
    )


async def refresh_tokens(db: AsyncSession, refresh_token_str: str) -> TokenData:
    """Refresca un par de tokens usando el refresh token."""
    try:
        payload = decode_token(refresh_token_str)
        user_id = UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise CredentialsException("Invalid or expired refresh token")

    if payload.get("type") != TokenType.REFRESH:
        raise CredentialsException("Token is not a refresh token")

    result = await db.execute(
        select(User).where(User.id == user_id, User.is_active.is_(True))
    )
    user = result.scalar_one_or_none()
    if not user:
        raise CredentialsException("User not found or inactive")

    return _issue_tokens(user)


async def bootstrap_admin(db: AsyncSession) -> User | None:
    """
    Crea la cuenta admin configurada si aún no existe. Sin ADMIN_EMAIL y
    ADMIN_PASSWORD no hace nada.
    """
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        return None

    existing = await find_user_by_email(db, settings.ADMIN_EMAIL)
    if existing:
        return existing

    admin = User(
        email=settings.ADMIN_EMAIL.lower(),
        hashed_password=hash_password(settings.ADMIN_PASSWORD),
        role=UserRole.ADMIN,
        name=settings.ADMIN_NAME,
    )
    db.add(admin)
    await db.flush()
    logger.info(f"Cuenta admin {admin.email} creada")
    return admin
