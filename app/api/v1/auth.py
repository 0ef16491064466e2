"""
Endpoints de autenticación: registro, login, refresh y cuenta actual.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    SignupRequest,
    TokenData,
)
from app.schemas.user import UserResponse
from app.services import auth_service

router = APIRouter()


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(
    data: SignupRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Registra un paciente o doctor. No requiere autenticación.
    Las cuentas admin no se auto-registran.
    """
    return await auth_service.signup(db, data)


@router.post("/signin", response_model=AuthResponse)
async def signin(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    return await auth_service.signin(db, data)


@router.post("/refresh", response_model=TokenData)
async def refresh(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Obtiene un nuevo par de tokens usando el refresh token."""
    return await auth_service.refresh_tokens(db, data.refresh_token)


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """Datos del usuario autenticado."""
    return user
