"""
Endpoints de administración: aprobación de doctores.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_role
from app.database import get_db
from app.models.user import User, UserRole
from app.schemas.doctor import DoctorResponse
from app.services import admin_service

router = APIRouter()

_admin_only = require_role(UserRole.ADMIN)


@router.get("/doctors/pending", response_model=list[DoctorResponse])
async def list_pending_doctors(
    user: User = Depends(_admin_only),
    db: AsyncSession = Depends(get_db),
):
    return await admin_service.list_pending_doctors(db)


@router.get("/doctors", response_model=list[DoctorResponse])
async def list_all_doctors(
    user: User = Depends(_admin_only),
    db: AsyncSession = Depends(get_db),
):
    """Todos los doctores, aprobados o no."""
    return await admin_service.list_all_doctors(db)


@router.post("/doctors/{doctor_id}/approve", response_model=DoctorResponse)
async def approve_doctor(
    doctor_id: UUID,
    user: User = Depends(_admin_only),
    db: AsyncSession = Depends(get_db),
):
    return await admin_service.approve_doctor(db, doctor_id)


@router.post("/doctors/{doctor_id}/reject", response_model=DoctorResponse)
async def reject_doctor(
    doctor_id: UUID,
    user: User = Depends(_admin_only),
    db: AsyncSession = Depends(get_db),
):
    return await admin_service.reject_doctor(db, doctor_id)
