"""
Schemas para User.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.models.user import UserRole


class UserProfileUpdate(BaseModel):
    """Campos que un usuario puede cambiar de su propia cuenta."""
    name: str | None = Field(None, min_length=2, max_length=150)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20)


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str
    phone: str | None = None
    role: UserRole
    is_active: bool
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class UserEmbed(BaseModel):
    """Datos mínimos de usuario embebidos en otras respuestas."""
    id: UUID
    name: str
    email: str
    phone: str | None = None

    model_config = {"from_attributes": True}
