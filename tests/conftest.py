"""
Fixtures compartidas para Pytest.
Configura base de datos de test, clientes HTTP y usuarios por rol.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from collections.abc import AsyncGenerator
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.auth.jwt import create_access_token
from app.core.security import hash_password
from app.database import Base, get_db
from app.main import app
from app.models.doctor import Doctor, DoctorStatus
from app.models.doctor_schedule import WeekDay, WeeklySlot
from app.models.patient import Patient
from app.models.user import User, UserRole
from app.services.availability_service import today
from app.tasks.email_tasks import send_email_task

# ── Engine de test (SQLite async) ────────────────────
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
test_session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


def next_weekday(day: WeekDay, weeks_ahead: int = 0) -> date:
    """Próxima fecha (posterior a hoy) que cae en el día indicado."""
    current = today()
    target = list(WeekDay).index(day)
    delta = (target - current.weekday()) % 7 or 7
    return current + timedelta(days=delta + 7 * weeks_ahead)


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    """Crea y destruye las tablas para cada test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch) -> list[dict]:
    """Reemplaza el encolado Celery por una lista en memoria."""
    outbox: list[dict] = []

    def _delay(to, subject, html):
        outbox.append({"to": to, "subject": subject, "html": html})

    monkeypatch.setattr(send_email_task, "delay", _delay)
    return outbox


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provee una sesión de DB de test."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP de test que usa la DB de test."""

    async def _get_test_db():
        yield db_session
        await db_session.commit()

    app.dependency_overrides[get_db] = _get_test_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Usuarios y perfiles ──────────────────────────────

async def create_user(
    db: AsyncSession,
    role: UserRole,
    email: str,
    name: str = "Test User",
) -> User:
    user = User(
        id=uuid4(),
        email=email,
        hashed_password=hash_password("TestPass123"),
        role=role,
        name=name,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def create_doctor(
    db: AsyncSession,
    email: str = "doctor@test.com",
    *,
    approved: bool = True,
    slots: list[tuple[WeekDay, str, str, int]] | None = None,
    fee: str = "50.00",
    specialization: str = "Cardiology",
    experience: int = 10,
) -> Doctor:
    user = await create_user(db, UserRole.DOCTOR, email, name="Gregory House")
    if slots is None:
        slots = [(WeekDay.MONDAY, "09:00", "12:00", 2)]

    doctor = Doctor(
        user=user,
        specialization=specialization,
        experience=experience,
        consultation_fee=Decimal(fee),
        clinic_address="Av. Principal 123",
        is_approved=approved,
        status=DoctorStatus.APPROVED if approved else DoctorStatus.PENDING,
        weekly_slots=[
            WeeklySlot(
                day=day,
                start_time=start,
                end_time=end,
                max_patients_per_day=max_patients,
                position=i,
            )
            for i, (day, start, end, max_patients) in enumerate(slots)
        ],
        days_off=[],
    )
    db.add(doctor)
    await db.commit()
    await db.refresh(doctor)
    return doctor


async def create_patient(db: AsyncSession, email: str) -> Patient:
    user = await create_user(db, UserRole.PATIENT, email, name="Jane Doe")
    patient = Patient(
        user=user,
        gender="female",
        date_of_birth=date(1990, 5, 17),
        address="Calle Falsa 123",
        medical_history=["asthma"],
    )
    db.add(patient)
    await db.commit()
    await db.refresh(patient)
    return patient


@pytest_asyncio.fixture
async def doctor(db_session: AsyncSession) -> Doctor:
    """Doctor aprobado que atiende los lunes con cupo de 2 pacientes."""
    return await create_doctor(db_session)


@pytest_asyncio.fixture
async def patient(db_session: AsyncSession) -> Patient:
    return await create_patient(db_session, "patient1@test.com")


@pytest_asyncio.fixture
async def other_patient(db_session: AsyncSession) -> Patient:
    return await create_patient(db_session, "patient2@test.com")


@pytest_asyncio.fixture
async def third_patient(db_session: AsyncSession) -> Patient:
    return await create_patient(db_session, "patient3@test.com")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, UserRole.ADMIN, "admin@test.com", name="Admin")
