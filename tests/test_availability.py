"""
Tests del resolver de disponibilidad y de la consulta pública de cupos.
"""

from datetime import date, datetime
from types import SimpleNamespace

from app.models.appointment import Appointment, AppointmentStatus
from app.models.doctor_day_off import DoctorDayOff
from app.models.doctor_schedule import WeekDay
from app.services.availability_service import (
    DAY_OFF,
    NOT_SCHEDULED,
    find_weekly_slot,
    normalize_date,
    resolve_availability,
    weekday_of,
)
from tests.conftest import create_doctor, next_weekday


def _book(db, doctor, patient, target_date, status=AppointmentStatus.PENDING):
    appt = Appointment(
        doctor_id=doctor.id,
        patient_id=patient.id,
        date=target_date,
        start_time="09:00",
        end_time="12:00",
        status=status,
    )
    db.add(appt)
    return appt


# ── Helpers puros ────────────────────────────────────

def test_weekday_of_uses_calendar_names():
    assert weekday_of(date(2024, 1, 1)) == WeekDay.MONDAY
    assert weekday_of(date(2024, 1, 7)) == WeekDay.SUNDAY


def test_normalize_date_drops_time():
    assert normalize_date(datetime(2024, 3, 4, 18, 30)) == date(2024, 3, 4)
    assert normalize_date(date(2024, 3, 4)) == date(2024, 3, 4)


def test_find_weekly_slot_returns_first_match():
    slots = [
        SimpleNamespace(day=WeekDay.TUESDAY, start_time="08:00"),
        SimpleNamespace(day=WeekDay.MONDAY, start_time="09:00"),
        SimpleNamespace(day=WeekDay.MONDAY, start_time="15:00"),
    ]
    assert find_weekly_slot(slots, WeekDay.MONDAY).start_time == "09:00"
    assert find_weekly_slot(slots, WeekDay.FRIDAY) is None


# ── Resolver ─────────────────────────────────────────

async def test_free_monday_has_full_capacity(db_session, doctor):
    result = await resolve_availability(db_session, doctor, next_weekday(WeekDay.MONDAY))

    assert result.available is True
    assert result.remaining == 2
    assert result.slot.start_time == "09:00"
    assert result.slot.end_time == "12:00"


async def test_unscheduled_day_reports_not_scheduled(db_session, doctor):
    result = await resolve_availability(db_session, doctor, next_weekday(WeekDay.TUESDAY))

    assert result.available is False
    assert result.reason == NOT_SCHEDULED
    assert result.slot is None


async def test_day_off_overrides_weekly_slot(db_session, doctor):
    monday = next_weekday(WeekDay.MONDAY)
    doctor.days_off.append(DoctorDayOff(date=monday, reason="Congreso"))
    await db_session.commit()

    result = await resolve_availability(db_session, doctor, monday)

    assert result.available is False
    assert result.reason == DAY_OFF


async def test_only_active_appointments_consume_capacity(db_session, doctor, patient, other_patient, third_patient):
    monday = next_weekday(WeekDay.MONDAY)
    _book(db_session, doctor, patient, monday, AppointmentStatus.CONFIRMED)
    _book(db_session, doctor, other_patient, monday, AppointmentStatus.CANCELLED)
    _book(db_session, doctor, third_patient, monday, AppointmentStatus.COMPLETED)
    await db_session.commit()

    result = await resolve_availability(db_session, doctor, monday)

    assert result.available is True
    assert result.remaining == 1


async def test_full_day_is_unavailable_without_reason(db_session, doctor, patient, other_patient):
    monday = next_weekday(WeekDay.MONDAY)
    _book(db_session, doctor, patient, monday)
    _book(db_session, doctor, other_patient, monday, AppointmentStatus.CONFIRMED)
    await db_session.commit()

    result = await resolve_availability(db_session, doctor, monday)

    assert result.available is False
    assert result.reason is None
    assert result.remaining == 0


async def test_excluded_appointment_does_not_count(db_session, doctor, patient, other_patient):
    monday = next_weekday(WeekDay.MONDAY)
    _book(db_session, doctor, patient, monday)
    moving = _book(db_session, doctor, other_patient, monday)
    await db_session.commit()

    result = await resolve_availability(
        db_session, doctor, monday, exclude_appointment_id=moving.id
    )

    assert result.remaining == 1


async def test_first_slot_of_the_day_sets_capacity(db_session):
    doctor = await create_doctor(
        db_session,
        "split@test.com",
        slots=[
            (WeekDay.MONDAY, "09:00", "12:00", 1),
            (WeekDay.MONDAY, "15:00", "18:00", 10),
        ],
    )

    result = await resolve_availability(db_session, doctor, next_weekday(WeekDay.MONDAY))

    assert result.remaining == 1
    assert result.slot.start_time == "09:00"


# ── Consulta pública de cupos ────────────────────────

async def test_seats_endpoint_lists_remaining(client, doctor):
    monday = next_weekday(WeekDay.MONDAY)

    response = await client.get(
        f"/api/v1/doctors/{doctor.id}/seats", params={"date": monday.isoformat()}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Available slots fetched successfully"
    assert body["slots"] == [{
        "date": monday.isoformat(),
        "day": "Monday",
        "start_time": "09:00",
        "end_time": "12:00",
        "remaining_seats": 2,
    }]


async def test_seats_endpoint_returns_empty_list_when_not_scheduled(client, doctor):
    tuesday = next_weekday(WeekDay.TUESDAY)

    response = await client.get(
        f"/api/v1/doctors/{doctor.id}/seats", params={"date": tuesday.isoformat()}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["slots"] == []
    assert body["reason"] == NOT_SCHEDULED
    assert body["message"] == "Doctor is not available on Tuesdays"


async def test_seats_endpoint_returns_empty_list_on_day_off(client, db_session, doctor):
    monday = next_weekday(WeekDay.MONDAY)
    doctor.days_off.append(DoctorDayOff(date=monday))
    await db_session.commit()

    response = await client.get(
        f"/api/v1/doctors/{doctor.id}/seats", params={"date": monday.isoformat()}
    )

    assert response.status_code == 200
    assert response.json()["slots"] == []
    assert response.json()["message"] == "Doctor is off on this date"


async def test_seats_endpoint_unknown_doctor(client):
    response = await client.get(
        "/api/v1/doctors/00000000-0000-0000-0000-000000000000/seats",
        params={"date": "2030-01-07"},
    )
    assert response.status_code == 404


async def test_seats_endpoint_ignores_time_of_day(client, doctor):
    monday = next_weekday(WeekDay.MONDAY)

    response = await client.get(
        f"/api/v1/doctors/{doctor.id}/seats",
        params={"date": f"{monday.isoformat()}T10:30:00"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["date"] == monday.isoformat()
    assert body["slots"][0]["remaining_seats"] == 2


async def test_seats_endpoint_hides_unapproved_doctor(client, db_session):
    pending = await create_doctor(db_session, "pending@test.com", approved=False)

    response = await client.get(
        f"/api/v1/doctors/{pending.id}/seats",
        params={"date": next_weekday(WeekDay.MONDAY).isoformat()},
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Doctor not found"
