"""
Tests de reserva, reprogramación y eliminación de citas.
"""

from datetime import timedelta

from sqlalchemy import event, func, select
from sqlalchemy.dialects import postgresql

from app.models.appointment import Appointment, AppointmentStatus
from app.models.doctor_day_off import DoctorDayOff
from app.models.doctor_schedule import WeekDay
from app.models.user import UserRole
from app.services import appointment_service
from app.services.availability_service import today
from app.tasks.email_tasks import send_email_task
from tests.conftest import auth_headers, create_doctor, create_user, next_weekday


async def _book(client, doctor, patient, target_date, reason="Chequeo"):
    return await client.post(
        f"/api/v1/appointments/book/{doctor.id}",
        json={"date": target_date.isoformat(), "reason": reason},
        headers=auth_headers(patient.user),
    )


# ── Reserva ──────────────────────────────────────────

async def test_booking_creates_pending_appointment_with_slot_times(client, doctor, patient, sent_emails):
    monday = next_weekday(WeekDay.MONDAY)

    response = await _book(client, doctor, patient, monday)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["date"] == monday.isoformat()
    assert body["start_time"] == "09:00"
    assert body["end_time"] == "12:00"
    assert body["doctor"]["name"] == "Gregory House"
    assert body["patient"]["email"] == "patient1@test.com"

    recipients = {email["to"] for email in sent_emails}
    assert recipients == {"patient1@test.com", "doctor@test.com"}


async def test_booking_accepts_datetime_and_keeps_the_day(client, doctor, patient):
    monday = next_weekday(WeekDay.MONDAY)

    response = await client.post(
        f"/api/v1/appointments/book/{doctor.id}",
        json={"date": f"{monday.isoformat()}T10:30:00Z"},
        headers=auth_headers(patient.user),
    )

    assert response.status_code == 201
    assert response.json()["date"] == monday.isoformat()


async def test_monday_capacity_of_two(client, db_session, doctor, patient, other_patient, third_patient):
    monday = next_weekday(WeekDay.MONDAY)

    first = await _book(client, doctor, patient, monday)
    assert first.status_code == 201

    seats = await client.get(
        f"/api/v1/doctors/{doctor.id}/seats", params={"date": monday.isoformat()}
    )
    assert seats.json()["slots"][0]["remaining_seats"] == 1

    second = await _book(client, doctor, other_patient, monday)
    assert second.status_code == 201

    # Cupo agotado: lista vacía en la consulta y 409 al reservar
    seats = await client.get(
        f"/api/v1/doctors/{doctor.id}/seats", params={"date": monday.isoformat()}
    )
    assert seats.json()["slots"] == []

    third = await _book(client, doctor, third_patient, monday)
    assert third.status_code == 409
    assert third.json()["detail"] == "No slots available on this date"

    # Reintento del mismo paciente: duplicado
    again = await _book(client, doctor, patient, monday)
    assert again.status_code == 409
    assert again.json()["detail"] == "You have already booked an appointment on this date"

    # El doctor cancela una cita y se libera un cupo
    cancel = await client.post(
        f"/api/v1/appointments/{second.json()['id']}/cancel",
        headers=auth_headers(doctor.user),
    )
    assert cancel.status_code == 200

    retry = await _book(client, doctor, third_patient, monday)
    assert retry.status_code == 201

    result = await db_session.execute(
        select(Appointment).where(
            Appointment.doctor_id == doctor.id,
            Appointment.date == monday,
            Appointment.status.in_([AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED]),
        )
    )
    assert len(result.scalars().all()) == 2


async def test_booking_in_the_past_is_rejected(client, doctor, patient):
    yesterday = today() - timedelta(days=1)

    response = await _book(client, doctor, patient, yesterday)

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot book appointment for past dates"


async def test_booking_without_date_is_rejected(client, doctor, patient):
    response = await client.post(
        f"/api/v1/appointments/book/{doctor.id}",
        json={"reason": "Sin fecha"},
        headers=auth_headers(patient.user),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "All fields are required"


async def test_booking_unapproved_doctor_is_not_found(client, db_session, patient):
    pending = await create_doctor(db_session, "pending@test.com", approved=False)

    response = await _book(client, pending, patient, next_weekday(WeekDay.MONDAY))

    assert response.status_code == 404


async def test_booking_unscheduled_day(client, doctor, patient):
    response = await _book(client, doctor, patient, next_weekday(WeekDay.TUESDAY))

    assert response.status_code == 409
    assert response.json()["detail"] == "Doctor is not available on Tuesdays"


async def test_booking_on_day_off(client, db_session, doctor, patient):
    monday = next_weekday(WeekDay.MONDAY)
    doctor.days_off.append(DoctorDayOff(date=monday, reason="Vacaciones"))
    await db_session.commit()

    response = await _book(client, doctor, patient, monday)

    assert response.status_code == 409
    assert response.json()["detail"] == "Doctor is off on this date"


async def test_booking_requires_patient_profile(client, db_session, doctor):
    user = await create_user(db_session, UserRole.PATIENT, "noprofile@test.com")

    response = await client.post(
        f"/api/v1/appointments/book/{doctor.id}",
        json={"date": next_weekday(WeekDay.MONDAY).isoformat()},
        headers=auth_headers(user),
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Patient profile not found"


async def test_doctors_cannot_book(client, doctor):
    response = await client.post(
        f"/api/v1/appointments/book/{doctor.id}",
        json={"date": next_weekday(WeekDay.MONDAY).isoformat()},
        headers=auth_headers(doctor.user),
    )

    assert response.status_code == 403


async def test_booking_requires_authentication(client, doctor):
    response = await client.post(
        f"/api/v1/appointments/book/{doctor.id}",
        json={"date": next_weekday(WeekDay.MONDAY).isoformat()},
    )

    assert response.status_code in (401, 403)


# ── Reprogramación ───────────────────────────────────

async def test_reschedule_moves_pending_appointment(client, doctor, patient):
    monday = next_weekday(WeekDay.MONDAY)
    booked = await _book(client, doctor, patient, monday)
    next_monday = next_weekday(WeekDay.MONDAY, weeks_ahead=1)

    response = await client.put(
        f"/api/v1/appointments/{booked.json()['id']}/reschedule",
        json={"new_date": next_monday.isoformat()},
        headers=auth_headers(patient.user),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["date"] == next_monday.isoformat()
    assert body["status"] == "pending"
    assert body["start_time"] == "09:00"


async def test_reschedule_to_same_day_does_not_count_itself(client, doctor, patient, other_patient):
    monday = next_weekday(WeekDay.MONDAY)
    await _book(client, doctor, other_patient, monday)
    booked = await _book(client, doctor, patient, monday)

    # Día lleno, pero la cita que se mueve libera su propio cupo
    response = await client.put(
        f"/api/v1/appointments/{booked.json()['id']}/reschedule",
        json={"new_date": monday.isoformat()},
        headers=auth_headers(patient.user),
    )

    assert response.status_code == 200


async def test_reschedule_into_full_day(client, db_session, doctor, patient, other_patient, third_patient):
    next_monday = next_weekday(WeekDay.MONDAY, weeks_ahead=1)
    await _book(client, doctor, other_patient, next_monday)
    await _book(client, doctor, third_patient, next_monday)
    booked = await _book(client, doctor, patient, next_weekday(WeekDay.MONDAY))

    response = await client.put(
        f"/api/v1/appointments/{booked.json()['id']}/reschedule",
        json={"new_date": next_monday.isoformat()},
        headers=auth_headers(patient.user),
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "No slots available on this date"


async def test_reschedule_accepts_datetime(client, doctor, patient):
    booked = await _book(client, doctor, patient, next_weekday(WeekDay.MONDAY))
    next_monday = next_weekday(WeekDay.MONDAY, weeks_ahead=1)

    response = await client.put(
        f"/api/v1/appointments/{booked.json()['id']}/reschedule",
        json={"new_date": f"{next_monday.isoformat()}T18:45:00+00:00"},
        headers=auth_headers(patient.user),
    )

    assert response.status_code == 200
    assert response.json()["date"] == next_monday.isoformat()


async def test_reschedule_onto_own_booking_with_same_doctor(client, doctor, patient):
    monday = next_weekday(WeekDay.MONDAY)
    next_monday = next_weekday(WeekDay.MONDAY, weeks_ahead=1)
    first = await _book(client, doctor, patient, monday)
    await _book(client, doctor, patient, next_monday)

    response = await client.put(
        f"/api/v1/appointments/{first.json()['id']}/reschedule",
        json={"new_date": next_monday.isoformat()},
        headers=auth_headers(patient.user),
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "You have already booked an appointment on this date"


async def test_reschedule_requires_new_date(client, doctor, patient):
    booked = await _book(client, doctor, patient, next_weekday(WeekDay.MONDAY))

    response = await client.put(
        f"/api/v1/appointments/{booked.json()['id']}/reschedule",
        json={},
        headers=auth_headers(patient.user),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "New date is required"


async def test_reschedule_by_another_patient_is_forbidden(client, doctor, patient, other_patient):
    booked = await _book(client, doctor, patient, next_weekday(WeekDay.MONDAY))

    response = await client.put(
        f"/api/v1/appointments/{booked.json()['id']}/reschedule",
        json={"new_date": next_weekday(WeekDay.MONDAY, weeks_ahead=1).isoformat()},
        headers=auth_headers(other_patient.user),
    )

    assert response.status_code == 403


async def test_reschedule_confirmed_appointment_is_rejected(client, doctor, patient):
    booked = await _book(client, doctor, patient, next_weekday(WeekDay.MONDAY))
    await client.post(
        f"/api/v1/appointments/{booked.json()['id']}/approve",
        headers=auth_headers(doctor.user),
    )

    response = await client.put(
        f"/api/v1/appointments/{booked.json()['id']}/reschedule",
        json={"new_date": next_weekday(WeekDay.MONDAY, weeks_ahead=1).isoformat()},
        headers=auth_headers(patient.user),
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Only pending appointments can be updated"


async def test_reschedule_unknown_appointment(client, patient):
    response = await client.put(
        "/api/v1/appointments/00000000-0000-0000-0000-000000000000/reschedule",
        json={"new_date": next_weekday(WeekDay.MONDAY).isoformat()},
        headers=auth_headers(patient.user),
    )

    assert response.status_code == 404


# ── Eliminación ──────────────────────────────────────

async def test_delete_pending_appointment_frees_seat(client, doctor, patient):
    monday = next_weekday(WeekDay.MONDAY)
    booked = await _book(client, doctor, patient, monday)

    response = await client.delete(
        f"/api/v1/appointments/{booked.json()['id']}",
        headers=auth_headers(patient.user),
    )
    assert response.status_code == 204

    seats = await client.get(
        f"/api/v1/doctors/{doctor.id}/seats", params={"date": monday.isoformat()}
    )
    assert seats.json()["slots"][0]["remaining_seats"] == 2


async def test_delete_confirmed_appointment_is_rejected(client, doctor, patient):
    booked = await _book(client, doctor, patient, next_weekday(WeekDay.MONDAY))
    await client.post(
        f"/api/v1/appointments/{booked.json()['id']}/approve",
        headers=auth_headers(doctor.user),
    )

    response = await client.delete(
        f"/api/v1/appointments/{booked.json()['id']}",
        headers=auth_headers(patient.user),
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Only pending appointments can be deleted"


async def test_delete_by_another_patient_is_forbidden(client, doctor, patient, other_patient):
    booked = await _book(client, doctor, patient, next_weekday(WeekDay.MONDAY))

    response = await client.delete(
        f"/api/v1/appointments/{booked.json()['id']}",
        headers=auth_headers(other_patient.user),
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "You are not authorized to delete this appointment"


# ── Concurrencia ─────────────────────────────────────

async def test_duplicate_inserted_after_check_is_a_conflict(client, db_session, doctor, patient, sent_emails, monkeypatch):
    monday = next_weekday(WeekDay.MONDAY)
    doctor_id, patient_id = doctor.id, patient.id
    check_duplicate = appointment_service._check_duplicate

    async def _check_then_insert_rival(db, *args, **kwargs):
        await check_duplicate(db, *args, **kwargs)
        # Otra transacción reserva lo mismo entre la verificación y el flush
        db.add(Appointment(
            doctor_id=doctor_id,
            patient_id=patient_id,
            date=monday,
            start_time="09:00",
            end_time="12:00",
            status=AppointmentStatus.PENDING,
        ))
        await db.flush()

    monkeypatch.setattr(appointment_service, "_check_duplicate", _check_then_insert_rival)

    response = await _book(client, doctor, patient, monday)

    assert response.status_code == 409
    assert response.json()["detail"] == "You have already booked an appointment on this date"

    await db_session.rollback()
    count = await db_session.scalar(
        select(func.count(Appointment.id)).where(Appointment.doctor_id == doctor_id)
    )
    assert count == 0
    assert sent_emails == []


async def test_booking_locks_doctor_row(db_session, doctor, patient):
    statements = []

    def _record(orm_execute_state):
        if orm_execute_state.is_select and not orm_execute_state.is_relationship_load:
            statements.append(orm_execute_state.statement)

    event.listen(db_session.sync_session, "do_orm_execute", _record)
    try:
        await appointment_service.create_booking(
            db_session, doctor.id, patient.user, next_weekday(WeekDay.MONDAY)
        )
    finally:
        event.remove(db_session.sync_session, "do_orm_execute", _record)

    compiled = [str(s.compile(dialect=postgresql.dialect())) for s in statements]
    assert any("FROM doctors" in sql and "FOR UPDATE" in sql for sql in compiled)


# ── Avisos por email ─────────────────────────────────

async def test_emails_are_sent_only_after_commit(db_session, doctor, patient, sent_emails):
    await appointment_service.create_booking(
        db_session, doctor.id, patient.user, next_weekday(WeekDay.MONDAY)
    )
    assert sent_emails == []

    await db_session.commit()

    assert {e["to"] for e in sent_emails} == {"patient1@test.com", "doctor@test.com"}


async def test_rolled_back_booking_sends_no_email(db_session, doctor, patient, sent_emails):
    await appointment_service.create_booking(
        db_session, doctor.id, patient.user, next_weekday(WeekDay.MONDAY)
    )

    await db_session.rollback()
    await db_session.commit()

    assert sent_emails == []


async def test_broker_failure_does_not_break_booking_or_approval(client, db_session, doctor, patient, monkeypatch):
    def _broker_down(*args, **kwargs):
        raise ConnectionError("redis unavailable")

    monkeypatch.setattr(send_email_task, "delay", _broker_down)

    booked = await _book(client, doctor, patient, next_weekday(WeekDay.MONDAY))
    assert booked.status_code == 201

    approved = await client.post(
        f"/api/v1/appointments/{booked.json()['id']}/approve",
        headers=auth_headers(doctor.user),
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "confirmed"
