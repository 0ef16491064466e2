"""
Servicio de notificaciones por email.

Envía mensajes para:
- Reserva creada (paciente y doctor)
- Cambios de estado de la cita (aprobada, cancelada, completada)
- Alta de perfil de paciente
- Revisión del perfil de doctor por el admin

El envío real ocurre en la tarea Celery `notifications.send_email`.
`notify()` registra el email en la sesión y se encola tras el commit: un
rollback lo descarta y un fallo del broker o del SMTP nunca afecta la
operación que originó la notificación.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from app.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class EmailError(Exception):
    """Error de comunicación con el servidor SMTP."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def send_email(to: str, subject: str, html: str) -> dict:
    """
    Envía un email HTML vía SMTP. Se ejecuta dentro del worker Celery.

    Returns:
        dict con status ("sent" o "simulated") y destinatario.
    """
    # ── Modo simulación (sin credenciales) ───────────
    if not settings.smtp_configured:
        logger.warning("SMTP no configurado: simulando envío")
        logger.info(f"[SIMULATED EMAIL] To: {to} | Subject: {subject}")
        return {"status": "simulated", "to": to}

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.SMTP_FROM_EMAIL
    msg["To"] = to
    msg.attach(MIMEText(html, "html"))

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
            if settings.SMTP_USE_TLS:
                server.starttls()
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            server.sendmail(settings.SMTP_FROM_EMAIL, [to], msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Error SMTP enviando a {to}: {e}")
        raise EmailError(f"Failed to send email: {e}")

    return {"status": "sent", "to": to}


# ── Envío diferido al commit ─────────────────────────

_PENDING_KEY = "pending_emails"


def notify(db: AsyncSession, to: str | None, subject: str, html: str) -> None:
    """
    Registra un email en la sesión. Se encola recién cuando la transacción
    hace commit; si hace rollback, se descarta.
    """
    if not to:
        return
    db.info.setdefault(_PENDING_KEY, []).append((to, subject, html))


def _enqueue(to: str, subject: str, html: str) -> None:
    """Encola un email sin esperar resultado. Los errores solo se registran."""
    from app.tasks.email_tasks import send_email_task

    try:
        send_email_task.delay(to, subject, html)
    except Exception as e:
        logger.warning(f"No se pudo encolar email '{subject}' para {to}: {e}")


@event.listens_for(Session, "after_commit")
def _send_pending_emails(session: Session) -> None:
    for to, subject, html in session.info.pop(_PENDING_KEY, []):
        _enqueue(to, subject, html)


@event.listens_for(Session, "after_rollback")
def _discard_pending_emails(session: Session) -> None:
    discarded = session.info.pop(_PENDING_KEY, [])
    if discarded:
        logger.info(f"Rollback: {len(discarded)} email(s) descartados")


# ── Plantillas ───────────────────────────────────────

def build_booking_created_for_patient(
    patient_name: str,
    doctor_name: str,
    appointment_date: str,
    start_time: str | None,
    end_time: str | None,
) -> tuple[str, str]:
    """Mensaje al paciente cuando su reserva queda pendiente."""
    subject = "Appointment booked"
    html = (
        f"<h2>Hello {patient_name},</h2>"
        f"<p>Your appointment with Dr. {doctor_name} on {appointment_date} "
        f"({start_time} - {end_time}) has been booked and is waiting for the "
        f"doctor's confirmation.</p>"
    )
    return subject, html


def build_booking_created_for_doctor(
    doctor_name: str,
    patient_name: str,
    appointment_date: str,
) -> tuple[str, str]:
    subject = "New appointment request"
    html = (
        f"<h2>Hello Dr. {doctor_name},</h2>"
        f"<p>{patient_name} requested an appointment on {appointment_date}. "
        f"Please review it in your dashboard.</p>"
    )
    return subject, html


def build_status_changed(
    patient_name: str,
    doctor_name: str,
    appointment_date: str,
    status: str,
) -> tuple[str, str]:
    """Mensaje al paciente ante cualquier transición de estado."""
    subject = f"Appointment {status}"
    html = (
        f"<h2>Hello {patient_name},</h2>"
        f"<p>Your appointment with Dr. {doctor_name} on {appointment_date} "
        f"is now <strong>{status}</strong>.</p>"
    )
    return subject, html


def build_patient_welcome(patient_name: str) -> tuple[str, str]:
    subject = "Patient Profile Created"
    html = (
        f"<h2>Hello {patient_name},</h2>"
        "<p>Your patient profile has been created successfully.</p>"
        "<p>You can now book appointments with doctors through our platform.</p>"
    )
    return subject, html


def build_doctor_review(doctor_name: str, approved: bool) -> tuple[str, str]:
    if approved:
        subject = "Doctor profile approved"
        body = "Your profile has been approved. Patients can now book appointments with you."
    else:
        subject = "Doctor profile rejected"
        body = "Your profile was not approved. Please contact the administrator."
    html = f"<h2>Hello Dr. {doctor_name},</h2><p>{body}</p>"
    return subject, html
