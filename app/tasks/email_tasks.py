"""
Tareas Celery para envío de notificaciones por email.
Se encolan desde los servicios sin esperar resultado.
"""

import logging

from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=2,
    default_retry_delay=30,
    name="notifications.send_email",
)
def send_email_task(self, to: str, subject: str, html: str):
    """Envía un email; reintenta ante fallos SMTP y finalmente solo registra el error."""
    from app.services.notification_service import EmailError, send_email

    try:
        result = send_email(to, subject, html)
        logger.info(f"Email '{subject}' a {to}: {result['status']}")
    except EmailError as exc:
        if self.request.retries >= self.max_retries:
            logger.error(f"Email '{subject}' a {to} descartado: {exc.message}")
            return
        raise self.retry(exc=exc)
