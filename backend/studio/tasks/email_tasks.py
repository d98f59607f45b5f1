"""
Celery tasks for transactional email.
Request handlers enqueue these with .delay() so SMTP latency never blocks a response.
"""
import logging
import smtplib

from studio.services.email_service import EmailService
from studio.utils.metrics import emails_sent_total
from studio.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="send_verification_email", bind=True, max_retries=3)
def send_verification_email_task(self, email: str, username: str, token: str):
    """Send the sign-up verification link."""
    subject, body = EmailService.verification_email(username, token)
    try:
        EmailService.send(email, subject, body)
    except smtplib.SMTPException as e:
        emails_sent_total.labels(kind="verification", status="retry").inc()
        logger.warning(
            f"Verification email failed, retrying: {e}",
            extra={"event": "email_retry", "kind": "verification"}
        )
        raise self.retry(exc=e, countdown=60)

    emails_sent_total.labels(kind="verification", status="sent").inc()
    return {"status": "sent"}


@celery_app.task(name="send_receipt_email", bind=True, max_retries=3)
def send_receipt_email_task(
    self,
    email: str,
    username: str,
    package_name: str,
    xp_added: int,
    amount: str,
    payment_id: str,
    new_balance: int,
):
    """Send the XP purchase receipt."""
    subject, body = EmailService.receipt_email(username, package_name, xp_added, amount, payment_id, new_balance)
    try:
        EmailService.send(email, subject, body)
    except smtplib.SMTPException as e:
        emails_sent_total.labels(kind="receipt", status="retry").inc()
        logger.warning(
            f"Receipt email failed, retrying: {e}",
            extra={"event": "email_retry", "kind": "receipt"}
        )
        raise self.retry(exc=e, countdown=60)

    emails_sent_total.labels(kind="receipt", status="sent").inc()
    return {"status": "sent"}
