"""
Plain-text transactional emails sent through the configured SMTP relay.
Called from Celery tasks, never from request handlers.
"""
import logging
import smtplib
from email.message import EmailMessage

from studio.config import settings

logger = logging.getLogger(__name__)


class EmailService:

    @staticmethod
    def is_configured() -> bool:
        return bool(settings.smtp_host)

    @staticmethod
    def send(to: str, subject: str, body: str) -> None:
        """
        Send a plain-text email.

        Raises:
            RuntimeError: SMTP relay not configured
            smtplib.SMTPException: Relay rejected the message
        """
        if not EmailService.is_configured():
            raise RuntimeError("SMTP relay not configured. Set SMTP_HOST.")

        message = EmailMessage()
        message["From"] = f"{settings.app_name} <{settings.email_from}>"
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as smtp:
            smtp.starttls()
            if settings.smtp_user:
                smtp.login(settings.smtp_user, settings.smtp_password or "")
            smtp.send_message(message)

        logger.info(f"Email sent: {subject}", extra={"event": "email_sent", "subject": subject})

    @staticmethod
    def verification_email(username: str, token: str) -> tuple[str, str]:
        """Subject and body for the sign-up verification email."""
        url = f"{settings.public_api_url.rstrip('/')}/api/auth/verify?token={token}"
        subject = f"Verify Your {settings.app_name} Account"
        body = (
            f"Hi {username},\n\n"
            f"Welcome to {settings.app_name}! Please verify your email address to activate "
            "your account and start creating AI transformations.\n\n"
            f"{url}\n\n"
            f"Your account comes with {settings.welcome_bonus_xp} XP to get started.\n\n"
            "If you did not sign up, you can ignore this email.\n"
        )
        return subject, body

    @staticmethod
    def receipt_email(username: str, package_name: str, xp_added: int, amount: str, payment_id: str, new_balance: int) -> tuple[str, str]:
        """Subject and body for the XP purchase receipt."""
        subject = f"Payment Successful - {xp_added} XP Added!"
        body = (
            f"Hi {username},\n\n"
            "Thank you for your purchase.\n\n"
            f"Package: {package_name}\n"
            f"Amount paid: {amount}\n"
            f"XP added: {xp_added}\n"
            f"New balance: {new_balance} XP\n"
            f"Payment ID: {payment_id}\n"
        )
        return subject, body
