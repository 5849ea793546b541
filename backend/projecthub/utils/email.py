import smtplib
from email.message import EmailMessage

from loguru import logger

from projecthub.config import settings


def email_configured() -> bool:
    return bool(settings.SMTP_HOST and settings.SMTP_USERNAME and settings.SMTP_FROM_EMAIL)


def send_notification_email(
    to_email: str,
    recipient_name: str,
    title: str,
    message: str
) -> bool:
    if not email_configured():
        logger.debug(f"Email not configured. Skipping email to {to_email}")
        return False

    msg = EmailMessage()
    msg["Subject"] = title or "New Notification"
    msg["From"] = settings.SMTP_FROM_EMAIL
    msg["To"] = to_email

    msg.set_content(f"""
Hello {recipient_name},

{title}

{message}

Please log in to your dashboard to view more details.

This is an automated notification from ProjectHub.
Please do not reply to this email.
""")

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        server.starttls()
        server.login(
            settings.SMTP_USERNAME,
            settings.SMTP_PASSWORD
        )
        server.send_message(msg)

    logger.info(f"Notification email sent to {to_email}")
    return True
