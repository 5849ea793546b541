from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional

from fastapi import BackgroundTasks
from loguru import logger
from sqlalchemy.orm import Session

from projecthub.config import settings
from projecthub.models.notification import Notification
from projecthub.models.user import User
from projecthub.utils.email import send_notification_email


class NotificationType:
    TASK_ASSIGNED = "task_assigned"
    TASK_SUBMITTED = "task_submitted"
    TASK_REVIEWED = "task_reviewed"
    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"
    TEAM_MEMBER_ADDED = "team_member_added"
    TEAM_MEMBER_REMOVED = "team_member_removed"
    CLIENT_REMOVED = "client_removed"
    USER_ONBOARDED = "user_onboarded"


# used only outside a request (scheduler sweeps); shut down by the app lifespan
email_executor = ThreadPoolExecutor(max_workers=settings.EMAIL_WORKERS, thread_name_prefix="email")


def _send_notification_email_safely(
    to_email: str,
    recipient_name: str,
    title: str,
    message: str
) -> None:
    try:
        send_notification_email(
            to_email=to_email,
            recipient_name=recipient_name,
            title=title,
            message=message
        )
    except Exception:
        logger.exception(f"Email sending failed for {to_email}")


def dispatch_emails(
    recipients: Iterable[tuple],
    title: str,
    message: str,
    background_tasks: Optional[BackgroundTasks] = None
) -> None:
    for email, name in recipients:
        if not email:
            continue
        if background_tasks is not None:
            background_tasks.add_task(_send_notification_email_safely, email, name, title, message)
            continue
        try:
            email_executor.submit(_send_notification_email_safely, email, name, title, message)
        except RuntimeError:
            # executor already shut down
            logger.warning(f"Email executor unavailable, dropping email to {email}")


def notify(
    db: Session,
    user_ids: Iterable[Optional[int]],
    type: str,
    title: str,
    message: str,
    project_id: Optional[int] = None,
    task_id: Optional[int] = None,
    background_tasks: Optional[BackgroundTasks] = None
) -> List[Notification]:
    """Best-effort: failures are logged, never raised. Recipients are not de-duplicated."""
    recipient_ids = [int(uid) for uid in user_ids if uid is not None]
    if not recipient_ids:
        return []

    try:
        notifications = [
            Notification(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                project_id=project_id,
                task_id=task_id,
                is_read=False,
            )
            for user_id in recipient_ids
        ]
        db.add_all(notifications)
        db.commit()

        recipients = db.query(User.email, User.name).filter(User.id.in_(set(recipient_ids))).all()
    except Exception:
        db.rollback()
        logger.exception(f"Failed to create '{type}' notifications for users {recipient_ids}")
        return []

    logger.debug(f"Created {len(notifications)} '{type}' notification(s)")
    try:
        dispatch_emails(recipients, title, message, background_tasks)
    except Exception:
        logger.exception(f"Failed to queue '{type}' notification emails")
    return notifications
