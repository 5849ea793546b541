from datetime import date, datetime, timezone
from typing import Iterable, List, Optional

from fastapi import BackgroundTasks
from loguru import logger
from sqlalchemy.orm import Session, joinedload

from projecthub.config import settings
from projecthub.core import permissions
from projecthub.core.exceptions import Forbidden, InvalidTransition, NotFound, ValidationFailed
from projecthub.models.project import Project, ProjectStatus
from projecthub.models.task import ReviewRating, SubmissionFile, Task, TaskPriority, TaskStatus
from projecthub.models.user import User
from projecthub.services import file_storage
from projecthub.services.notification_service import NotificationType, notify
from projecthub.services.progress_service import recompute_progress

SUBMITTABLE_STATES = {TaskStatus.INITIATED.value, TaskStatus.REJECTED.value}
PM_REVIEWABLE_STATES = {TaskStatus.SUBMITTED.value, TaskStatus.PM_REVIEWED.value}
REVIEW_RATINGS = {ReviewRating.APPROVED.value, ReviewRating.REJECTED.value}
PRIORITIES = {priority.value for priority in TaskPriority}

PM_STAGE = "pm"
CLIENT_STAGE = "client"


def _load_task(db: Session, task_id: int) -> Task:
    task = db.query(Task).options(joinedload(Task.project)).filter(Task.id == task_id).first()
    if not task:
        raise NotFound("Task")
    return task


def _validate_assignee(project: Project, assigned_to: Optional[int]) -> List[str]:
    if assigned_to is not None and assigned_to not in project.team_member_ids:
        return ["Assigned user must be a team member of the project"]
    return []


def _clean_text(value: Optional[str]) -> str:
    return (value or "").strip()


# =====================================
# READ
# =====================================
def get_task(db: Session, actor: User, task_id: int) -> Task:
    task = _load_task(db, task_id)
    if not permissions.has_task_access(actor, task):
        raise Forbidden("Access denied")
    return task


def list_tasks(db: Session, actor: User, project_id: Optional[int] = None) -> List[Task]:
    query = db.query(Task).filter(permissions.task_scope_filter(actor))
    if project_id is not None:
        query = query.filter(Task.project_id == project_id)
    return query.order_by(Task.created_at.desc(), Task.id.desc()).all()


# =====================================
# CREATE
# =====================================
def create_task(
    db: Session,
    actor: User,
    *,
    title: Optional[str],
    project_id: Optional[int],
    description: Optional[str] = None,
    assigned_to: Optional[int] = None,
    priority: Optional[str] = None,
    due_date: Optional[date] = None,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Task:
    errors = []
    title = _clean_text(title)
    if not title:
        errors.append("Task title is required")
    if project_id is None:
        errors.append("Valid project ID is required")
    priority = priority or TaskPriority.MEDIUM.value
    if priority not in PRIORITIES:
        errors.append("Priority must be low, medium or high")
    if project_id is None:
        raise ValidationFailed(errors)

    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise NotFound("Project")

    if not permissions.is_project_manager_of(actor, project):
        raise Forbidden("Only project manager or admin can create tasks")

    errors.extend(_validate_assignee(project, assigned_to))
    if errors:
        raise ValidationFailed(errors)

    task = Task(
        title=title,
        description=_clean_text(description) or None,
        project_id=project.id,
        assigned_to=assigned_to,
        assigned_by=actor.id,
        priority=priority,
        due_date=due_date,
        status=TaskStatus.INITIATED.value,
        pm_rating=ReviewRating.PENDING.value,
        client_rating=ReviewRating.PENDING.value,
    )
    task.calculate_progress()
    db.add(task)

    if project.status == ProjectStatus.NOT_STARTED.value:
        project.status = ProjectStatus.IN_PROGRESS.value
        if project.start_date is None:
            project.start_date = date.today()
        logger.info(f"Project {project.id} started by its first task")

    db.commit()
    db.refresh(task)
    logger.info(f"Task {task.id} created in project {project.id} by user {actor.id}")

    recompute_progress(db, project)

    if assigned_to is not None:
        notify(
            db,
            [assigned_to],
            NotificationType.TASK_ASSIGNED,
            "New Task Assigned",
            f"You have been assigned a new task: {task.title}",
            project_id=project.id,
            task_id=task.id,
            background_tasks=background_tasks,
        )
    return task


# =====================================
# UPDATE / DELETE (PM only)
# =====================================
def update_task(
    db: Session,
    actor: User,
    task_id: int,
    changes: dict,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Task:
    task = _load_task(db, task_id)
    project = task.project
    if not permissions.is_project_manager_of(actor, project):
        raise Forbidden("Only project manager can update tasks")

    errors = []
    if "title" in changes:
        title = _clean_text(changes["title"])
        if not title:
            errors.append("Task title cannot be empty")
        changes["title"] = title
    if "priority" in changes and changes["priority"] not in PRIORITIES:
        errors.append("Priority must be low, medium or high")
    if changes.get("assigned_to") is not None:
        errors.extend(_validate_assignee(project, changes["assigned_to"]))
    if errors:
        raise ValidationFailed(errors)

    previous_assignee = task.assigned_to
    for field in ("title", "description", "priority", "due_date", "assigned_to"):
        if field in changes:
            setattr(task, field, changes[field])

    db.commit()
    db.refresh(task)

    if task.assigned_to is not None and task.assigned_to != previous_assignee:
        notify(
            db,
            [task.assigned_to],
            NotificationType.TASK_ASSIGNED,
            "New Task Assigned",
            f"You have been assigned a new task: {task.title}",
            project_id=project.id,
            task_id=task.id,
            background_tasks=background_tasks,
        )
    return task


def delete_task(db: Session, actor: User, task_id: int) -> None:
    task = _load_task(db, task_id)
    project = task.project
    if not permissions.is_project_manager_of(actor, project):
        raise Forbidden("Only project manager can delete tasks")

    stored_names = [f.stored_name for f in task.submission_files]
    db.delete(task)
    db.commit()
    logger.info(f"Task {task_id} deleted from project {project.id} by user {actor.id}")

    for stored_name in stored_names:
        file_storage.delete_stored_file(stored_name)
    recompute_progress(db, project)


# =====================================
# SUBMIT WORK
# =====================================
def submit_work(
    db: Session,
    actor: User,
    task_id: int,
    work: Optional[str],
    uploads: Iterable = (),
    background_tasks: Optional[BackgroundTasks] = None,
) -> Task:
    task = _load_task(db, task_id)
    project = task.project

    if not permissions.can_submit_work(actor, task):
        raise Forbidden("Only assigned team member, project manager, client, or admin can submit work")

    if task.status not in SUBMITTABLE_STATES:
        raise InvalidTransition(f"Task cannot be submitted while {task.status}")

    uploads = [upload for upload in uploads if upload is not None and upload.filename]
    errors = []
    work = _clean_text(work)
    if not work:
        errors.append("Work description is required")
    if len(uploads) > settings.MAX_SUBMISSION_FILES:
        errors.append(f"At most {settings.MAX_SUBMISSION_FILES} files can be attached")
    if errors:
        raise ValidationFailed(errors)

    stored = []
    try:
        for upload in uploads:
            stored.append(file_storage.save_upload(upload, prefix="task"))

        previous_files = list(task.submission_files)
        previous_names = [f.stored_name for f in previous_files]
        task.submission_files = [
            SubmissionFile(
                original_name=item.original_name,
                stored_name=item.stored_name,
                path=item.path,
                size=item.size,
                mime_type=item.mime_type,
            )
            for item in stored
        ]

        now = datetime.now(timezone.utc)
        task.submission_work = work
        task.submitted_at = now
        task.status = TaskStatus.SUBMITTED.value
        task.calculate_progress()
        db.commit()
    except Exception:
        db.rollback()
        file_storage.discard_stored_files(item.stored_name for item in stored)
        raise

    file_storage.discard_stored_files(previous_names)
    db.refresh(task)
    logger.info(f"Task {task.id} submitted by user {actor.id} with {len(stored)} file(s)")

    recompute_progress(db, project)
    notify(
        db,
        [project.project_manager_id, project.client_id],
        NotificationType.TASK_SUBMITTED,
        "Task Submitted",
        f'Task "{task.title}" has been submitted for review',
        project_id=project.id,
        task_id=task.id,
        background_tasks=background_tasks,
    )
    return task


# =====================================
# REVIEW
# =====================================
def review_stage(actor: User, task: Task) -> str:
    """An admin reviewing a PM-approved task acts as the client."""
    project = task.project
    is_pm = permissions.is_assigned_manager(actor, project)
    is_client = permissions.is_project_client(actor, project)
    is_admin = permissions.is_admin(actor)

    if is_client and not is_pm:
        return CLIENT_STAGE
    if is_admin and _awaiting_client(task):
        return CLIENT_STAGE
    if is_pm or is_admin:
        return PM_STAGE
    raise Forbidden("Only PM, client, or admin can review tasks")


def _awaiting_client(task: Task) -> bool:
    return (
        task.status == TaskStatus.PM_REVIEWED.value
        and task.pm_rating == ReviewRating.APPROVED.value
    )


def review_task(
    db: Session,
    actor: User,
    task_id: int,
    rating: Optional[str],
    feedback: Optional[str] = None,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Task:
    if rating not in REVIEW_RATINGS:
        raise ValidationFailed(["Rating must be approved or rejected"])

    task = _load_task(db, task_id)
    project = task.project
    stage = review_stage(actor, task)
    feedback = _clean_text(feedback) or None
    approved = rating == ReviewRating.APPROVED.value

    if stage == PM_STAGE:
        if task.status not in PM_REVIEWABLE_STATES:
            raise InvalidTransition("Task is not in a state for PM review")
        task.pm_rating = rating
        task.pm_feedback = feedback
        task.status = TaskStatus.PM_REVIEWED.value if approved else TaskStatus.REJECTED.value
    else:
        if not _awaiting_client(task):
            raise InvalidTransition("Task must be approved by PM before client review")
        task.client_rating = rating
        task.client_feedback = feedback
        task.status = TaskStatus.CLIENT_REVIEWED.value if approved else TaskStatus.REJECTED.value

    if task.status == TaskStatus.CLIENT_REVIEWED.value and task.client_rating == ReviewRating.APPROVED.value:
        task.status = TaskStatus.COMPLETED.value

    task.calculate_progress()
    db.commit()
    db.refresh(task)
    logger.info(f"Task {task.id} {rating} at {stage} stage by user {actor.id}; now {task.status}")

    recompute_progress(db, project)

    if task.assigned_to is not None:
        reviewer = "PM" if stage == PM_STAGE else "client"
        notify(
            db,
            [task.assigned_to],
            NotificationType.TASK_REVIEWED,
            "Task Reviewed",
            f'Your task "{task.title}" has been {rating} by {reviewer}',
            project_id=project.id,
            task_id=task.id,
            background_tasks=background_tasks,
        )
    return task
