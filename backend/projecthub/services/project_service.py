from datetime import date
from typing import List, Optional

from fastapi import BackgroundTasks
from loguru import logger
from sqlalchemy.orm import Session

from projecthub.core import permissions
from projecthub.core.exceptions import Forbidden, NotFound, ValidationFailed
from projecthub.models.project import Project, ProjectStatus
from projecthub.models.task import Task
from projecthub.models.user import User, UserRole
from projecthub.services import file_storage
from projecthub.services.notification_service import NotificationType, notify
from projecthub.services.progress_service import recompute_progress

PROJECT_STATUSES = {status.value for status in ProjectStatus}

STATUS_MESSAGES = {
    ProjectStatus.IN_PROGRESS.value: "has been started",
    ProjectStatus.COMPLETED.value: "has been completed",
    ProjectStatus.ON_HOLD.value: "has been put on hold",
    ProjectStatus.NOT_STARTED.value: "status has been updated",
}


def get_project_or_404(db: Session, project_id: int) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise NotFound("Project")
    return project


def _manageable_project(db: Session, actor: User, project_id: int) -> Project:
    project = get_project_or_404(db, project_id)
    if not permissions.is_project_manager_of(actor, project):
        raise Forbidden("Only project manager or admin can perform this action")
    return project


def _active_user_with_role(db: Session, user_id: int, role: str) -> Optional[User]:
    return db.query(User).filter(
        User.id == user_id,
        User.role == role,
        User.is_active == True,  # noqa: E712
    ).first()


def _validate_dates(start_date: Optional[date], end_date: Optional[date]) -> List[str]:
    if start_date and end_date and end_date < start_date:
        return ["Project end date cannot be before start date"]
    return []


# =====================================
# READ
# =====================================
def list_projects(db: Session, actor: User) -> List[Project]:
    return db.query(Project).filter(
        permissions.project_scope_filter(actor)
    ).order_by(Project.created_at.desc(), Project.id.desc()).all()


def get_project(db: Session, actor: User, project_id: int) -> Project:
    project = get_project_or_404(db, project_id)
    if not permissions.has_project_access(actor, project):
        raise Forbidden("Access denied")
    return project


# =====================================
# CREATE
# =====================================
def create_project(
    db: Session,
    actor: User,
    *,
    title: Optional[str],
    description: Optional[str] = None,
    client_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    project_manager_id: Optional[int] = None,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Project:
    if actor.role not in (UserRole.ADMIN.value, UserRole.PROJECT_MANAGER.value):
        raise Forbidden("Access denied. Insufficient permissions.")

    errors = []
    title = (title or "").strip()
    if not title:
        errors.append("Project title is required")
    errors.extend(_validate_dates(start_date, end_date))

    manager_id = actor.id
    if project_manager_id is not None and project_manager_id != actor.id:
        if not permissions.is_admin(actor):
            raise Forbidden("Only admins can assign another project manager")
        if not _active_user_with_role(db, project_manager_id, UserRole.PROJECT_MANAGER.value):
            errors.append("Invalid project manager ID")
        manager_id = project_manager_id

    if client_id is not None and not _active_user_with_role(db, client_id, UserRole.CLIENT.value):
        errors.append("Invalid client ID")

    if errors:
        raise ValidationFailed(errors)

    project = Project(
        title=title,
        description=(description or "").strip() or None,
        project_manager_id=manager_id,
        client_id=client_id,
        start_date=start_date,
        end_date=end_date,
        status=ProjectStatus.NOT_STARTED.value,
        progress=0,
    )
    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info(f"Project {project.id} created by user {actor.id}")

    if client_id is not None:
        notify(
            db,
            [client_id],
            NotificationType.PROJECT_CREATED,
            "New Project",
            f"You have been added to project: {project.title}",
            project_id=project.id,
            background_tasks=background_tasks,
        )
    return project


# =====================================
# UPDATE (including status changes)
# =====================================
def update_project(
    db: Session,
    actor: User,
    project_id: int,
    changes: dict,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Project:
    project = _manageable_project(db, actor, project_id)

    errors = []
    if "title" in changes:
        changes["title"] = (changes["title"] or "").strip()
        if not changes["title"]:
            errors.append("Project title cannot be empty")
    status = changes.get("status")
    if status is not None and status not in PROJECT_STATUSES:
        errors.append("Status must be one of: " + ", ".join(sorted(PROJECT_STATUSES)))
    client_id = changes.get("client_id")
    if client_id is not None and not _active_user_with_role(db, client_id, UserRole.CLIENT.value):
        errors.append("Invalid client ID")
    errors.extend(_validate_dates(
        changes.get("start_date", project.start_date),
        changes.get("end_date", project.end_date),
    ))
    if errors:
        raise ValidationFailed(errors)

    for field in ("title", "description", "start_date", "end_date"):
        if field in changes:
            setattr(project, field, changes[field])
    if client_id is not None:
        project.client_id = client_id

    if status is not None:
        project.status = status
        if status == ProjectStatus.IN_PROGRESS.value and project.start_date is None:
            project.start_date = date.today()
        if status == ProjectStatus.COMPLETED.value and project.end_date is None:
            project.end_date = date.today()

    db.commit()
    db.refresh(project)
    logger.info(f"Project {project.id} updated by user {actor.id}")

    if status == ProjectStatus.COMPLETED.value:
        recompute_progress(db, project)

    if status is not None:
        message = f'Project "{project.title}" {STATUS_MESSAGES[status]}'
    else:
        message = f'Project "{project.title}" has been updated'
    notify(
        db,
        [*sorted(project.team_member_ids), project.client_id],
        NotificationType.PROJECT_UPDATED,
        "Project Updated",
        message,
        project_id=project.id,
        background_tasks=background_tasks,
    )
    return project


def update_project_status(
    db: Session,
    actor: User,
    project_id: int,
    status: str,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Project:
    return update_project(db, actor, project_id, {"status": status}, background_tasks=background_tasks)


# =====================================
# PARTICIPANTS
# =====================================
def add_team_member(
    db: Session,
    actor: User,
    project_id: int,
    user_id: Optional[int],
    background_tasks: Optional[BackgroundTasks] = None,
) -> Project:
    project = _manageable_project(db, actor, project_id)

    if user_id is None:
        raise ValidationFailed(["Valid user ID is required"])
    user = _active_user_with_role(db, user_id, UserRole.TEAM_MEMBER.value)
    if not user:
        raise ValidationFailed(["Invalid team member ID"])
    if user.id in project.team_member_ids:
        raise ValidationFailed(["Team member already in project"])

    project.team_members.append(user)
    db.commit()
    db.refresh(project)
    logger.info(f"User {user.id} added to project {project.id}")

    notify(
        db,
        [user.id],
        NotificationType.TEAM_MEMBER_ADDED,
        "Added to Project",
        f"You have been added to project: {project.title}",
        project_id=project.id,
        background_tasks=background_tasks,
    )
    return project


def remove_team_member(
    db: Session,
    actor: User,
    project_id: int,
    user_id: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Project:
    project = _manageable_project(db, actor, project_id)
    if not permissions.can_remove_participants(actor, project):
        raise Forbidden("Team members can only be removed after project completion or by admin")
    if user_id not in project.team_member_ids:
        raise NotFound("Team member")

    project.team_members = [member for member in project.team_members if member.id != user_id]
    db.commit()
    db.refresh(project)
    logger.info(f"User {user_id} removed from project {project.id}")

    notify(
        db,
        [user_id],
        NotificationType.TEAM_MEMBER_REMOVED,
        "Removed from Project",
        f"You have been removed from project: {project.title}",
        project_id=project.id,
        background_tasks=background_tasks,
    )
    return project


def remove_client(
    db: Session,
    actor: User,
    project_id: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> Project:
    project = _manageable_project(db, actor, project_id)
    if not permissions.can_remove_participants(actor, project):
        raise Forbidden("Client can only be removed after project completion or by admin")

    client_id = project.client_id
    project.client_id = None
    db.commit()
    db.refresh(project)

    if client_id is not None:
        notify(
            db,
            [client_id],
            NotificationType.CLIENT_REMOVED,
            "Removed from Project",
            f"You have been removed from project: {project.title}",
            project_id=project.id,
            background_tasks=background_tasks,
        )
    return project


# =====================================
# DELETE
# =====================================
def delete_project(db: Session, actor: User, project_id: int) -> None:
    project = _manageable_project(db, actor, project_id)

    tasks = db.query(Task).filter(Task.project_id == project.id).all()
    stored_names = [f.stored_name for task in tasks for f in task.submission_files]
    for task in tasks:
        db.delete(task)
    db.delete(project)
    db.commit()
    logger.info(f"Project {project_id} deleted by user {actor.id} ({len(tasks)} task(s))")

    for stored_name in stored_names:
        file_storage.delete_stored_file(stored_name)
