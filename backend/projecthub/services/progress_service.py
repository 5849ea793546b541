from sqlalchemy import case, func
from sqlalchemy.orm import Session

from projecthub.models.project import Project
from projecthub.models.task import Task, TaskStatus


def completion_percentage(completed: int, total: int) -> int:
    """round(100 * completed / total), halves rounded up; 0 when there are no tasks."""
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


def recompute_progress(db: Session, project: Project) -> int:
    total, completed = db.query(
        func.count(Task.id),
        func.coalesce(func.sum(case((Task.status == TaskStatus.COMPLETED.value, 1), else_=0)), 0),
    ).filter(Task.project_id == project.id).one()

    project.progress = completion_percentage(completed or 0, total or 0)
    db.commit()
    return project.progress
