from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session
from typing import List, Optional

from projecthub.core.dependencies import get_current_user
from projecthub.database.session import get_db
from projecthub.models.user import User
from projecthub.schemas.task import TaskCreate, TaskOut, TaskReview, TaskUpdate
from projecthub.services import task_workflow

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


# =====================================
# GET TASKS (role scoped)
# =====================================
@router.get("/", response_model=List[TaskOut])
def get_tasks(
    project_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return task_workflow.list_tasks(db, current_user, project_id=project_id)


@router.get("/{task_id}", response_model=TaskOut)
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return task_workflow.get_task(db, current_user, task_id)


# =====================================
# CREATE TASK (PM of project or admin)
# =====================================
@router.post("/", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return task_workflow.create_task(
        db,
        current_user,
        title=payload.title,
        project_id=payload.project_id,
        description=payload.description,
        assigned_to=payload.assigned_to,
        priority=payload.priority.value,
        due_date=payload.due_date,
        background_tasks=background_tasks,
    )


# =====================================
# UPDATE / DELETE TASK
# =====================================
@router.put("/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    payload: TaskUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("priority") is not None:
        changes["priority"] = changes["priority"].value
    return task_workflow.update_task(db, current_user, task_id, changes, background_tasks)


@router.delete("/{task_id}")
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    task_workflow.delete_task(db, current_user, task_id)
    return {"message": "Task deleted successfully"}


# =====================================
# SUBMIT WORK (multipart, files optional)
# =====================================
@router.post("/{task_id}/submit", response_model=TaskOut)
def submit_work(
    task_id: int,
    background_tasks: BackgroundTasks,
    work: Optional[str] = Form(default=None),
    files: List[UploadFile] = File(default=[]),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return task_workflow.submit_work(db, current_user, task_id, work, files, background_tasks)


# =====================================
# REVIEW (PM, then client)
# =====================================
@router.post("/{task_id}/review", response_model=TaskOut)
def review_task(
    task_id: int,
    payload: TaskReview,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return task_workflow.review_task(
        db,
        current_user,
        task_id,
        payload.rating.value,
        payload.feedback,
        background_tasks,
    )
