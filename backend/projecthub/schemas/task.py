from pydantic import BaseModel
from datetime import date, datetime
from typing import Optional, List

from projecthub.models.task import ReviewRating, TaskPriority


# ---------- CREATE ----------
class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None
    project_id: int
    assigned_to: Optional[int] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[date] = None


# ---------- UPDATE ----------
class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    assigned_to: Optional[int] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None


# ---------- REVIEW ----------
class TaskReview(BaseModel):
    rating: ReviewRating
    feedback: Optional[str] = None


# ---------- OUT ----------
class SubmissionFileOut(BaseModel):
    id: int
    original_name: str
    path: str
    size: int
    mime_type: Optional[str] = None

    class Config:
        from_attributes = True


class TaskOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    project_id: int
    project_title: Optional[str] = None
    assigned_to: Optional[int] = None
    assignee_name: Optional[str] = None
    assigned_by: int
    assigned_by_name: Optional[str] = None
    status: str
    priority: str
    due_date: Optional[date] = None
    progress_percentage: int

    pm_rating: str
    pm_feedback: Optional[str] = None
    client_rating: str
    client_feedback: Optional[str] = None

    submission_work: Optional[str] = None
    submitted_at: Optional[datetime] = None
    submission_files: List[SubmissionFileOut] = []

    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
