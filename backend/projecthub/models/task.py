from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime,
    ForeignKey, event
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship, validates
import enum

from projecthub.database.base import Base


class TaskStatus(str, enum.Enum):
    INITIATED = "initiated"
    SUBMITTED = "submitted"
    PM_REVIEWED = "pm_reviewed"
    CLIENT_REVIEWED = "client_reviewed"
    REJECTED = "rejected"
    COMPLETED = "completed"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ReviewRating(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def derive_progress(status, pm_rating=None, client_rating=None, current=None) -> int:
    """Map a task's workflow state to its progress percentage.

    Rejected tasks (and any state the table does not name) keep ``current``,
    or 0 when it was never set.
    """
    approved = ReviewRating.APPROVED.value
    if status == TaskStatus.INITIATED.value:
        return 10
    if status == TaskStatus.SUBMITTED.value:
        return 30
    if status == TaskStatus.PM_REVIEWED.value and pm_rating == approved:
        return 60
    if status == TaskStatus.CLIENT_REVIEWED.value and client_rating == approved:
        return 100
    if status == TaskStatus.COMPLETED.value:
        return 100
    return current or 0


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Relations
    project_id = Column(
        Integer,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    assigned_to = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    assigned_by = Column(
        Integer,
        ForeignKey("users.id"),
        nullable=False
    )

    status = Column(String(32), default=TaskStatus.INITIATED.value, nullable=False)
    priority = Column(String(20), default=TaskPriority.MEDIUM.value, nullable=False)
    due_date = Column(Date, nullable=True)

    pm_rating = Column(String(20), default=ReviewRating.PENDING.value, nullable=False)
    client_rating = Column(String(20), default=ReviewRating.PENDING.value, nullable=False)
    pm_feedback = Column(Text, nullable=True)
    client_feedback = Column(Text, nullable=True)

    submission_work = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    progress_percentage = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    project = relationship("Project")
    assigned_user = relationship("User", foreign_keys=[assigned_to])
    assigned_by_user = relationship("User", foreign_keys=[assigned_by])
    submission_files = relationship(
        "SubmissionFile",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="SubmissionFile.id"
    )

    @validates("project_id")
    def validate_project_id(self, key, value):
        if self.project_id is not None and value != self.project_id:
            raise ValueError("A task cannot be moved to another project")
        return value

    def calculate_progress(self) -> int:
        self.progress_percentage = derive_progress(
            self.status, self.pm_rating, self.client_rating, self.progress_percentage
        )
        return self.progress_percentage

    @property
    def project_title(self):
        return self.project.title if self.project else None

    @property
    def assignee_name(self):
        return self.assigned_user.name if self.assigned_user else None

    @property
    def assigned_by_name(self):
        return self.assigned_by_user.name if self.assigned_by_user else None


class SubmissionFile(Base):
    __tablename__ = "submission_files"

    id = Column(Integer, primary_key=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    original_name = Column(String(255), nullable=False)
    stored_name = Column(String(255), nullable=False)
    path = Column(String(512), nullable=False)
    size = Column(Integer, nullable=False)
    mime_type = Column(String(127), nullable=True)

    task = relationship("Task", back_populates="submission_files")


@event.listens_for(Task, "before_insert")
@event.listens_for(Task, "before_update")
def _sync_progress_percentage(mapper, connection, target):
    target.calculate_progress()
