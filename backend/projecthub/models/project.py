from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    DateTime,
    ForeignKey,
    Table
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from projecthub.database.base import Base


class ProjectStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"


# ===============================
# Association table (Project ↔ Team Members)
# ===============================
project_team_members = Table(
    "project_team_members",
    Base.metadata,
    Column("project_id", Integer, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    project_manager_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    status = Column(String(32), default=ProjectStatus.NOT_STARTED.value, nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    # derived from task completion, see services.progress_service
    progress = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # ===============================
    # Relationships
    # ===============================
    project_manager = relationship("User", foreign_keys=[project_manager_id])
    client = relationship("User", foreign_keys=[client_id])
    team_members = relationship(
        "User",
        secondary=project_team_members,
        lazy="selectin"
    )

    @property
    def team_member_ids(self) -> set:
        return {member.id for member in (self.team_members or [])}

    def participant_ids(self) -> list:
        """PM, team members and client, in that order, without duplicates."""
        ids = [self.project_manager_id, *sorted(self.team_member_ids), self.client_id]
        return list(dict.fromkeys(uid for uid in ids if uid is not None))
