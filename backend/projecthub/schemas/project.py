from pydantic import BaseModel, model_validator
from datetime import date, datetime
from typing import Optional, List

from projecthub.models.project import ProjectStatus
from projecthub.schemas.user import UserInfo


# ---------- CREATE ----------
class ProjectCreate(BaseModel):
    title: str
    description: Optional[str] = None
    client_id: Optional[int] = None
    project_manager_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def validate_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("Project end date cannot be before start date")
        return self


# ---------- UPDATE ----------
class ProjectUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    client_id: Optional[int] = None
    status: Optional[ProjectStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class TeamMemberAdd(BaseModel):
    user_id: int


# ---------- RESPONSE ----------
class ProjectOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    status: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    progress: int = 0

    project_manager_id: int
    client_id: Optional[int] = None
    created_at: Optional[datetime] = None

    # relations (READ ONLY)
    project_manager: Optional[UserInfo] = None
    client: Optional[UserInfo] = None
    team_members: List[UserInfo] = []

    class Config:
        from_attributes = True
