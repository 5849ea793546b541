from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session
from typing import List

from projecthub.core.dependencies import get_current_user
from projecthub.database.session import get_db
from projecthub.models.user import User
from projecthub.schemas.project import ProjectCreate, ProjectOut, ProjectUpdate, TeamMemberAdd
from projecthub.services import project_service

router = APIRouter(prefix="/api/projects", tags=["Projects"])


@router.get("/", response_model=List[ProjectOut])
def get_projects(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return project_service.list_projects(db, current_user)


@router.get("/{project_id}", response_model=ProjectOut)
def get_project_detail(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return project_service.get_project(db, current_user, project_id)


@router.post("/", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
def create_project(
    data: ProjectCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return project_service.create_project(
        db,
        current_user,
        title=data.title,
        description=data.description,
        client_id=data.client_id,
        start_date=data.start_date,
        end_date=data.end_date,
        project_manager_id=data.project_manager_id,
        background_tasks=background_tasks,
    )


@router.put("/{project_id}", response_model=ProjectOut)
def update_project(
    project_id: int,
    data: ProjectUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    changes = data.model_dump(exclude_unset=True)
    if changes.get("status") is not None:
        changes["status"] = changes["status"].value
    return project_service.update_project(db, current_user, project_id, changes, background_tasks)


@router.delete("/{project_id}")
def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    project_service.delete_project(db, current_user, project_id)
    return {"message": "Project deleted successfully"}


# =====================================
# TEAM MEMBERS / CLIENT
# =====================================
@router.post("/{project_id}/team-members", response_model=ProjectOut)
def add_team_member(
    project_id: int,
    data: TeamMemberAdd,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return project_service.add_team_member(db, current_user, project_id, data.user_id, background_tasks)


@router.delete("/{project_id}/team-members/{user_id}", response_model=ProjectOut)
def remove_team_member(
    project_id: int,
    user_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return project_service.remove_team_member(db, current_user, project_id, user_id, background_tasks)


@router.delete("/{project_id}/client", response_model=ProjectOut)
def remove_client(
    project_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return project_service.remove_client(db, current_user, project_id, background_tasks)
