from sqlalchemy import select, true

from projecthub.models.project import Project, ProjectStatus, project_team_members
from projecthub.models.task import Task
from projecthub.models.user import User, UserRole

# role of the new user -> roles allowed to onboard it
ONBOARDING_RULES = {
    UserRole.ADMIN.value: {UserRole.ADMIN.value},
    UserRole.PROJECT_MANAGER.value: {UserRole.ADMIN.value},
    UserRole.TEAM_MEMBER.value: {UserRole.ADMIN.value, UserRole.PROJECT_MANAGER.value},
    UserRole.CLIENT.value: {UserRole.ADMIN.value, UserRole.PROJECT_MANAGER.value},
}


def is_admin(user: User) -> bool:
    return user.role == UserRole.ADMIN.value


def is_assigned_manager(user: User, project: Project) -> bool:
    return project.project_manager_id == user.id


def is_project_client(user: User, project: Project) -> bool:
    return project.client_id is not None and project.client_id == user.id


def is_team_member(user: User, project: Project) -> bool:
    return user.id in project.team_member_ids


def has_project_access(user: User, project: Project) -> bool:
    return (
        is_admin(user)
        or is_assigned_manager(user, project)
        or is_project_client(user, project)
        or is_team_member(user, project)
    )


def is_project_manager_of(user: User, project: Project) -> bool:
    return is_admin(user) or is_assigned_manager(user, project)


def is_task_assignee(user: User, task: Task) -> bool:
    return task.assigned_to is not None and task.assigned_to == user.id


def has_task_access(user: User, task: Task) -> bool:
    return is_task_assignee(user, task) or has_project_access(user, task.project)


def can_submit_work(user: User, task: Task) -> bool:
    project = task.project
    return (
        is_task_assignee(user, task)
        or is_project_manager_of(user, project)
        or is_project_client(user, project)
    )


def can_remove_participants(user: User, project: Project) -> bool:
    return is_admin(user) or project.status == ProjectStatus.COMPLETED.value


def can_onboard(actor_role: str, new_role: str) -> bool:
    return actor_role in ONBOARDING_RULES.get(new_role, set())


def project_scope_filter(user: User):
    """Criteria limiting a ``Project`` query to what ``user`` may list."""
    if user.role == UserRole.ADMIN.value:
        return true()
    if user.role == UserRole.PROJECT_MANAGER.value:
        return Project.project_manager_id == user.id
    if user.role == UserRole.CLIENT.value:
        return Project.client_id == user.id
    member_projects = select(project_team_members.c.project_id).where(
        project_team_members.c.user_id == user.id
    )
    return Project.id.in_(member_projects)


def task_scope_filter(user: User):
    if user.role == UserRole.ADMIN.value:
        return true()
    if user.role == UserRole.TEAM_MEMBER.value:
        return Task.assigned_to == user.id
    if user.role == UserRole.PROJECT_MANAGER.value:
        owned = select(Project.id).where(Project.project_manager_id == user.id)
    else:
        owned = select(Project.id).where(Project.client_id == user.id)
    return Task.project_id.in_(owned)
