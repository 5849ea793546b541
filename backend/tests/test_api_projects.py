"""
Tests for the project endpoints.
"""

from conftest import auth_headers, make_user
from projecthub.models.notification import Notification
from projecthub.models.project import Project, ProjectStatus
from projecthub.models.task import Task
from projecthub.models.user import UserRole


def test_pm_creates_project(client, db, pm, client_user):
    response = client.post(
        "/api/projects/",
        json={"title": "  ERP Rollout ", "client_id": client_user.id, "end_date": "2026-12-31"},
        headers=auth_headers(pm),
    )
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "ERP Rollout"
    assert data["status"] == ProjectStatus.NOT_STARTED.value
    assert data["progress"] == 0
    assert data["project_manager"]["id"] == pm.id
    assert data["client"]["id"] == client_user.id

    assert db.query(Notification).filter(
        Notification.user_id == client_user.id,
        Notification.type == "project_created",
    ).count() == 1


def test_team_member_cannot_create_project(client, member):
    response = client.post("/api/projects/", json={"title": "Side project"}, headers=auth_headers(member))
    assert response.status_code == 403


def test_create_project_validates_client_and_manager(client, admin, member):
    response = client.post(
        "/api/projects/",
        json={"title": "Bad refs", "client_id": member.id, "project_manager_id": member.id},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400
    assert response.json()["errors"] == ["Invalid project manager ID", "Invalid client ID"]


def test_admin_assigns_another_manager(client, admin, pm):
    response = client.post(
        "/api/projects/",
        json={"title": "Delegated", "project_manager_id": pm.id},
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    assert response.json()["project_manager_id"] == pm.id


def test_end_date_before_start_date(client, pm):
    response = client.post(
        "/api/projects/",
        json={"title": "Backwards", "start_date": "2026-05-01", "end_date": "2026-04-01"},
        headers=auth_headers(pm),
    )
    assert response.status_code == 422


def test_listing_is_role_scoped(client, db, project, admin, pm, other_pm, member, outsider, client_user):
    db.add(Project(title="Other", project_manager_id=other_pm.id, status=ProjectStatus.NOT_STARTED.value))
    db.commit()

    def titles(user):
        response = client.get("/api/projects/", headers=auth_headers(user))
        assert response.status_code == 200
        return sorted(p["title"] for p in response.json())

    assert titles(admin) == ["Other", "Website Relaunch"]
    assert titles(pm) == ["Website Relaunch"]
    assert titles(other_pm) == ["Other"]
    assert titles(member) == ["Website Relaunch"]
    assert titles(client_user) == ["Website Relaunch"]
    assert titles(outsider) == []


def test_project_detail_requires_access(client, project, outsider, member):
    assert client.get(f"/api/projects/{project.id}", headers=auth_headers(member)).status_code == 200
    assert client.get(f"/api/projects/{project.id}", headers=auth_headers(outsider)).status_code == 403
    assert client.get("/api/projects/999", headers=auth_headers(member)).status_code == 404


def test_status_update_to_completed(client, db, project, pm, member, client_user):
    db.add(Task(title="Done", project_id=project.id, assigned_by=pm.id, status="completed"))
    db.add(Task(title="Open", project_id=project.id, assigned_by=pm.id, status="initiated"))
    db.commit()

    response = client.put(
        f"/api/projects/{project.id}",
        json={"status": ProjectStatus.COMPLETED.value},
        headers=auth_headers(pm),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == ProjectStatus.COMPLETED.value
    assert data["end_date"] is not None
    assert data["progress"] == 50

    messages = db.query(Notification.user_id, Notification.message).filter(
        Notification.type == "project_updated"
    ).all()
    assert sorted(user_id for user_id, _ in messages) == sorted([member.id, client_user.id])
    assert all(message.endswith("has been completed") for _, message in messages)


def test_status_update_to_in_progress_sets_start_date(client, project, pm):
    response = client.put(
        f"/api/projects/{project.id}",
        json={"status": ProjectStatus.IN_PROGRESS.value},
        headers=auth_headers(pm),
    )
    assert response.status_code == 200
    assert response.json()["start_date"] is not None


def test_progress_is_not_user_settable(client, project, pm):
    response = client.put(f"/api/projects/{project.id}", json={"progress": 90}, headers=auth_headers(pm))
    assert response.status_code == 200
    assert response.json()["progress"] == 0


def test_only_manager_updates_project(client, project, other_pm, member):
    for user in (other_pm, member):
        response = client.put(f"/api/projects/{project.id}", json={"title": "Hijack"}, headers=auth_headers(user))
        assert response.status_code == 403


def test_add_team_member(client, db, project, pm):
    newcomer = make_user(db, "Nina Newcomer", UserRole.TEAM_MEMBER.value)

    response = client.post(
        f"/api/projects/{project.id}/team-members",
        json={"user_id": newcomer.id},
        headers=auth_headers(pm),
    )
    assert response.status_code == 200
    assert newcomer.id in [m["id"] for m in response.json()["team_members"]]

    response = client.post(
        f"/api/projects/{project.id}/team-members",
        json={"user_id": newcomer.id},
        headers=auth_headers(pm),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Team member already in project"


def test_add_team_member_requires_team_member_role(client, project, pm, client_user):
    response = client.post(
        f"/api/projects/{project.id}/team-members",
        json={"user_id": client_user.id},
        headers=auth_headers(pm),
    )
    assert response.status_code == 400


def test_team_member_removal_gated_until_completion(client, db, project, pm, member):
    url = f"/api/projects/{project.id}/team-members/{member.id}"
    assert client.delete(url, headers=auth_headers(pm)).status_code == 403

    project.status = ProjectStatus.COMPLETED.value
    db.commit()

    response = client.delete(url, headers=auth_headers(pm))
    assert response.status_code == 200
    assert response.json()["team_members"] == []
    assert db.query(Notification).filter(
        Notification.user_id == member.id,
        Notification.type == "team_member_removed",
    ).count() == 1


def test_removing_a_non_member_is_not_found(client, db, project, pm, member, outsider, sent_emails):
    project.status = ProjectStatus.COMPLETED.value
    db.commit()

    response = client.delete(f"/api/projects/{project.id}/team-members/{outsider.id}", headers=auth_headers(pm))
    assert response.status_code == 404
    assert response.json()["detail"] == "Team member not found"

    db.refresh(project)
    assert [user.id for user in project.team_members] == [member.id]
    assert db.query(Notification).filter(Notification.type == "team_member_removed").count() == 0
    assert sent_emails == []


def test_admin_removes_client_any_time(client, project, admin, pm):
    url = f"/api/projects/{project.id}/client"
    assert client.delete(url, headers=auth_headers(pm)).status_code == 403

    response = client.delete(url, headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["client_id"] is None


def test_delete_project_removes_tasks(client, db, project, pm):
    db.add(Task(title="Doomed", project_id=project.id, assigned_by=pm.id))
    db.commit()
    project_id = project.id

    response = client.delete(f"/api/projects/{project_id}", headers=auth_headers(pm))
    assert response.status_code == 200
    assert db.query(Task).filter(Task.project_id == project_id).count() == 0
    assert db.get(Project, project_id) is None


def test_update_project_status_service(db, project, pm, member):
    from projecthub.services.project_service import update_project_status

    updated = update_project_status(db, pm, project.id, ProjectStatus.ON_HOLD.value)
    assert updated.status == ProjectStatus.ON_HOLD.value

    message = db.query(Notification.message).filter(Notification.user_id == member.id).one()[0]
    assert message == 'Project "Website Relaunch" has been put on hold'
