"""
Tests for the task endpoints, including multipart work submission.
"""

import pytest

from conftest import auth_headers
from projecthub.config import settings
from projecthub.models.task import Task


@pytest.fixture
def task_id(client, project, pm, member):
    response = client.post(
        "/api/tasks/",
        json={"title": "Checkout flow", "project_id": project.id, "assigned_to": member.id, "priority": "high"},
        headers=auth_headers(pm),
    )
    assert response.status_code == 201
    return response.json()["id"]


def _submit(client, user, task_id, work="Implemented checkout", files=None):
    return client.post(
        f"/api/tasks/{task_id}/submit",
        data={"work": work} if work is not None else {},
        files=files or [],
        headers=auth_headers(user),
    )


def test_create_task(client, task_id, member, pm):
    response = client.get(f"/api/tasks/{task_id}", headers=auth_headers(member))
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "initiated"
    assert data["progress_percentage"] == 10
    assert data["priority"] == "high"
    assert data["assignee_name"] == member.name
    assert data["assigned_by_name"] == pm.name
    assert data["project_title"] == "Website Relaunch"


def test_create_task_missing_fields(client, pm):
    response = client.post("/api/tasks/", json={"description": "no title"}, headers=auth_headers(pm))
    assert response.status_code == 422
    assert set(response.json()["errors"]) == {"title is required", "project_id is required"}


def test_create_task_rejects_unknown_priority(client, project, pm):
    response = client.post(
        "/api/tasks/",
        json={"title": "Urgent", "project_id": project.id, "priority": "urgent"},
        headers=auth_headers(pm),
    )
    assert response.status_code == 422


def test_outsider_cannot_read_task(client, task_id, outsider):
    response = client.get(f"/api/tasks/{task_id}", headers=auth_headers(outsider))
    assert response.status_code == 403


def test_submit_with_files(client, db, upload_dir, task_id, member):
    response = _submit(client, member, task_id, files=[
        ("files", ("notes.txt", b"release notes", "text/plain")),
        ("files", ("screen.png", b"\x89PNG fake", "image/png")),
    ])
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "submitted"
    assert data["progress_percentage"] == 30
    assert [f["original_name"] for f in data["submission_files"]] == ["notes.txt", "screen.png"]
    assert all(f["path"].startswith("/uploads/task-") for f in data["submission_files"])
    assert data["submission_files"][0]["size"] == len(b"release notes")
    assert len(list(upload_dir.iterdir())) == 2


def test_submit_requires_work_description(client, upload_dir, task_id, member):
    response = _submit(client, member, task_id, work=None, files=[
        ("files", ("notes.txt", b"release notes", "text/plain")),
    ])
    assert response.status_code == 400
    assert response.json()["detail"] == "Work description is required"
    assert list(upload_dir.iterdir()) == []


def test_oversized_upload_leaves_no_orphans(client, db, upload_dir, monkeypatch, task_id, member):
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_BYTES", 16)

    response = _submit(client, member, task_id, files=[
        ("files", ("small.txt", b"tiny", "text/plain")),
        ("files", ("big.bin", b"x" * 64, "application/octet-stream")),
    ])
    assert response.status_code == 400
    assert "big.bin" in response.json()["detail"]
    assert list(upload_dir.iterdir()) == []

    task = db.get(Task, task_id)
    db.refresh(task)
    assert task.status == "initiated"
    assert task.submission_files == []


def test_too_many_files(client, upload_dir, monkeypatch, task_id, member):
    monkeypatch.setattr(settings, "MAX_SUBMISSION_FILES", 1)

    response = _submit(client, member, task_id, files=[
        ("files", ("a.txt", b"a", "text/plain")),
        ("files", ("b.txt", b"b", "text/plain")),
    ])
    assert response.status_code == 400
    assert list(upload_dir.iterdir()) == []


def test_resubmission_replaces_previous_files(client, upload_dir, task_id, member, pm):
    first = _submit(client, member, task_id, files=[("files", ("v1.txt", b"first", "text/plain"))])
    old_name = first.json()["submission_files"][0]["path"].rsplit("/", 1)[1]

    response = client.post(
        f"/api/tasks/{task_id}/review",
        json={"rating": "rejected", "feedback": "Try again"},
        headers=auth_headers(pm),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "rejected"

    second = _submit(client, member, task_id, work="Second attempt", files=[
        ("files", ("v2.txt", b"second", "text/plain")),
    ])
    assert second.status_code == 200
    assert [f["original_name"] for f in second.json()["submission_files"]] == ["v2.txt"]

    remaining = [path.name for path in upload_dir.iterdir()]
    assert old_name not in remaining
    assert len(remaining) == 1


def test_submit_in_wrong_state_conflicts(client, upload_dir, task_id, member):
    assert _submit(client, member, task_id).status_code == 200
    response = _submit(client, member, task_id)
    assert response.status_code == 409


def test_full_review_flow(client, db, project, upload_dir, task_id, member, pm, client_user):
    _submit(client, member, task_id)

    response = client.post(f"/api/tasks/{task_id}/review", json={"rating": "approved"}, headers=auth_headers(pm))
    assert response.json()["progress_percentage"] == 60

    response = client.post(
        f"/api/tasks/{task_id}/review",
        json={"rating": "approved", "feedback": "Great"},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert response.json()["progress_percentage"] == 100

    response = client.get(f"/api/projects/{project.id}", headers=auth_headers(client_user))
    assert response.json()["progress"] == 100


def test_review_initiated_task_conflicts(client, task_id, pm):
    response = client.post(f"/api/tasks/{task_id}/review", json={"rating": "approved"}, headers=auth_headers(pm))
    assert response.status_code == 409


def test_outsider_cannot_submit_or_review(client, upload_dir, task_id, member, outsider):
    assert _submit(client, outsider, task_id).status_code == 403

    _submit(client, member, task_id)
    response = client.post(
        f"/api/tasks/{task_id}/review",
        json={"rating": "approved"},
        headers=auth_headers(outsider),
    )
    assert response.status_code == 403


def test_task_listing_filters_by_project(client, project, task_id, member, outsider):
    response = client.get(f"/api/tasks/?project_id={project.id}", headers=auth_headers(member))
    assert [t["id"] for t in response.json()] == [task_id]

    assert client.get("/api/tasks/", headers=auth_headers(outsider)).json() == []


def test_update_and_delete_task(client, task_id, pm, member):
    response = client.put(f"/api/tasks/{task_id}", json={"priority": "low"}, headers=auth_headers(pm))
    assert response.status_code == 200
    assert response.json()["priority"] == "low"

    assert client.put(f"/api/tasks/{task_id}", json={"title": "x"}, headers=auth_headers(member)).status_code == 403

    assert client.delete(f"/api/tasks/{task_id}", headers=auth_headers(pm)).status_code == 200
    assert client.get(f"/api/tasks/{task_id}", headers=auth_headers(pm)).status_code == 404
