import os
import tempfile

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="projecthub-uploads-"))
os.environ.setdefault("AUTO_COMPLETE_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from projecthub.config import settings
from projecthub.core.security import create_access_token, hash_password
from projecthub.database.base import Base
from projecthub.database.session import get_db
from projecthub.main import app
from projecthub.models.project import Project, ProjectStatus
from projecthub.models.user import User, UserRole
from projecthub.services import notification_service

PASSWORD = "Secret123"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

# hashing once keeps the fixtures fast
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Record queued emails as (email, name, title, message, queued_on_request)."""
    sent = []

    def record(recipients, title, message, background_tasks=None):
        sent.extend(
            (email, name, title, message, background_tasks is not None) for email, name in recipients
        )

    monkeypatch.setattr(notification_service, "dispatch_emails", record)
    return sent


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    return tmp_path


def make_user(db, name, role, email=None, is_active=True):
    user = User(
        name=name,
        email=email or f"{name.lower().replace(' ', '.')}@projecthub.io",
        password_hash=PASSWORD_HASH,
        role=role,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    token = create_access_token(user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(db):
    return make_user(db, "Ada Admin", UserRole.ADMIN.value)


@pytest.fixture
def pm(db):
    return make_user(db, "Paula Manager", UserRole.PROJECT_MANAGER.value)


@pytest.fixture
def other_pm(db):
    return make_user(db, "Peter Manager", UserRole.PROJECT_MANAGER.value)


@pytest.fixture
def member(db):
    return make_user(db, "Mia Member", UserRole.TEAM_MEMBER.value)


@pytest.fixture
def outsider(db):
    return make_user(db, "Omar Outsider", UserRole.TEAM_MEMBER.value)


@pytest.fixture
def client_user(db):
    return make_user(db, "Carla Client", UserRole.CLIENT.value)


@pytest.fixture
def project(db, pm, member, client_user):
    project = Project(
        title="Website Relaunch",
        description="New marketing site",
        project_manager_id=pm.id,
        client_id=client_user.id,
        status=ProjectStatus.NOT_STARTED.value,
    )
    project.team_members.append(member)
    db.add(project)
    db.commit()
    db.refresh(project)
    return project
