from loguru import logger

from projecthub.database.base import Base
from projecthub.database.session import SessionLocal, engine
from projecthub.models.user import User, UserRole
from projecthub.models.project import Project  # noqa: F401
from projecthub.models.task import Task  # noqa: F401
from projecthub.models.notification import Notification  # noqa: F401
from projecthub.core.security import hash_password


def create_admin(email: str = "admin@projecthub.io", password: str = "Admin@1234") -> bool:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        existing_admin = db.query(User).filter(User.role == UserRole.ADMIN.value).first()
        if existing_admin:
            logger.info("Admin already exists")
            return False

        admin = User(
            name="System Admin",
            email=email,
            password_hash=hash_password(password),
            role=UserRole.ADMIN.value,
            is_active=True
        )

        db.add(admin)
        db.commit()
    finally:
        db.close()

    logger.info("Admin created successfully")
    return True

if __name__ == "__main__":
    create_admin()
