from datetime import datetime, timezone
from fastapi import APIRouter, BackgroundTasks, Depends, status
from loguru import logger
from sqlalchemy.orm import Session

from projecthub.core.dependencies import get_current_user
from projecthub.core.exceptions import Forbidden, Unauthenticated, ValidationFailed
from projecthub.core.permissions import can_onboard
from projecthub.core.security import create_access_token, hash_password, verify_password
from projecthub.database.session import get_db
from projecthub.models.user import User
from projecthub.schemas.user import (
    LoginRequest, RegisterRequest, RegisterResponse, TokenResponse, UserInfo
)
from projecthub.services.notification_service import NotificationType, notify

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _build_auth_response(user: User):
    return {
        "access_token": create_access_token(user.id, user.role),
        "token_type": "bearer",
        "user": user,
    }


@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email).first()

    if not user or not verify_password(data.password, user.password_hash):
        logger.info(f"Login attempt failed for email: {data.email}")
        raise Unauthenticated("Invalid email or password")

    if not user.is_active:
        logger.info(f"Login attempt failed: account inactive for email: {data.email}")
        raise Unauthenticated("Account is inactive. Please contact your administrator.")

    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)

    logger.info(f"Login successful for user: {user.email} ({user.role})")
    return _build_auth_response(user)


@router.get("/me", response_model=UserInfo)
def me(current_user: User = Depends(get_current_user)):
    return current_user


# =====================================
# ONBOARD USER
# =====================================
@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    role = data.role.value
    if not can_onboard(current_user.role, role):
        raise Forbidden(f"You are not allowed to onboard users with role {role}")

    if db.query(User).filter(User.email == data.email).first():
        raise ValidationFailed(["User with this email already exists"])

    user = User(
        name=data.name,
        email=data.email,
        password_hash=hash_password(data.password),
        role=role,
        is_active=True,
        onboarded_by=current_user.id
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} ({role}) onboarded by user {current_user.id}")

    notify(
        db,
        [user.id],
        NotificationType.USER_ONBOARDED,
        "Welcome!",
        f"You have been onboarded by {current_user.name}",
        background_tasks=background_tasks,
    )

    return {"message": "User onboarded successfully", "user": user}
