from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from projecthub.core.exceptions import Unauthenticated
from projecthub.core.security import decode_access_token
from projecthub.database.session import get_db
from projecthub.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def resolve_token_user(db: Session, token: str | None) -> User:
    """Resolve a bearer credential to an active user or raise ``Unauthenticated``."""
    if not token:
        raise Unauthenticated("Authentication required")

    payload = decode_access_token(token)
    if payload is None:
        raise Unauthenticated("Invalid or expired token")

    sub = payload.get("sub")
    if sub is None:
        raise Unauthenticated("Invalid token payload")

    try:
        user_id = int(sub)
    except ValueError:
        raise Unauthenticated("Invalid token subject")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise Unauthenticated("User not found or inactive")

    return user


def get_current_user(
    db: Session = Depends(get_db),
    token: str | None = Depends(oauth2_scheme)
) -> User:
    return resolve_token_user(db, token)
