import hashlib
import secrets
from datetime import timedelta
from typing import Callable

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

import quizroom.models as models
from quizroom.config import settings
from quizroom.database import get_db
from quizroom.errors import Forbidden, Unauthorized

bearer_scheme = HTTPBearer(auto_error=False)


# --- Password and token helpers ---
def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    return check_password_hash(hashed_password, password)


def digest_token(raw: str) -> str:
    return hashlib.sha256(raw.encode()).hexdigest()


def new_token() -> tuple[str, str]:
    """Random token for email confirmation or password reset: (raw, stored digest)."""
    raw = secrets.token_hex(20)
    return raw, digest_token(raw)


def create_access_token(user: models.User) -> str:
    payload = {
        "id": user.id,
        "role": models.Role(user.role).value,
        "exp": models.utcnow() + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


# --- Dependencies ---
def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    if credentials is None:
        raise Unauthorized("Not authorized to access this route")
    try:
        payload = jwt.decode(credentials.credentials, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.InvalidTokenError:
        raise Unauthorized("Not authorized to access this route")
    user = db.get(models.User, payload.get("id"))
    if user is None:
        raise Unauthorized("Not authorized to access this route")
    return user


def require_role(*roles: models.Role) -> Callable[..., models.User]:
    """Dependency factory: the current user, provided their role is one of `roles`."""

    def dependency(user: models.User = Depends(get_current_user)) -> models.User:
        if user.role not in roles:
            raise Forbidden(f"User role {models.Role(user.role).value} is not authorized to access this route")
        return user

    return dependency


# --- Authorization predicate ---
def authorize_owner(
    resource,
    user: models.User,
    required_role: models.Role = models.Role.teacher,
    owner_field: str = "teacher_id",
    action: str = "modify",
) -> None:
    """Raise Forbidden unless `user` has `required_role` and owns `resource`.

    Runs before any mutation, so a failure never leaves partial writes behind.
    """
    name = type(resource).__name__.lower()
    if user.role != required_role or getattr(resource, owner_field) != user.id:
        raise Forbidden(f"Not authorized to {action} this {name}")
