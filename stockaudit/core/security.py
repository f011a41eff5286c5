"""Security utilities for password hashing and JWT-based auth."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from stockaudit.core.config import settings
from stockaudit.core.permissions import Capability, ensure_capability
from stockaudit.db.session import get_db
from stockaudit.models.user import User
from stockaudit.services.user_service import get_user_by_id

pwd_context: CryptContext = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme: HTTPBearer = HTTPBearer(auto_error=True)


def get_password_hash(password: str) -> str:
    """Hash a plaintext password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user: User) -> str:
    """Sign a bearer token for the user; the role claim is informational only."""
    claims: dict[str, Any] = {
        "sub": str(user.id),
        "role": user.role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(
        claims,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def verify_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT token payload."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        raise _unauthorized("Could not validate credentials") from exc
    return payload


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _subject_id(payload: dict[str, Any]) -> int:
    """Token subject as a user id; anything else is an invalid token."""
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise _unauthorized("Invalid authentication token") from exc


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the acting user from the Authorization header; inactive accounts are refused."""
    user = get_user_by_id(db=db, user_id=_subject_id(verify_token(credentials.credentials)))
    if user is None or not user.is_active:
        raise _unauthorized("User not found")
    return user


def require_capability(capability: Capability) -> Callable[..., User]:
    """Build a dependency that admits only actors whose role grants the capability."""

    def _checker(current_user: User = Depends(get_current_user)) -> User:
        ensure_capability(current_user, capability)
        return current_user

    return _checker
