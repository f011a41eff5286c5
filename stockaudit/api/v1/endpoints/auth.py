"""Authentication endpoints (API JWT)."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from stockaudit.core.permissions import capabilities_for
from stockaudit.core.security import create_access_token, get_current_user, verify_password
from stockaudit.db.session import get_db
from stockaudit.models.user import User
from stockaudit.schemas.auth import AuthUserResponse, LoginRequest, TokenResponse
from stockaudit.services.user_service import get_user_by_username

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


def _user_response(user: User) -> AuthUserResponse:
    response = AuthUserResponse.model_validate(user)
    response.capabilities = sorted(capability.value for capability in capabilities_for(user))
    return response


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    user: User | None = get_user_by_username(db=db, username=payload.username.strip())
    if user is None or not user.is_active or not verify_password(payload.password, user.password_hash):
        logger.warning("[AUTH] Failed login for username=%s", payload.username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect username or password")
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    return TokenResponse(access_token=create_access_token(user))


@router.get("/me", response_model=AuthUserResponse)
def me(current_user: User = Depends(get_current_user)) -> AuthUserResponse:
    return _user_response(current_user)
