"""Authentication API — login and current-user lookup."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlmodel import Session, select

from journal_analytics.database import get_session
from journal_analytics.models.user import User
from journal_analytics.api.deps import get_current_user
from journal_analytics.services.auth import verify_password, verify_totp, create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: str
    password: str
    totp_code: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class MeResponse(BaseModel):
    id: int
    username: str


def _reject(detail: str, username: str) -> HTTPException:
    logger.warning(f"Login rejected for '{username}': {detail}")
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.username == body.username)).first()

    if not user or not user.is_active:
        raise _reject("Invalid credentials", body.username)
    if not verify_password(body.password, user.hashed_password):
        raise _reject("Invalid credentials", body.username)
    if not verify_totp(user.totp_secret, body.totp_code):
        raise _reject("Invalid TOTP code", body.username)

    return LoginResponse(access_token=create_access_token(user.id))


@router.get("/me", response_model=MeResponse)
def me(user: User = Depends(get_current_user)):
    return MeResponse(id=user.id, username=user.username)
