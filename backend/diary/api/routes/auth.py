# backend/diary/api/routes/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from diary.core.config import settings
from diary.core.security import (
    AUTH_COOKIE,
    authenticate_secret,
    create_access_token,
    get_current_participant,
)
from diary.models.participant import Participant
from diary.schemas.auth import LoginIn, ParticipantOut, TokenOut
from diary.security.rate_limit import is_rate_limited, record_auth_attempt, get_rate_limit_delay

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, request: Request, response: Response):
    secret = payload.secret.strip()
    if not secret:
        raise HTTPException(status_code=400, detail="Please enter the secret")

    # Rate limiting: failed guesses per client address
    key = _client_key(request)
    if is_rate_limited(key):
        delay = get_rate_limit_delay(key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many login attempts. Try again in {int(delay)} seconds."
        )

    participant = authenticate_secret(secret)
    if participant is None:
        record_auth_attempt(key, success=False)
        logger.warning("Failed login from %s", key)
        raise HTTPException(status_code=401, detail="That is not our secret")

    record_auth_attempt(key, success=True)

    token = create_access_token(participant)
    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        max_age=settings.JWT_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )
    logger.info("%s logged in", participant.value)
    return TokenOut(access_token=token, user=ParticipantOut.of(participant))


@router.get("/me", response_model=ParticipantOut)
def me(participant: Participant = Depends(get_current_participant)):
    return ParticipantOut.of(participant)


@router.post("/logout")
def logout(response: Response):
    """Clear the auth cookie (JWTs are stateless, nothing else to revoke)."""
    response.delete_cookie(AUTH_COOKIE, path="/")
    return {"status": "ok", "message": "Logged out successfully"}
