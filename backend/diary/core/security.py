from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import VerificationError
from jose import jwt, JWTError

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from diary.core.config import settings
from diary.models.participant import Participant

AUTH_COOKIE = "auth-token"


# Argon2 parameters for the shared secrets
_ph = PasswordHasher(
    time_cost=2,
    memory_cost=102400,  # ~100 MB
    parallelism=8,
    hash_len=32,
    salt_len=16,
)


def hash_secret(secret: str) -> str:
    return _ph.hash(secret)


def verify_secret(secret: str, secret_hash: str) -> bool:
    try:
        return _ph.verify(secret_hash, secret)
    except VerificationError:
        return False


@lru_cache(maxsize=1)
def _participant_secret_hashes() -> tuple[tuple[Participant, str], ...]:
    # hashed once; the plaintext secrets are only read from settings here
    return (
        (Participant.HIM, hash_secret(settings.user_him_secret)),
        (Participant.HER, hash_secret(settings.user_her_secret)),
    )


def authenticate_secret(secret: str) -> Optional[Participant]:
    """Return the participant whose shared secret this is, if any."""
    for participant, secret_hash in _participant_secret_hashes():
        if verify_secret(secret, secret_hash):
            return participant
    return None


def create_access_token(participant: Participant) -> str:
    payload = {
        "sub": participant.value,
        "name": participant.display_name,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
    }

    token = jwt.encode(
        payload,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    return token


def decode_access_token(token: str) -> dict | None:
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        return None


_security = HTTPBearer(auto_error=False)


async def get_current_participant(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_security),
) -> Participant:
    """
    Dependency: read the JWT from the ``auth-token`` cookie (or a Bearer
    header), verify it and return the participant.
    Raises: HTTPException 401 if the token is missing/invalid/expired
    """
    token = request.cookies.get(AUTH_COOKIE)
    if not token and credentials is not None:
        token = credentials.credentials

    payload = decode_access_token(token) if token else None

    try:
        return Participant(payload["sub"])
    except (TypeError, KeyError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please log in first",
            headers={"WWW-Authenticate": "Bearer"},
        )
