"""Shared-secret login, the auth cookie and login throttling."""
from datetime import datetime, timedelta, timezone

from jose import jwt

from diary.core.config import settings
from diary.core.security import AUTH_COOKIE, authenticate_secret, decode_access_token
from diary.models.participant import Participant
from diary.security.rate_limit import RateLimiter, get_login_limiter


def test_secrets_map_to_participants():
    assert authenticate_secret("moonlight") is Participant.HIM
    assert authenticate_secret("sunflower") is Participant.HER
    assert authenticate_secret("stardust") is None


def test_login_sets_cookie_and_returns_token(client):
    resp = client.post("/auth/login", json={"secret": "sunflower"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"] == {"id": "her", "name": "Her"}
    assert body["token_type"] == "bearer"

    payload = decode_access_token(body["access_token"])
    assert set(payload) == {"sub", "name", "exp"}
    assert payload["sub"] == "her"
    assert payload["name"] == "Her"
    expires = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    assert timedelta(days=29) < expires - datetime.now(timezone.utc) <= timedelta(days=30)

    cookie = resp.headers["set-cookie"].lower()
    assert cookie.startswith(f"{AUTH_COOKIE}=")
    assert "httponly" in cookie
    assert "samesite=strict" in cookie

    # the cookie alone authenticates follow-up requests
    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json() == {"id": "her", "name": "Her"}


def test_login_errors(client):
    assert client.post("/auth/login", json={"secret": ""}).status_code == 400
    assert client.post("/auth/login", json={"secret": "   "}).status_code == 400
    resp = client.post("/auth/login", json={"secret": "wrong"})
    assert resp.status_code == 401
    assert "set-cookie" not in resp.headers


def test_bearer_header_is_accepted(client, him):
    resp = client.get("/auth/me", headers=him)
    assert resp.status_code == 200
    assert resp.json()["id"] == "him"


def test_invalid_tokens_are_rejected(client):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401

    expired = jwt.encode(
        {"sub": "him", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {expired}"}).status_code == 401

    stranger = jwt.encode(
        {"sub": "neighbour", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {stranger}"}).status_code == 401


def test_repeated_failures_are_throttled(client):
    for _ in range(5):
        assert client.post("/auth/login", json={"secret": "guess"}).status_code == 401

    resp = client.post("/auth/login", json={"secret": "moonlight"})
    assert resp.status_code == 429
    assert "Too many login attempts" in resp.json()["detail"]


def test_logout_clears_cookie(client):
    client.post("/auth/login", json={"secret": "moonlight"})
    resp = client.post("/auth/logout")
    assert resp.status_code == 200
    cookie = resp.headers["set-cookie"].lower()
    assert cookie.startswith(f"{AUTH_COOKIE}=")
    assert "max-age=0" in cookie


def test_limiter_forgets_addresses_after_success():
    limiter = RateLimiter(max_attempts=3)

    assert limiter.is_allowed("10.0.0.1")
    assert limiter.get_retry_after("10.0.0.1") == 0.0
    assert limiter.tracked_keys() == 0

    limiter.record_attempt("10.0.0.1")
    limiter.record_attempt("10.0.0.1")
    assert limiter.tracked_keys() == 1

    limiter.record_attempt("10.0.0.1", success=True)
    assert limiter.tracked_keys() == 0
    assert limiter.is_allowed("10.0.0.1")


def test_successful_login_leaves_no_limiter_entry(client):
    assert client.post("/auth/login", json={"secret": "guess"}).status_code == 401
    assert get_login_limiter().tracked_keys() == 1

    assert client.post("/auth/login", json={"secret": "moonlight"}).status_code == 200
    assert get_login_limiter().tracked_keys() == 0
