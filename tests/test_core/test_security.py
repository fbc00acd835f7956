from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt

from app.core.config import settings
from app.core.exceptions import InvalidTokenException
from app.core.jwt import decode_access_token
from app.core.security import create_access_token, get_user_id_from_payload


def _sign(payload: dict) -> str:
    return jwt.encode(payload, settings.JWT_SECRET_KEY.get_secret_value(), algorithm=settings.JWT_ALGORITHM)


def test_access_token_round_trips_subject_and_email():
    user_id = uuid4()
    payload = decode_access_token(create_access_token(user_id, email="a@example.com"))
    assert get_user_id_from_payload(payload) == user_id
    assert payload["email"] == "a@example.com"
    assert payload["token_type"] == "access"


def test_expired_token_is_rejected():
    token = create_access_token(uuid4(), expires_delta=timedelta(seconds=-5))
    with pytest.raises(InvalidTokenException) as exc:
        decode_access_token(token)
    assert exc.value.status_code == 401


def test_non_access_token_is_rejected():
    token = _sign({"sub": str(uuid4()), "token_type": "refresh"})
    with pytest.raises(InvalidTokenException):
        decode_access_token(token)


def test_token_signed_with_other_key_is_rejected():
    token = jwt.encode({"sub": str(uuid4()), "token_type": "access"}, "another-secret", algorithm="HS256")
    with pytest.raises(InvalidTokenException):
        decode_access_token(token)


def test_malformed_subject_is_rejected():
    with pytest.raises(InvalidTokenException):
        get_user_id_from_payload({"sub": "not-a-uuid"})


@pytest.mark.anyio
async def test_routes_require_bearer_token(client):
    resp = await client.get(f"{settings.API_V1_STR}/programs")
    assert resp.status_code == 401
    assert resp.headers["content-type"].startswith("application/problem+json")


@pytest.mark.anyio
async def test_garbage_bearer_token_is_401(client):
    resp = await client.get(f"{settings.API_V1_STR}/programs", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401
