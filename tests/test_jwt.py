"""Session token tests — issue, verify, and the two failure flavors."""

import uuid
from datetime import datetime, timedelta, timezone

import jwt as pyjwt
import pytest

from crossfun.auth.jwt import (
    TokenExpired,
    TokenMalformed,
    create_access_token,
    validate_token,
    verify_token,
)
from crossfun.config import settings


def test_token_round_trip_returns_account_id():
    account_id = str(uuid.uuid4())
    token = create_access_token(account_id)
    assert validate_token(token) == account_id


def test_token_expires_after_configured_days():
    issued = datetime.now(timezone.utc)
    payload = verify_token(create_access_token("abc", now=issued))
    lifetime = payload["exp"] - payload["iat"]
    assert lifetime == settings.jwt_expire_days * 24 * 3600


def test_expired_token_is_distinguished():
    token = create_access_token(
        "abc", now=datetime.now(timezone.utc) - timedelta(days=8), expires_delta=timedelta(days=7)
    )
    with pytest.raises(TokenExpired):
        verify_token(token)


def test_wrong_secret_is_malformed():
    token = pyjwt.encode(
        {"sub": "abc", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        "some-other-secret",
        algorithm="HS256",
    )
    with pytest.raises(TokenMalformed):
        verify_token(token)


def test_garbage_is_malformed():
    with pytest.raises(TokenMalformed):
        validate_token("not.a.jwt")


def test_missing_subject_is_malformed():
    token = pyjwt.encode(
        {"exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(TokenMalformed):
        validate_token(token)
