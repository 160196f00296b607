"""JWT token tests."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from fithero.auth.jwt import create_access_token, verify_token
from fithero.config import get_settings


def test_round_trip_claims():
    payload = verify_token(create_access_token(7, "lena"))
    assert payload["sub"] == "7"
    assert payload["username"] == "lena"
    assert payload["iss"] == "fithero-backend"


def test_expired_token():
    settings = get_settings()
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    token = jwt.encode(
        {"sub": "7", "type": "access", "iss": settings.jwt_issuer, "iat": past, "exp": past + timedelta(hours=1)},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(jwt.InvalidTokenError, match="expired"):
        verify_token(token)


def test_wrong_type():
    settings = get_settings()
    token = jwt.encode(
        {"sub": "7", "type": "refresh", "iss": settings.jwt_issuer},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
        verify_token(token)


def test_wrong_secret():
    token = jwt.encode({"sub": "7", "type": "access", "iss": "fithero-backend"}, "another-secret-entirely-0123456789")
    with pytest.raises(jwt.InvalidTokenError):
        verify_token(token)
