from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from jose import jwt

from origination.core.security import decode_token
from origination.core.settings import settings


def _token(**claims) -> str:
    payload = {
        "sub": str(uuid4()),
        "aud": settings.jwt_audience,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
    }
    payload.update(claims)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def test_decode_valid_token():
    subject = str(uuid4())
    claims = decode_token(_token(sub=subject))
    assert claims["sub"] == subject


def test_decode_rejects_wrong_secret():
    token = jwt.encode({"sub": "x", "aud": settings.jwt_audience}, "other-secret", algorithm="HS256")
    with pytest.raises(ValueError):
        decode_token(token)


def test_decode_rejects_expired_token():
    with pytest.raises(ValueError):
        decode_token(_token(exp=datetime.now(timezone.utc) - timedelta(minutes=1)))


def test_decode_rejects_wrong_audience():
    with pytest.raises(ValueError):
        decode_token(_token(aud="someone-else"))


def test_decode_requires_subject():
    with pytest.raises(ValueError):
        decode_token(_token(sub=""))


def test_audience_check_can_be_disabled(monkeypatch):
    monkeypatch.setattr(settings, "jwt_audience", None)
    token = jwt.encode({"sub": "abc"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    assert decode_token(token)["sub"] == "abc"
