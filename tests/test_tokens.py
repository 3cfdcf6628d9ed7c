"""Unit tests for auth/tokens.py -- JWT issue and verify.

Covers:
- verify(issue(id)) returns id before expiry
- expired tokens raise TokenExpired, everything else malformed raises TokenInvalid
- both failure types are Unauthenticated (same 401 outward)
"""

import pytest
from jose import jwt

from auth.tokens import TokenExpired, TokenInvalid, TokenService
from core.errors import Unauthenticated

SECRET = "a" * 40


def test_issue_then_verify_returns_user_id() -> None:
    tokens = TokenService(SECRET, ttl_seconds=60)
    assert tokens.verify(tokens.issue("0123456789abcdef0123456789abcdef")) == "0123456789abcdef0123456789abcdef"


def test_token_embeds_expiry_claim() -> None:
    tokens = TokenService(SECRET, ttl_seconds=120)
    claims = jwt.get_unverified_claims(tokens.issue("abc"))
    assert claims["sub"] == "abc"
    assert claims["exp"] - claims["iat"] == 120


def test_expired_token_raises_token_expired() -> None:
    tokens = TokenService(SECRET, ttl_seconds=-5)
    token = tokens.issue("abc")
    with pytest.raises(TokenExpired):
        tokens.verify(token)


def test_wrong_signature_raises_token_invalid() -> None:
    token = TokenService("b" * 40).issue("abc")
    with pytest.raises(TokenInvalid):
        TokenService(SECRET).verify(token)


@pytest.mark.parametrize("token", ["", None, "garbage", "a.b.c"])
def test_malformed_or_missing_token_raises_token_invalid(token) -> None:
    with pytest.raises(TokenInvalid):
        TokenService(SECRET).verify(token)


def test_token_without_subject_is_invalid() -> None:
    token = jwt.encode({"exp": 9999999999}, SECRET, algorithm="HS256")
    with pytest.raises(TokenInvalid):
        TokenService(SECRET).verify(token)


def test_failures_are_unauthenticated() -> None:
    assert issubclass(TokenExpired, Unauthenticated)
    assert issubclass(TokenInvalid, Unauthenticated)
    assert TokenExpired.status_code == TokenInvalid.status_code == 401


def test_empty_signing_key_rejected() -> None:
    with pytest.raises(ValueError):
        TokenService("")
