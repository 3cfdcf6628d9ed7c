"""
tests/test_config.py -- Settings policy.

Covers:
  - SECRET_KEY: generated in debug, required in production, minimum length
  - defaults and bounds for token lifetime, bcrypt cost and OTP lifetime
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings


def _settings(**overrides) -> Settings:
    values = {"debug": True, "secret_key": "s" * 40}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSecretKeyPolicy:
    def test_debug_generates_key(self) -> None:
        settings = _settings(secret_key="")
        assert len(settings.secret_key) >= 32

    def test_production_requires_key(self) -> None:
        with pytest.raises(ValidationError, match="SECRET_KEY is required"):
            _settings(debug=False, secret_key="")

    def test_short_key_rejected(self) -> None:
        with pytest.raises(ValidationError, match="at least 32"):
            _settings(secret_key="short")


class TestDefaults:
    def test_defaults(self) -> None:
        settings = _settings()
        assert settings.token_expire_seconds == 86400
        assert settings.bcrypt_rounds == 12
        assert settings.otp_ttl_seconds == 600

    def test_bcrypt_rounds_bounds(self) -> None:
        with pytest.raises(ValidationError):
            _settings(bcrypt_rounds=3)

    def test_reset_requests_reveal_account_state_by_default(self) -> None:
        assert _settings().reveal_unknown_reset_email is True
