"""
tests/test_bootstrap.py -- First-run admin creation.

Covers:
  - ensure_initial_admin(): only when no admin exists and ADMIN_PASSWORD is set
  - the configured email and phone are stored normalized
  - an ADMIN_EMAIL already held by a regular user is never promoted
"""

from __future__ import annotations

from auth.bootstrap import ensure_initial_admin
from core.config import Settings


def _settings(**overrides) -> Settings:
    values = {"debug": True, "secret_key": "s" * 40}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestInitialAdmin:
    def test_created_when_no_admin(self, store, credentials) -> None:
        settings = _settings(admin_email="Boss@X.com", admin_password="BossPass1", admin_phone="5550009999")
        admin = ensure_initial_admin(store, credentials, settings)
        assert admin is not None
        assert admin.role == "admin"
        assert admin.email == "boss@x.com"
        assert credentials.authenticate(store.get_by_email_with_password("boss@x.com"), "BossPass1")

    def test_phone_with_separators_stored_as_digits(self, store, credentials) -> None:
        settings = _settings(admin_email="boss@x.com", admin_password="BossPass1", admin_phone="555-000-9999")
        ensure_initial_admin(store, credentials, settings)
        assert store.get_by_phone("5550009999").email == "boss@x.com"

    def test_skipped_without_password(self, store, credentials) -> None:
        assert ensure_initial_admin(store, credentials, _settings(admin_password="")) is None
        assert store.has_admin() is False

    def test_skipped_when_admin_exists(self, store, credentials, make_user) -> None:
        make_user(role="admin")
        assert ensure_initial_admin(store, credentials, _settings(admin_password="BossPass1")) is None
        assert store.count_users() == 1

    def test_email_taken_by_regular_user(self, store, credentials, make_user) -> None:
        make_user(email="boss@x.com")
        settings = _settings(admin_email="boss@x.com", admin_password="BossPass1")
        assert ensure_initial_admin(store, credentials, settings) is None
        assert store.has_admin() is False
