"""Unit tests for auth/dependencies.py -- authentication and authorization gates.

Covers every branch of resolve_user():
  no header / wrong scheme -> Unauthenticated
  bad or expired token     -> Unauthenticated (TokenInvalid / TokenExpired)
  subject deleted          -> Unauthenticated ("User not found")
  subject deactivated      -> AccountDeactivated
  success                  -> the freshly loaded User
and authorize() role matching.
"""

import pytest

from auth.dependencies import authorize, extract_bearer_token, resolve_user
from auth.tokens import TokenExpired, TokenInvalid, TokenService
from core.errors import AccountDeactivated, Forbidden, Unauthenticated


class TestExtractBearer:
    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer", "Bearer   ", "bearer abc"])
    def test_missing_or_wrong_scheme(self, header) -> None:
        assert extract_bearer_token(header) is None

    def test_extracts_token(self) -> None:
        assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"


class TestResolveUser:
    def test_no_token(self, tokens, store) -> None:
        with pytest.raises(Unauthenticated, match="No token provided"):
            resolve_user(None, tokens, store)

    def test_invalid_token(self, tokens, store) -> None:
        with pytest.raises(TokenInvalid):
            resolve_user("Bearer not-a-jwt", tokens, store)

    def test_expired_token(self, store, make_user) -> None:
        user = make_user()
        expired = TokenService("k" * 40, ttl_seconds=-1)
        with pytest.raises(TokenExpired):
            resolve_user(f"Bearer {expired.issue(user.id)}", expired, store)

    def test_deleted_subject(self, tokens, store, make_user) -> None:
        user = make_user()
        token = tokens.issue(user.id)
        store.delete_user(user.id)
        with pytest.raises(Unauthenticated, match="User not found"):
            resolve_user(f"Bearer {token}", tokens, store)

    def test_deactivated_subject(self, tokens, store, make_user) -> None:
        user = make_user(is_active=False)
        with pytest.raises(AccountDeactivated):
            resolve_user(f"Bearer {tokens.issue(user.id)}", tokens, store)

    def test_deactivated_is_not_plain_unauthenticated(self) -> None:
        assert not issubclass(AccountDeactivated, Unauthenticated)
        assert AccountDeactivated.status_code == 401

    def test_success_returns_user(self, tokens, store, make_user) -> None:
        user = make_user(email="gate@example.com")
        resolved = resolve_user(f"Bearer {tokens.issue(user.id)}", tokens, store)
        assert resolved.id == user.id
        assert resolved.email == "gate@example.com"
        assert resolved.hashed_password is None

    def test_deactivation_applies_to_next_request(self, tokens, store, make_user) -> None:
        user = make_user()
        header = f"Bearer {tokens.issue(user.id)}"
        assert resolve_user(header, tokens, store).id == user.id

        store.set_active(user.id, False)

        with pytest.raises(AccountDeactivated):
            resolve_user(header, tokens, store)

    def test_role_change_applies_to_next_request(self, tokens, store, make_user) -> None:
        user = make_user(role="admin")
        header = f"Bearer {tokens.issue(user.id)}"
        authorize(resolve_user(header, tokens, store), ("admin",))

        store.set_role(user.id, "user")

        with pytest.raises(Forbidden):
            authorize(resolve_user(header, tokens, store), ("admin",))


class TestAuthorize:
    def test_allowed_role_passes(self, make_user) -> None:
        user = make_user(role="moderator")
        assert authorize(user, ("admin", "moderator")) is user

    def test_other_role_forbidden_names_required_roles(self, make_user) -> None:
        user = make_user(role="user")
        with pytest.raises(Forbidden, match="Required role: admin or moderator"):
            authorize(user, ("admin", "moderator"))
