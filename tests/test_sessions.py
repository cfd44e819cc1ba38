"""Session orchestration: the signup/login/refresh/logout/reset flows."""

import pytest

from services.errors import BadRequest, Conflict, Unauthorized
from services.sessions import parse_bearer
from utils.security import DUMMY_PASSWORD_HASH


def test_signup_returns_user_and_tokens(sessions):
    result = sessions.signup(" New@Example.com", "secret1", "New", "User")

    assert result.user.id > 0
    assert result.user.email == "new@example.com"
    assert sessions.signer.verify_access_token(result.access_token) == result.user.id
    assert len(result.refresh_token) == 64


def test_signup_twice_with_same_normalized_email_conflicts(sessions):
    sessions.signup("a@x.com", "secret1", "A")
    with pytest.raises(Conflict):
        sessions.signup("  A@X.COM ", "secret9", "B")


def test_password_is_stored_hashed(sessions):
    result = sessions.signup("a@x.com", "secret1", "A")
    assert result.user.password_hash != "secret1"


def test_login_unknown_email_and_wrong_password_look_the_same(sessions):
    sessions.signup("a@x.com", "secret1", "A")

    with pytest.raises(Unauthorized) as unknown:
        sessions.login("b@x.com", "secret1")
    with pytest.raises(Unauthorized) as wrong:
        sessions.login("a@x.com", "wrong")

    assert unknown.value.message == wrong.value.message == "Invalid credentials"


def test_login_unknown_email_still_verifies_a_hash(sessions, monkeypatch):
    checked = []

    def recording_verify(password, password_hash):
        checked.append(password_hash)
        return False

    monkeypatch.setattr("services.sessions.verify_password", recording_verify)
    with pytest.raises(Unauthorized):
        sessions.login("nobody@x.com", "secret1")

    assert checked == [DUMMY_PASSWORD_HASH]


def test_refresh_rotates_and_old_token_dies(sessions):
    first = sessions.signup("a@x.com", "secret1", "A")

    pair = sessions.refresh(first.refresh_token)
    assert pair.refresh_token != first.refresh_token
    assert sessions.signer.verify_access_token(pair.access_token) == first.user.id

    with pytest.raises(Unauthorized):
        sessions.refresh(first.refresh_token)


def test_refresh_after_expiry_fails(sessions, clock):
    result = sessions.signup("a@x.com", "secret1", "A")
    clock.advance(days=8)
    with pytest.raises(Unauthorized) as exc:
        sessions.refresh(result.refresh_token)
    assert exc.value.message == "Invalid refresh token"


def test_logout_is_idempotent(sessions):
    result = sessions.signup("a@x.com", "secret1", "A")

    assert sessions.logout(result.refresh_token) == "Logged out successfully"
    assert sessions.logout(result.refresh_token) == "Logged out successfully"
    with pytest.raises(Unauthorized):
        sessions.refresh(result.refresh_token)


def test_logout_swallows_store_failures(sessions, monkeypatch):
    def boom(token):
        raise RuntimeError("database went away")

    monkeypatch.setattr(sessions.refresh_tokens, "revoke", boom)
    assert sessions.logout("anything") == "Logged out successfully"


def test_reset_request_for_unknown_email_is_generic(sessions, notifier):
    message = sessions.request_password_reset("ghost@x.com")
    assert message == "If the email exists, a password reset link has been sent"
    assert notifier.sent == []


def test_reset_request_dispatches_token(sessions, notifier):
    sessions.signup("a@x.com", "secret1", "A")
    message = sessions.request_password_reset("A@x.com")

    assert message == "If the email exists, a password reset link has been sent"
    assert notifier.sent[0][0] == "a@x.com"
    assert sessions.validate_password_reset(notifier.last_token).valid


def test_reset_request_swallows_notifier_failure(sessions, notifier, monkeypatch):
    sessions.signup("a@x.com", "secret1", "A")

    def boom(user, token):
        raise ConnectionError("smtp down")

    monkeypatch.setattr(notifier, "send_password_reset", boom)
    assert sessions.request_password_reset("a@x.com").startswith("If the email exists")


def test_second_reset_request_invalidates_first(sessions, notifier):
    sessions.signup("a@x.com", "secret1", "A")
    sessions.request_password_reset("a@x.com")
    first = notifier.last_token
    sessions.request_password_reset("a@x.com")

    assert not sessions.validate_password_reset(first).valid
    assert sessions.validate_password_reset(notifier.last_token).valid


def test_confirm_is_single_use(sessions, notifier):
    sessions.signup("a@x.com", "secret1", "A")
    sessions.request_password_reset("a@x.com")
    token = notifier.last_token

    assert sessions.confirm_password_reset(token, "secret2") == "Password reset successfully"
    with pytest.raises(BadRequest) as exc:
        sessions.confirm_password_reset(token, "secret3")
    assert exc.value.message == "Invalid reset token"


def test_confirm_with_expired_token(sessions, notifier, clock):
    sessions.signup("a@x.com", "secret1", "A")
    sessions.request_password_reset("a@x.com")
    clock.advance(hours=1, seconds=1)

    with pytest.raises(BadRequest) as exc:
        sessions.confirm_password_reset(notifier.last_token, "secret2")
    assert exc.value.message == "Reset token has expired"


def test_end_to_end_password_change(sessions, notifier):
    created = sessions.signup("a@x.com", "secret1", "A")
    assert sessions.login("a@x.com", "secret1").user.id == created.user.id
    with pytest.raises(Unauthorized):
        sessions.login("a@x.com", "wrong")

    sessions.request_password_reset("a@x.com")
    sessions.confirm_password_reset(notifier.last_token, "secret2")

    with pytest.raises(Unauthorized):
        sessions.login("a@x.com", "secret1")
    assert sessions.login("a@x.com", "secret2").user.id == created.user.id


class TestAuthenticate:
    def test_valid_bearer_resolves_user(self, sessions):
        result = sessions.signup("a@x.com", "secret1", "A")
        user = sessions.authenticate(f"Bearer {result.access_token}")
        assert user.id == result.user.id

    @pytest.mark.parametrize("header", [None, "", "Bearer", "Basic abc", "Bearer a b", "Token xyz"])
    def test_missing_or_malformed_header(self, sessions, header):
        with pytest.raises(Unauthorized) as exc:
            sessions.authenticate(header)
        assert exc.value.message == "Access token is required"

    def test_invalid_token(self, sessions):
        with pytest.raises(Unauthorized) as exc:
            sessions.authenticate("Bearer not.a.jwt")
        assert exc.value.message == "Invalid access token"

    def test_expired_token(self, sessions, clock):
        result = sessions.signup("a@x.com", "secret1", "A")
        clock.advance(minutes=15)
        with pytest.raises(Unauthorized):
            sessions.authenticate(f"Bearer {result.access_token}")

    def test_vanished_user_is_unauthorized_not_not_found(self, sessions):
        token = sessions.signer.issue_access_token(12345)
        with pytest.raises(Unauthorized) as exc:
            sessions.authenticate(f"Bearer {token}")
        assert exc.value.status == 401
        assert exc.value.message == "Invalid access token"


def test_parse_bearer_is_case_insensitive_on_scheme():
    assert parse_bearer("bearer abc") == "abc"
    assert parse_bearer("Bearer  abc ") == "abc"
