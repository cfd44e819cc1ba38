"""Password reset ledger: one outstanding token per user, single use."""

import pytest

from models.password_reset_token import PasswordResetToken
from services.password_reset import PasswordResetLedger


@pytest.fixture
def ledger(storage, clock):
    return PasswordResetLedger(storage, clock=clock)


def _rows(storage):
    return storage.get_session().query(PasswordResetToken).all()


def test_issue_and_validate(ledger, user):
    token = ledger.issue(user.id)
    check = ledger.validate(token)
    assert check.valid
    assert check.user_id == user.id
    assert check.message == "Token is valid"


def test_validate_is_repeatable(ledger, user):
    token = ledger.issue(user.id)
    assert ledger.validate(token).valid
    assert ledger.validate(token).valid


def test_second_issue_replaces_the_first(ledger, storage, user):
    first = ledger.issue(user.id)
    second = ledger.issue(user.id)

    assert first != second
    assert len(_rows(storage)) == 1
    assert not ledger.validate(first).valid
    assert ledger.validate(second).valid


def test_unknown_token(ledger):
    check = ledger.validate("nope")
    assert not check.valid
    assert check.reason == "unknown"
    assert check.message == "Invalid reset token"


def test_expired_token_is_deleted_on_validation(ledger, storage, user, clock):
    token = ledger.issue(user.id)
    clock.advance(hours=1)

    check = ledger.validate(token)
    assert not check.valid
    assert check.reason == "expired"
    assert _rows(storage) == []
    assert ledger.validate(token).reason == "unknown"


def test_consume_is_single_use(ledger, storage, user):
    token = ledger.issue(user.id)

    check = ledger.consume(token)
    assert check.valid
    assert check.user_id == user.id
    assert _rows(storage) == []

    again = ledger.consume(token)
    assert not again.valid
    assert again.reason == "unknown"


def test_consume_expired(ledger, user, clock):
    token = ledger.issue(user.id)
    clock.advance(minutes=61)
    assert ledger.consume(token).reason == "expired"


def test_issue_sweeps_expired_rows(ledger, storage, credentials, user, clock):
    other = credentials.create("other@example.com", "hash")
    ledger.issue(other.id)
    clock.advance(hours=2)

    ledger.issue(user.id)
    assert [r.user_id for r in _rows(storage)] == [user.id]


def test_reissue_after_expiry(ledger, user, clock):
    old = ledger.issue(user.id)
    clock.advance(hours=2)
    new = ledger.issue(user.id)
    assert ledger.validate(new).valid
    assert not ledger.validate(old).valid
