"""Credential store: normalized email lookups and uniqueness."""

import pytest

from models.user import User
from services.errors import AlreadyExists, NotFound


def test_create_normalizes_email(credentials):
    user = credentials.create("  Mixed.Case@Example.COM ", "hash", "Mixed", None)
    assert user.id is not None
    assert user.email == "mixed.case@example.com"
    assert user.created_at is not None


def test_lookup_is_case_and_whitespace_insensitive(credentials, user):
    assert credentials.find_by_email("OWNER@example.com ").id == user.id
    assert credentials.find_by_email("nobody@example.com") is None


def test_find_by_id(credentials, user):
    assert credentials.find_by_id(user.id).email == user.email
    assert credentials.find_by_id(user.id + 100) is None


def test_duplicate_email_is_rejected(credentials, user):
    with pytest.raises(AlreadyExists):
        credentials.create("Owner@Example.com", "other-hash")


def test_unique_index_backs_the_precheck(credentials, user, monkeypatch):
    """When the pre-check misses (a concurrent insert), the constraint still wins."""
    monkeypatch.setattr(credentials, "find_by_email", lambda email: None)
    with pytest.raises(AlreadyExists):
        credentials.create("owner@example.com", "other-hash")

    # The failed insert was rolled back; the store is still usable
    monkeypatch.undo()
    assert credentials.find_by_email("owner@example.com").id == user.id


def test_update_password_hash(credentials, user, clock, storage):
    clock.advance(minutes=5)
    credentials.update_password_hash(user.id, "new-hash")

    storage.close()
    reloaded = storage.get(User, user.id)
    assert reloaded.password_hash == "new-hash"
    assert reloaded.updated_at == clock()


def test_update_password_hash_unknown_user(credentials):
    with pytest.raises(NotFound):
        credentials.update_password_hash(999, "hash")


def test_password_is_write_only(user):
    with pytest.raises(AttributeError):
        user.password
