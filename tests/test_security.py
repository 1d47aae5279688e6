from __future__ import annotations

from datetime import datetime, timedelta

from models.user import User, is_locked, is_usable, summarize
from utils.security import generate_token, hash_password, verify_password


def test_hash_password_is_salted_and_verifiable() -> None:
    first = hash_password("pw12345678")
    second = hash_password("pw12345678")

    assert first != second
    assert first.startswith("$argon2")
    assert verify_password("pw12345678", first)
    assert not verify_password("wrong", first)


def test_verify_password_tolerates_garbage_hash() -> None:
    assert verify_password("pw12345678", "not-a-hash") is False


def test_generate_token_entropy() -> None:
    assert len(generate_token()) == 64
    assert len(generate_token(40)) == 80
    assert generate_token() != generate_token()


def test_is_locked_only_while_lock_is_in_the_future() -> None:
    now = datetime(2025, 1, 1, 12, 0)
    user = User(lock_until=None)
    assert not is_locked(user, now)

    user.lock_until = now + timedelta(minutes=1)
    assert is_locked(user, now)

    user.lock_until = now - timedelta(seconds=1)
    assert not is_locked(user, now)


def test_is_usable_requires_active_and_not_deleted() -> None:
    assert not is_usable(None)
    assert is_usable(User(is_active=True, deleted_at=None))
    assert not is_usable(User(is_active=False, deleted_at=None))
    assert not is_usable(User(is_active=True, deleted_at=datetime(2025, 1, 1)))


def test_summarize_exposes_only_identity_fields() -> None:
    user = User(email="a@x.com", username="alice", role="viewer", password_hash="secret")

    assert summarize(user) == {"id": user.id, "email": "a@x.com", "role": "viewer", "username": "alice"}
