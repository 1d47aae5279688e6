from __future__ import annotations

from datetime import timedelta

import pytest

from models.refresh_token import RefreshToken, is_active, is_expired
from services.errors import InvalidToken


def test_create_sets_seven_day_expiry(services, make_user, clock) -> None:
    user = make_user()

    record = services.refresh_tokens.create(user.id, user_agent="x" * 600)

    assert record.expires_at == clock() + timedelta(days=7)
    assert len(record.user_agent) == 512
    assert is_active(record, clock())


def test_find_active_ignores_unknown_revoked_and_expired(services, make_user, clock) -> None:
    user = make_user()
    revoked = services.refresh_tokens.create(user.id)
    services.refresh_tokens.revoke_all(user.id)
    live = services.refresh_tokens.create(user.id)

    assert services.refresh_tokens.find_active_by_token("nope") is None
    assert services.refresh_tokens.find_active_by_token(revoked.token) is None
    assert services.refresh_tokens.find_active_by_token(live.token) is not None

    clock.advance(days=8)
    assert services.refresh_tokens.find_active_by_token(live.token) is None
    assert is_expired(live, clock())


def test_revoke_all_only_counts_unrevoked_tokens(services, storage, make_user) -> None:
    user = make_user()
    other = make_user()
    services.refresh_tokens.create(user.id)
    services.refresh_tokens.create(user.id)
    kept = services.refresh_tokens.create(other.id)

    assert services.refresh_tokens.revoke_all(user.id, ip="1.2.3.4") == 2
    assert services.refresh_tokens.revoke_all(user.id) == 0
    assert services.refresh_tokens.find_active_by_token(kept.token) is not None

    records = storage.get_session().query(RefreshToken).filter(RefreshToken.user_id == user.id).all()
    assert len(records) == 2
    assert all(r.revoked_at is not None and r.revoked_by_ip == "1.2.3.4" for r in records)


def test_revoke_and_replace_refuses_inactive_token(services, make_user, clock) -> None:
    user = make_user()
    record = services.refresh_tokens.create(user.id)
    stale = services.refresh_tokens.create(user.id)
    successor = services.refresh_tokens.new_token()

    chained = services.refresh_tokens.revoke_and_replace(record.token, successor, ip="5.6.7.8")

    assert chained.replaced_by_token == successor
    assert chained.revoked_by_ip == "5.6.7.8"
    with pytest.raises(InvalidToken):
        services.refresh_tokens.revoke_and_replace(record.token, "anything")

    clock.advance(days=8)
    with pytest.raises(InvalidToken):
        services.refresh_tokens.revoke_and_replace(stale.token, "anything")
    assert services.refresh_tokens.find_active_by_token(stale.token) is None


def test_create_accepts_pregenerated_token(services, make_user) -> None:
    user = make_user()
    token = services.refresh_tokens.new_token()

    record = services.refresh_tokens.create(user.id, token=token)

    assert record.token == token
    assert len(token) == 80
