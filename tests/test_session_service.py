from __future__ import annotations

import logging

import pytest

from models.refresh_token import RefreshToken
from models.schemas.user import UserOutSchema
from models.user import User
from services.errors import (
    AccountInactive,
    AccountLocked,
    Conflict,
    InvalidCredentials,
    InvalidOrExpiredToken,
    InvalidToken,
)
from utils.security import hash_password

PROFILE = {
    "email": "a@x.com",
    "password": "pw12345678",
    "username": "alice",
    "full_name": "Alice A",
}


def _register(services, **overrides):
    return services.sessions.register({**PROFILE, **overrides}, ip="127.0.0.1", user_agent="pytest")


def test_register_issues_token_pair_and_sends_verification(services, mailer) -> None:
    session = _register(services)

    assert session.access_token
    assert session.refresh_token
    assert session.expires_in == 15 * 60
    assert session.user.is_email_verified is False

    message = mailer.last_to("a@x.com")
    assert message is not None
    assert session.user.email_verification_token in message["html"]


def test_register_rejects_duplicate_email_and_username(services) -> None:
    _register(services)

    with pytest.raises(Conflict):
        _register(services, username="alice2")
    with pytest.raises(Conflict):
        _register(services, email="other@x.com")


def test_registered_user_representation_is_sanitized(services) -> None:
    session = _register(services)

    dumped = UserOutSchema().dump(session.user)

    assert dumped["email"] == "a@x.com"
    for secret in ("password", "passwordHash", "password_hash", "emailVerificationToken", "passwordResetToken"):
        assert secret not in dumped
    assert session.user.password_hash != PROFILE["password"]


def test_register_survives_a_failing_mailer(services, mailer, monkeypatch, caplog) -> None:
    def refuse(to, subject, html_body):
        raise ConnectionError("smtp down")

    monkeypatch.setattr(mailer, "send", refuse)
    with caplog.at_level(logging.ERROR, logger="services.email_service"):
        session = _register(services)

    assert session.access_token
    assert services.refresh_tokens.find_active_by_token(session.refresh_token) is not None
    assert services.credentials.find_by_email("a@x.com") is not None
    assert "smtp down" in caplog.text


def test_username_cannot_shadow_another_accounts_email(services) -> None:
    _register(services)

    with pytest.raises(Conflict):
        _register(services, email="b@x.com", username="a@x.com")
    with pytest.raises(Conflict):
        _register(services, email="b@x.com", username="A@X.com")


def test_login_prefers_email_match_over_username(services, storage) -> None:
    # Rows written straight to storage, as data predating the username rules
    shadow = User(email="b@x.com", username="c@x.com", full_name="B", password_hash=hash_password("otherpass1"))
    carol = User(email="c@x.com", username="carol", full_name="Carol", password_hash=hash_password("carolpass1"))
    storage.new(shadow)
    storage.save()
    storage.new(carol)
    storage.save()

    assert services.sessions.login("c@x.com", "carolpass1").user.id == carol.id
    with pytest.raises(InvalidCredentials):
        services.sessions.login("c@x.com", "otherpass1")
    assert services.credentials.find_by_email("c@x.com").failed_login_attempts == 1


def test_login_accepts_email_or_username(services) -> None:
    _register(services)

    by_email = services.sessions.login("A@X.com", PROFILE["password"])
    by_username = services.sessions.login("alice", PROFILE["password"])

    assert by_email.user.id == by_username.user.id
    assert by_email.user.last_login is not None


def test_unknown_user_and_wrong_password_fail_identically(services) -> None:
    _register(services)

    with pytest.raises(InvalidCredentials) as unknown:
        services.sessions.login("nobody@x.com", "whatever1")
    with pytest.raises(InvalidCredentials) as wrong:
        services.sessions.login("a@x.com", "wrongpw99")

    assert unknown.value.message == wrong.value.message
    assert unknown.value.status_code == wrong.value.status_code == 401


def test_lockout_after_five_failures_then_unlock_after_window(services, clock) -> None:
    _register(services)

    for _ in range(5):
        with pytest.raises(InvalidCredentials):
            services.sessions.login("a@x.com", "wrongpw99")

    user = services.credentials.find_by_email("a@x.com")
    assert user.failed_login_attempts == 5
    assert user.lock_until is not None

    # Even the right password is refused while locked, without counting an attempt
    with pytest.raises(AccountLocked):
        services.sessions.login("a@x.com", PROFILE["password"])
    assert services.credentials.find_by_email("a@x.com").failed_login_attempts == 5

    clock.advance(minutes=31)
    session = services.sessions.login("a@x.com", PROFILE["password"])

    assert session.access_token
    user = services.credentials.find_by_email("a@x.com")
    assert user.failed_login_attempts == 0
    assert user.lock_until is None


def test_failure_after_expired_lock_starts_a_fresh_count(services, clock) -> None:
    _register(services)
    for _ in range(5):
        with pytest.raises(InvalidCredentials):
            services.sessions.login("a@x.com", "wrongpw99")

    clock.advance(minutes=31)
    with pytest.raises(InvalidCredentials):
        services.sessions.login("a@x.com", "wrongpw99")

    user = services.credentials.find_by_email("a@x.com")
    assert user.failed_login_attempts == 1
    assert user.lock_until is None


def test_success_resets_failure_counter(services) -> None:
    _register(services)
    for _ in range(3):
        with pytest.raises(InvalidCredentials):
            services.sessions.login("a@x.com", "wrongpw99")

    services.sessions.login("a@x.com", PROFILE["password"])

    assert services.credentials.find_by_email("a@x.com").failed_login_attempts == 0


def test_deactivated_user_cannot_login(services) -> None:
    session = _register(services)
    services.users.update_status(session.user.id, False)

    with pytest.raises(AccountInactive):
        services.sessions.login("a@x.com", PROFILE["password"])
    # A wrong password still reports plain bad credentials
    with pytest.raises(InvalidCredentials):
        services.sessions.login("a@x.com", "wrongpw99")


def test_refresh_mints_new_access_token(services, clock) -> None:
    session = _register(services)
    clock.advance(seconds=5)

    result = services.sessions.refresh_access_token(session.refresh_token)

    assert result["access_token"] != session.access_token
    assert result["expires_in"] == 15 * 60
    claims = services.tokens.verify_access_token(result["access_token"])
    assert claims["sub"] == session.user.id


def test_logout_revokes_refresh_tokens(services) -> None:
    session = _register(services)
    other = services.sessions.login("a@x.com", PROFILE["password"])

    revoked = services.sessions.logout(session.user.id, ip="10.0.0.1")

    assert revoked == 2
    for token in (session.refresh_token, other.refresh_token):
        with pytest.raises(InvalidToken):
            services.sessions.refresh_access_token(token)


def test_refresh_token_expires_after_seven_days(services, clock) -> None:
    session = _register(services)

    clock.advance(days=7, seconds=1)

    with pytest.raises(InvalidToken):
        services.sessions.refresh_access_token(session.refresh_token)


def test_refresh_for_deactivated_user_is_rejected(services) -> None:
    session = _register(services)
    services.users.update_status(session.user.id, False)

    with pytest.raises(AccountInactive):
        services.sessions.refresh_access_token(session.refresh_token)


def test_refresh_does_not_rotate_by_default(services) -> None:
    session = _register(services)

    services.sessions.refresh_access_token(session.refresh_token)
    services.sessions.refresh_access_token(session.refresh_token)

    assert services.refresh_tokens.find_active_by_token(session.refresh_token) is not None


def test_rotation_chains_old_token_to_new(services, storage) -> None:
    session = _register(services)

    rotated = services.sessions.rotate_refresh_token(session.refresh_token, ip="10.0.0.2")

    assert rotated.refresh_token != session.refresh_token
    with pytest.raises(InvalidToken):
        services.sessions.refresh_access_token(session.refresh_token)
    assert services.sessions.refresh_access_token(rotated.refresh_token)["access_token"]

    old = storage.get_session().query(RefreshToken).filter(RefreshToken.token == session.refresh_token).one()
    assert old.replaced_by_token == rotated.refresh_token
    assert old.revoked_by_ip == "10.0.0.2"


def test_rotation_losing_a_race_stores_no_successor(services, storage, monkeypatch) -> None:
    session = _register(services)
    store = services.refresh_tokens
    lookup = store.find_active_by_token

    def lookup_then_revoked_elsewhere(token):
        record = lookup(token)
        # Another request revokes the token between the lookup and the claim
        store.revoke_all(session.user.id)
        return record

    monkeypatch.setattr(store, "find_active_by_token", lookup_then_revoked_elsewhere)
    with pytest.raises(InvalidToken):
        services.sessions.rotate_refresh_token(session.refresh_token)

    active = (
        storage.get_session().query(RefreshToken)
        .filter(RefreshToken.user_id == session.user.id, RefreshToken.revoked_at.is_(None))
        .count()
    )
    assert active == 0


def test_forgot_password_is_silent_for_unknown_email(services, mailer) -> None:
    _register(services)
    sent_before = len(mailer.sent)

    assert services.sessions.forgot_password("ghost@x.com") is None
    assert len(mailer.sent) == sent_before

    assert services.sessions.forgot_password("a@x.com") is None
    assert len(mailer.sent) == sent_before + 1


def test_reset_password_flow(services, mailer) -> None:
    _register(services)
    services.sessions.forgot_password("a@x.com")
    token = services.credentials.find_by_email("a@x.com").password_reset_token
    assert token in mailer.last_to("a@x.com")["html"]

    services.sessions.reset_password(token, "newpassword1")

    assert services.sessions.login("a@x.com", "newpassword1").access_token
    with pytest.raises(InvalidCredentials):
        services.sessions.login("a@x.com", PROFILE["password"])
    # One-time token
    with pytest.raises(InvalidOrExpiredToken):
        services.sessions.reset_password(token, "another-pass1")


def test_reset_password_rejects_expired_token(services, clock) -> None:
    _register(services)
    services.sessions.forgot_password("a@x.com")
    token = services.credentials.find_by_email("a@x.com").password_reset_token

    clock.advance(hours=1, seconds=1)

    with pytest.raises(InvalidOrExpiredToken):
        services.sessions.reset_password(token, "newpassword1")


def test_change_password_requires_current_password(services) -> None:
    session = _register(services)

    with pytest.raises(InvalidCredentials) as exc:
        services.sessions.change_password(session.user.id, "wrongpw99", "newpassword1")
    assert exc.value.message == "Current password is incorrect"

    services.sessions.change_password(session.user.id, PROFILE["password"], "newpassword1")
    assert services.sessions.login("a@x.com", "newpassword1").access_token


def test_verify_email_is_one_time(services) -> None:
    session = _register(services)
    token = session.user.email_verification_token

    services.sessions.verify_email(token)

    user = services.credentials.find_by_email("a@x.com")
    assert user.is_email_verified is True
    assert user.email_verification_token is None
    with pytest.raises(InvalidOrExpiredToken):
        services.sessions.verify_email(token)
