# mypy: ignore-errors
# tests/v1/test_auth.py
"""Tests for signup, login and password reset endpoints."""

import smtplib
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from fastapi import status

from commflock.core import security
from commflock.db.time import utcnow
from commflock.models import PasswordResetToken, User
from commflock.services.mailer import EmailSender, get_email_sender


@pytest.fixture()
def mail_outbox(app):
    """Capture password reset mails instead of sending them."""
    sender = MagicMock(spec=EmailSender)
    app.dependency_overrides[get_email_sender] = lambda: sender
    yield sender
    app.dependency_overrides.pop(get_email_sender, None)


def test_signup_creates_user(client, db_session) -> None:
    response = client.post(
        "/api/v1/auth/signup",
        json={
            "username": "satoshi",
            "password": "hunter22",
            "email": "satoshi@example.com",
            "lightning_address": "satoshi@getalby.com",
            "nostr_pubkey": "npub1abcdef",
        },
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["username"] == "satoshi"
    assert data["lightning_address"] == "satoshi@getalby.com"
    assert "password_hash" not in data

    user = db_session.query(User).filter(User.username == "satoshi").one()
    assert user.password_hash != "hunter22"
    assert security.verify_password("hunter22", user.password_hash)


def test_signup_rejects_short_password(client) -> None:
    response = client.post(
        "/api/v1/auth/signup",
        json={"username": "shorty", "password": "abc"},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["kind"] == "ValidationError"
    assert "at least 6" in body["detail"]


@pytest.mark.parametrize(
    "field,value",
    [
        ("username", "ab"),
        ("username", "has space"),
        ("lightning_address", "not-an-address"),
        ("nostr_pubkey", "nsec1secret"),
    ],
)
def test_signup_rejects_malformed_fields(client, field, value) -> None:
    payload = {"username": "valid_name", "password": "hunter22", field: value}
    response = client.post("/api/v1/auth/signup", json=payload)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["kind"] == "ValidationError"


def test_signup_accepts_lnurl(client) -> None:
    response = client.post(
        "/api/v1/auth/signup",
        json={"username": "lnurl_user", "password": "hunter22", "lightning_address": "LNURL1DP68"},
    )
    assert response.status_code == status.HTTP_201_CREATED


def test_signup_duplicate_username(client, owner) -> None:
    response = client.post(
        "/api/v1/auth/signup",
        json={"username": owner.username, "password": "hunter22"},
    )
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "username_taken"


def test_signup_duplicate_email(client, owner) -> None:
    response = client.post(
        "/api/v1/auth/signup",
        json={"username": "someone_else", "password": "hunter22", "email": owner.email},
    )
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "email_taken"


def test_signup_is_rate_limited(client) -> None:
    for i in range(3):
        response = client.post(
            "/api/v1/auth/signup",
            json={"username": f"burst{i}", "password": "hunter22"},
        )
        assert response.status_code == status.HTTP_201_CREATED

    response = client.post(
        "/api/v1/auth/signup",
        json={"username": "burst3", "password": "hunter22"},
    )
    assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert response.json()["kind"] == "RateLimited"
    assert response.headers["X-RateLimit-Limit"] == "3"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert "X-RateLimit-Reset" in response.headers


def test_rate_limit_is_per_client(client) -> None:
    for i in range(3):
        client.post(
            "/api/v1/auth/signup",
            json={"username": f"first{i}", "password": "hunter22"},
            headers={"X-Forwarded-For": "10.0.0.1, 172.16.0.1"},
        )
    blocked = client.post(
        "/api/v1/auth/signup",
        json={"username": "first3", "password": "hunter22"},
        headers={"X-Forwarded-For": "10.0.0.1"},
    )
    other = client.post(
        "/api/v1/auth/signup",
        json={"username": "second0", "password": "hunter22"},
        headers={"X-Forwarded-For": "10.0.0.2"},
    )
    assert blocked.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert other.status_code == status.HTTP_201_CREATED


def test_login_returns_token(client, owner, test_password) -> None:
    response = client.post(
        "/api/v1/auth/login",
        json={"username": owner.username, "password": test_password},
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["token_type"] == "bearer"
    assert security.decode_access_token(data["access_token"]) == owner.id


def test_login_wrong_password(client, owner) -> None:
    response = client.post(
        "/api/v1/auth/login",
        json={"username": owner.username, "password": "wrong-password"},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["kind"] == "Unauthorized"


def test_login_unknown_user(client) -> None:
    response = client.post(
        "/api/v1/auth/login",
        json={"username": "ghost", "password": "whatever"},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_login_user_without_password(client, db_session) -> None:
    db_session.add(User(username="legacy"))
    db_session.commit()
    response = client.post(
        "/api/v1/auth/login",
        json={"username": "legacy", "password": "anything"},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_forgot_password_known_email_sends_link(client, owner, db_session, mail_outbox) -> None:
    response = client.post("/api/v1/auth/forgot-password", json={"email": owner.email})
    assert response.status_code == status.HTTP_200_OK

    mail_outbox.send_password_reset.assert_called_once()
    to_email, username, token = mail_outbox.send_password_reset.call_args.args
    assert to_email == owner.email
    assert username == owner.username

    stored = db_session.query(PasswordResetToken).filter_by(user_id=owner.id).one()
    assert stored.token_hash == security.hash_key(token)
    assert stored.token_hash != token
    assert not stored.used


def test_forgot_password_same_response_for_unknown_email(client, owner, mail_outbox) -> None:
    known = client.post("/api/v1/auth/forgot-password", json={"email": owner.email})
    unknown = client.post("/api/v1/auth/forgot-password", json={"email": "nobody@example.com"})
    assert known.status_code == unknown.status_code == status.HTTP_200_OK
    assert known.json() == unknown.json()
    assert mail_outbox.send_password_reset.call_count == 1


def test_forgot_password_hides_mail_failure(client, owner, mail_outbox, db_session, caplog) -> None:
    mail_outbox.send_password_reset.side_effect = smtplib.SMTPServerDisconnected("gone")
    known = client.post("/api/v1/auth/forgot-password", json={"email": owner.email})
    unknown = client.post("/api/v1/auth/forgot-password", json={"email": "nobody@example.com"})

    assert known.status_code == unknown.status_code == status.HTTP_200_OK
    assert known.json() == unknown.json()
    assert "Could not deliver password reset mail" in caplog.text
    assert db_session.query(PasswordResetToken).filter_by(user_id=owner.id).count() == 1


def _issue_token(db_session, user, *, expires_in=timedelta(hours=1), used=False) -> str:
    token = security.generate_reset_token()
    db_session.add(
        PasswordResetToken(
            user_id=user.id,
            token_hash=security.hash_key(token),
            expires_at=utcnow() + expires_in,
            used=used,
        )
    )
    db_session.commit()
    return token


def test_reset_password_changes_hash(client, owner, db_session) -> None:
    token = _issue_token(db_session, owner)
    response = client.post(
        "/api/v1/auth/reset-password",
        json={"token": token, "password": "brand-new-pass"},
    )
    assert response.status_code == status.HTTP_200_OK

    login = client.post(
        "/api/v1/auth/login",
        json={"username": owner.username, "password": "brand-new-pass"},
    )
    assert login.status_code == status.HTTP_200_OK

    db_session.expire_all()
    record = db_session.query(PasswordResetToken).filter_by(user_id=owner.id).one()
    assert record.used


def test_reset_password_token_is_single_use(client, owner, db_session) -> None:
    token = _issue_token(db_session, owner)
    first = client.post("/api/v1/auth/reset-password", json={"token": token, "password": "newpass1"})
    second = client.post("/api/v1/auth/reset-password", json={"token": token, "password": "newpass2"})
    assert first.status_code == status.HTTP_200_OK
    assert second.status_code == status.HTTP_400_BAD_REQUEST
    assert second.json()["error"] == "invalid_reset_token"


def test_reset_password_expired_token(client, owner, db_session) -> None:
    token = _issue_token(db_session, owner, expires_in=timedelta(minutes=-1))
    response = client.post("/api/v1/auth/reset-password", json={"token": token, "password": "newpass1"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "expired" in response.json()["detail"]


def test_reset_password_unknown_token(client) -> None:
    response = client.post(
        "/api/v1/auth/reset-password", json={"token": "deadbeef", "password": "newpass1"}
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "invalid_reset_token"
