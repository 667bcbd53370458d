# mypy: ignore-errors
# tests/v1/test_users.py
"""Tests for the authenticated user's profile endpoints."""

from fastapi import status


class TestProfile:
    """Profile read and update."""

    def test_get_me(self, client, owner, owner_headers) -> None:
        response = client.get("/api/v1/users/me", headers=owner_headers)
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["id"] == owner.id
        assert data["username"] == "alice"
        assert "password_hash" not in data

    def test_get_me_requires_token(self, client) -> None:
        response = client.get("/api/v1/users/me")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["kind"] == "Unauthorized"

    def test_get_me_rejects_garbage_token(self, client) -> None:
        response = client.get("/api/v1/users/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_update_lightning_and_nostr(self, client, owner, owner_headers, db_session) -> None:
        response = client.patch(
            "/api/v1/users/me",
            json={"lightning_address": "alice@walletofsatoshi.com", "nostr_pubkey": "npub1alice"},
            headers=owner_headers,
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["lightning_address"] == "alice@walletofsatoshi.com"
        assert data["nostr_pubkey"] == "npub1alice"
        assert data["email"] == "alice@example.com"

        db_session.refresh(owner)
        assert owner.nostr_pubkey == "npub1alice"

    def test_update_rejects_bad_nostr_key(self, client, owner_headers) -> None:
        response = client.patch(
            "/api/v1/users/me",
            json={"nostr_pubkey": "not-a-key"},
            headers=owner_headers,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_update_email_taken(self, client, owner_headers, member_user) -> None:
        response = client.patch(
            "/api/v1/users/me",
            json={"email": member_user.email},
            headers=owner_headers,
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "email_taken"

    def test_my_memberships(self, client, community, membership, member_headers) -> None:
        response = client.get("/api/v1/users/me/memberships", headers=member_headers)
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data) == 1
        assert data[0]["community_id"] == community.id
        assert data[0]["status"] == "APPROVED"
