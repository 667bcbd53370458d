# mypy: ignore-errors
# tests/v1/test_members.py
"""Tests for joining communities and moderating members."""

import pytest
from fastapi import status

from commflock.models import CommunityMember, JoinPolicy, MemberRole


def _join(client, slug, headers):
    return client.post(f"/api/v1/communities/{slug}/join", headers=headers)


def test_auto_join_is_approved(client, community, member_headers) -> None:
    response = _join(client, community.slug, member_headers)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["status"] == "APPROVED"
    assert data["role"] == "MEMBER"
    assert data["points"] == 0


def test_approval_required_is_pending(client, make_community, member_headers) -> None:
    community = make_community("Gated", join_policy=JoinPolicy.APPROVAL_REQUIRED)
    response = _join(client, community.slug, member_headers)
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["status"] == "PENDING"


def test_closed_community_rejects_join(client, make_community, member_user, member_headers, db_session) -> None:
    community = make_community("Closed Shop", join_policy=JoinPolicy.CLOSED)
    response = _join(client, community.slug, member_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["error"] == "join_not_allowed"
    assert body["kind"] == "PolicyViolation"
    assert (
        db_session.query(CommunityMember)
        .filter_by(community_id=community.id, user_id=member_user.id)
        .first()
        is None
    )


def test_join_twice_conflicts(client, community, member_headers, db_session, member_user) -> None:
    assert _join(client, community.slug, member_headers).status_code == status.HTTP_201_CREATED
    response = _join(client, community.slug, member_headers)
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "already_member"
    assert (
        db_session.query(CommunityMember)
        .filter_by(community_id=community.id, user_id=member_user.id)
        .count()
        == 1
    )


def test_owner_cannot_rejoin(client, community, owner_headers) -> None:
    response = _join(client, community.slug, owner_headers)
    assert response.status_code == status.HTTP_409_CONFLICT


@pytest.mark.parametrize(
    "requirement,profile_field,profile_value",
    [
        ("requires_lightning_address", "lightning_address", "bob@getalby.com"),
        ("requires_nostr_pubkey", "nostr_pubkey", "npub1bob"),
    ],
)
def test_profile_requirements(
    client, make_community, member_headers, requirement, profile_field, profile_value
) -> None:
    community = make_community("Picky", **{requirement: True})
    response = _join(client, community.slug, member_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "requirement_not_met"

    client.patch("/api/v1/users/me", json={profile_field: profile_value}, headers=member_headers)
    response = _join(client, community.slug, member_headers)
    assert response.status_code == status.HTTP_201_CREATED


def test_join_missing_community(client, member_headers) -> None:
    response = _join(client, "nowhere", member_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


class TestModeration:
    """Owner and admin changes to memberships."""

    @pytest.fixture()
    def gated(self, make_community):
        return make_community("Gated", slug="gated", join_policy=JoinPolicy.APPROVAL_REQUIRED)

    @pytest.fixture()
    def pending(self, client, gated, member_headers):
        _join(client, gated.slug, member_headers)
        return gated

    def test_list_members_owner_only(self, client, community, membership, owner_headers, member_headers) -> None:
        response = client.get(f"/api/v1/communities/{community.slug}/members", headers=owner_headers)
        assert response.status_code == status.HTTP_200_OK
        usernames = {m["user"]["username"] for m in response.json()}
        assert usernames == {"alice", "bob"}

        response = client.get(f"/api/v1/communities/{community.slug}/members", headers=member_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_approve_pending(self, client, pending, member_user, owner_headers) -> None:
        response = client.patch(
            f"/api/v1/communities/{pending.slug}/members/{member_user.id}",
            json={"status": "APPROVED"},
            headers=owner_headers,
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "APPROVED"

    def test_reject_then_cannot_rejoin(self, client, pending, member_user, owner_headers, member_headers) -> None:
        response = client.patch(
            f"/api/v1/communities/{pending.slug}/members/{member_user.id}",
            json={"status": "REJECTED"},
            headers=owner_headers,
        )
        assert response.json()["status"] == "REJECTED"

        response = _join(client, pending.slug, member_headers)
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_approved_cannot_go_back_to_pending(self, client, community, membership, member_user, owner_headers) -> None:
        response = client.patch(
            f"/api/v1/communities/{community.slug}/members/{member_user.id}",
            json={"status": "PENDING"},
            headers=owner_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "invalid_transition"

    def test_same_status_is_noop(self, client, community, membership, member_user, owner_headers) -> None:
        response = client.patch(
            f"/api/v1/communities/{community.slug}/members/{member_user.id}",
            json={"status": "APPROVED", "points": 5},
            headers=owner_headers,
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["points"] == 5

    def test_set_points(self, client, community, membership, member_user, owner_headers) -> None:
        response = client.patch(
            f"/api/v1/communities/{community.slug}/members/{member_user.id}",
            json={"points": 50},
            headers=owner_headers,
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["points"] == 50

    def test_negative_points_rejected(self, client, community, membership, member_user, owner_headers) -> None:
        response = client.patch(
            f"/api/v1/communities/{community.slug}/members/{member_user.id}",
            json={"points": -1},
            headers=owner_headers,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_member_cannot_moderate(self, client, community, membership, owner, member_headers) -> None:
        response = client.patch(
            f"/api/v1/communities/{community.slug}/members/{owner.id}",
            json={"points": 1000},
            headers=member_headers,
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_target(self, client, community, owner_headers) -> None:
        response = client.patch(
            f"/api/v1/communities/{community.slug}/members/9999",
            json={"points": 1},
            headers=owner_headers,
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Member not found"

    def test_owner_role_cannot_be_demoted(self, client, community, owner, owner_headers) -> None:
        response = client.patch(
            f"/api/v1/communities/{community.slug}/members/{owner.id}",
            json={"role": "MEMBER"},
            headers=owner_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "owner_required"

    def test_ownership_transfer(self, client, community, membership, owner, member_user, owner_headers, db_session) -> None:
        response = client.patch(
            f"/api/v1/communities/{community.slug}/members/{member_user.id}",
            json={"role": "OWNER"},
            headers=owner_headers,
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["role"] == "OWNER"

        db_session.expire_all()
        roles = {
            m.user_id: m.role
            for m in db_session.query(CommunityMember).filter_by(community_id=community.id)
        }
        assert roles == {owner.id: MemberRole.ADMIN, member_user.id: MemberRole.OWNER}
        db_session.refresh(community)
        assert community.owner_id == member_user.id

    def test_admin_cannot_grant_admin(
        self, client, community, membership, make_user, auth_headers, member_user, owner_headers, db_session
    ) -> None:
        client.patch(
            f"/api/v1/communities/{community.slug}/members/{member_user.id}",
            json={"role": "ADMIN"},
            headers=owner_headers,
        )
        carol = make_user("carol")
        _join(client, community.slug, auth_headers(carol))

        response = client.patch(
            f"/api/v1/communities/{community.slug}/members/{carol.id}",
            json={"role": "ADMIN"},
            headers=auth_headers(member_user),
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

        response = client.patch(
            f"/api/v1/communities/{community.slug}/members/{carol.id}",
            json={"points": 10},
            headers=auth_headers(member_user),
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["points"] == 10

    def test_admin_cannot_transfer_ownership(
        self, client, community, membership, member_user, owner_headers, make_user, auth_headers
    ) -> None:
        client.patch(
            f"/api/v1/communities/{community.slug}/members/{member_user.id}",
            json={"role": "ADMIN"},
            headers=owner_headers,
        )
        carol = make_user("carol")
        _join(client, community.slug, auth_headers(carol))
        response = client.patch(
            f"/api/v1/communities/{community.slug}/members/{carol.id}",
            json={"role": "OWNER"},
            headers=auth_headers(member_user),
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_transfer_requires_approved_target(self, client, pending, member_user, owner_headers) -> None:
        response = client.patch(
            f"/api/v1/communities/{pending.slug}/members/{member_user.id}",
            json={"role": "OWNER"},
            headers=owner_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "owner_required"
