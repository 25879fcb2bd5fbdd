# mypy: ignore-errors
# tests/v1/test_communities.py
"""Tests for community rule, settings, membership and quota endpoints."""

from fastapi import status

from meriter.models import Community, UserCommunityRole


def test_superadmin_creates_community(client, db_session, auth_headers, superadmin) -> None:
    response = client.post(
        "/api/v1/communities",
        json={"name": "Marathon", "type_tag": "marathon-of-good"},
        headers=auth_headers(superadmin),
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["type_tag"] == "marathon-of-good"
    assert data["needs_setup"] is True


def test_unknown_type_tag_becomes_default(client, auth_headers, superadmin) -> None:
    response = client.post(
        "/api/v1/communities",
        json={"name": "Odd", "type_tag": "something-else"},
        headers=auth_headers(superadmin),
    )
    assert response.json()["type_tag"] == "default"


def test_regular_user_cannot_create_community(client, auth_headers, make_user) -> None:
    response = client.post(
        "/api/v1/communities",
        json={"name": "Mine"},
        headers=auth_headers(make_user()),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_get_nonexistent_community(client) -> None:
    response = client.get("/api/v1/communities/missing")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_rules_fall_back_to_type_tag_defaults(client, make_community) -> None:
    community = make_community("future-vision")
    response = client.get(f"/api/v1/communities/{community.id}/rules")
    assert response.status_code == status.HTTP_200_OK
    rules = response.json()
    assert rules["type_tag"] == "future-vision"
    assert rules["voting_rules"]["can_vote_for_own_posts"] is True
    assert "viewer" not in rules["merit_settings"]["quota_recipients"]


class TestUpdateRules:
    def test_lead_patches_one_field(
        self, client, db_session, auth_headers, make_user, make_community, add_member
    ) -> None:
        community = make_community("marathon-of-good", needs_setup=True)
        lead = make_user("Lead")
        add_member(lead, community, "lead")

        response = client.patch(
            f"/api/v1/communities/{community.id}",
            json={"merit_settings": {"daily_quota": 7}},
            headers=auth_headers(lead),
        )
        assert response.status_code == status.HTTP_200_OK
        rules = response.json()
        assert rules["merit_settings"]["daily_quota"] == 7
        # Untouched fields keep their defaults.
        assert rules["merit_settings"]["can_spend"] is True
        assert rules["voting_rules"]["participants_cannot_vote_for_lead"] is True

        db_session.refresh(community)
        assert community.needs_setup is False
        assert community.merit_settings["daily_quota"] == 7

    def test_invalid_section_rejected(
        self, client, auth_headers, make_user, make_community, add_member
    ) -> None:
        community = make_community("default")
        lead = make_user("Lead")
        add_member(lead, community, "lead")

        response = client.patch(
            f"/api/v1/communities/{community.id}",
            json={"merit_settings": {"daily_quota": -1}},
            headers=auth_headers(lead),
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_permission_rule_override(
        self, client, auth_headers, make_user, make_community, add_member
    ) -> None:
        community = make_community("default")
        lead = make_user("Lead")
        add_member(lead, community, "lead")

        response = client.patch(
            f"/api/v1/communities/{community.id}",
            json={
                "permission_rules": [
                    {"role": "participant", "action": "create_publication", "allowed": False}
                ]
            },
            headers=auth_headers(lead),
        )
        assert response.status_code == status.HTTP_200_OK
        matching = [
            rule
            for rule in response.json()["permission_rules"]
            if rule["role"] == "participant" and rule["action"] == "create_publication"
        ]
        assert matching[0]["allowed"] is False

        member = make_user("Member")
        add_member(member, community, "participant")
        response = client.post(
            "/api/v1/publications",
            json={"community_id": community.id, "body": "Blocked"},
            headers=auth_headers(member),
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"]["reason"] == "ruleDenied"

    def test_participant_cannot_patch(
        self, client, auth_headers, make_user, make_community, add_member
    ) -> None:
        community = make_community("default")
        member = make_user("Member")
        add_member(member, community, "participant")
        response = client.patch(
            f"/api/v1/communities/{community.id}",
            json={"name": "Renamed"},
            headers=auth_headers(member),
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_superadmin_renames(self, client, db_session, auth_headers, superadmin, make_community) -> None:
        community = make_community("team")
        response = client.patch(
            f"/api/v1/communities/{community.id}",
            json={"name": "Renamed"},
            headers=auth_headers(superadmin),
        )
        assert response.status_code == status.HTTP_200_OK
        assert db_session.get(Community, community.id).name == "Renamed"


class TestQuota:
    def test_quota_snapshot_after_vote(
        self, client, auth_headers, make_user, make_community, add_member, make_publication
    ) -> None:
        community = make_community("default", merit_settings={"daily_quota": 10})
        author = make_user("Author")
        voter = make_user("Voter")
        add_member(author, community, "participant")
        add_member(voter, community, "participant")
        post = make_publication(community, author)

        client.post(
            "/api/v1/votes",
            json={"target_id": post.id, "amount": 4},
            headers=auth_headers(voter),
        )
        response = client.get(f"/api/v1/communities/{community.id}/quota", headers=auth_headers(voter))
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["daily_quota"] == 10
        assert data["used"] == 4
        assert data["remaining"] == 6

    def test_reset_starts_a_fresh_window(
        self, client, auth_headers, make_user, make_community, add_member, make_publication
    ) -> None:
        community = make_community("default", merit_settings={"daily_quota": 10})
        lead = make_user("Lead")
        author = make_user("Author")
        add_member(lead, community, "lead")
        add_member(author, community, "participant")
        post = make_publication(community, author)

        client.post(
            "/api/v1/votes",
            json={"target_id": post.id, "amount": 10},
            headers=auth_headers(lead),
        )
        before = client.get(f"/api/v1/communities/{community.id}/quota", headers=auth_headers(lead))
        assert before.json()["remaining"] == 0

        response = client.post(
            f"/api/v1/communities/{community.id}/quota/reset",
            headers=auth_headers(lead),
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["last_quota_reset_at"] is not None

        after = client.get(f"/api/v1/communities/{community.id}/quota", headers=auth_headers(lead))
        assert after.json()["remaining"] == 10

    def test_participant_cannot_reset(
        self, client, auth_headers, make_user, make_community, add_member
    ) -> None:
        community = make_community("default")
        member = make_user("Member")
        add_member(member, community, "participant")
        response = client.post(
            f"/api/v1/communities/{community.id}/quota/reset",
            headers=auth_headers(member),
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestMembers:
    def test_lead_adds_participant(
        self, client, db_session, auth_headers, make_user, make_community, add_member
    ) -> None:
        community = make_community("default")
        lead = make_user("Lead")
        newcomer = make_user("Newcomer")
        add_member(lead, community, "lead")

        response = client.post(
            f"/api/v1/communities/{community.id}/members",
            json={"user_id": newcomer.id, "role": "participant"},
            headers=auth_headers(lead),
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["role"] == "participant"
        stored = db_session.get(UserCommunityRole, (newcomer.id, community.id))
        assert stored is not None
        assert stored.role == "participant"

    def test_superadmin_promotes_existing_member(
        self, client, db_session, auth_headers, superadmin, make_user, make_community, add_member
    ) -> None:
        community = make_community("marathon-of-good")
        member = make_user("Member")
        add_member(member, community, "participant")

        response = client.post(
            f"/api/v1/communities/{community.id}/members",
            json={"user_id": member.id, "role": "lead"},
            headers=auth_headers(superadmin),
        )
        assert response.status_code == status.HTTP_201_CREATED
        db_session.expire_all()
        assert db_session.get(UserCommunityRole, (member.id, community.id)).role == "lead"

    def test_superadmin_role_cannot_be_stored(
        self, client, auth_headers, superadmin, make_user, make_community
    ) -> None:
        community = make_community("default")
        response = client.post(
            f"/api/v1/communities/{community.id}/members",
            json={"user_id": make_user().id, "role": "superadmin"},
            headers=auth_headers(superadmin),
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_unknown_user(self, client, auth_headers, superadmin, make_community) -> None:
        community = make_community("default")
        response = client.post(
            f"/api/v1/communities/{community.id}/members",
            json={"user_id": "missing"},
            headers=auth_headers(superadmin),
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_participant_cannot_add_members(
        self, client, auth_headers, make_user, make_community, add_member
    ) -> None:
        community = make_community("default")
        member = make_user("Member")
        add_member(member, community, "participant")
        response = client.post(
            f"/api/v1/communities/{community.id}/members",
            json={"user_id": make_user("Friend").id},
            headers=auth_headers(member),
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_lead_removes_member(
        self, client, db_session, auth_headers, make_user, make_community, add_member
    ) -> None:
        community = make_community("team")
        lead = make_user("Lead")
        member = make_user("Member")
        add_member(lead, community, "lead")
        add_member(member, community, "participant")

        response = client.delete(
            f"/api/v1/communities/{community.id}/members/{member.id}",
            headers=auth_headers(lead),
        )
        assert response.status_code == status.HTTP_204_NO_CONTENT
        db_session.expire_all()
        assert db_session.get(UserCommunityRole, (member.id, community.id)) is None

    def test_remove_non_member(self, client, auth_headers, superadmin, make_user, make_community) -> None:
        community = make_community("default")
        response = client.delete(
            f"/api/v1/communities/{community.id}/members/{make_user().id}",
            headers=auth_headers(superadmin),
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND
