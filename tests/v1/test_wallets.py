# mypy: ignore-errors
# tests/v1/test_wallets.py
"""Tests for wallet endpoints."""

from fastapi import status


def test_wallet_balance_and_quota(client, auth_headers, make_user, make_community, add_member, fund_wallet) -> None:
    community = make_community("default", merit_settings={"daily_quota": 12})
    user = make_user()
    add_member(user, community, "participant")
    fund_wallet(user, community, 3.5)

    response = client.get(f"/api/v1/wallets/{community.id}", headers=auth_headers(user))
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "user_id": user.id,
        "community_id": community.id,
        "balance": 3.5,
        "quota_remaining": 12.0,
    }


def test_future_vision_has_no_quota(client, auth_headers, make_user, make_community, add_member) -> None:
    community = make_community("future-vision")
    user = make_user()
    add_member(user, community, "participant")
    response = client.get(f"/api/v1/wallets/{community.id}", headers=auth_headers(user))
    assert response.json()["balance"] == 0
    assert response.json()["quota_remaining"] == 0


def test_wallet_of_unknown_community(client, auth_headers, make_user) -> None:
    response = client.get("/api/v1/wallets/missing", headers=auth_headers(make_user()))
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_wallet_requires_token(client, make_community) -> None:
    community = make_community()
    response = client.get(f"/api/v1/wallets/{community.id}")
    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)
