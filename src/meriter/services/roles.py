"""Membership lookups feeding the permission evaluators."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from meriter.models import Community, TypeTag, User, UserCommunityRole
from meriter.services.permissions import Actor


def get_role(db: Session, user_id: str, community_id: str) -> str | None:
    """Return the stored community role of ``user_id`` or None."""
    membership = db.get(UserCommunityRole, (user_id, community_id))
    return membership.role if membership is not None else None


def build_actor(db: Session, user: User | None, community_id: str) -> Actor:
    """Describe ``user`` as seen from ``community_id``."""
    if user is None:
        return Actor(user_id=None)
    return Actor(
        user_id=user.id,
        global_role=user.global_role,
        community_role=get_role(db, user.id, community_id),
    )


def team_community_ids(db: Session, user_id: str) -> set[str]:
    """Return the ids of every ``team`` community the user belongs to."""
    stmt = (
        select(UserCommunityRole.community_id)
        .join(Community, Community.id == UserCommunityRole.community_id)
        .where(
            UserCommunityRole.user_id == user_id,
            Community.type_tag == TypeTag.TEAM.value,
        )
    )
    return set(db.scalars(stmt))


def share_team(db: Session, left_user_id: str, right_user_id: str) -> bool:
    """Return True when both users are members of at least one common team."""
    return bool(team_community_ids(db, left_user_id) & team_community_ids(db, right_user_id))


def set_role(db: Session, user_id: str, community_id: str, role: str) -> UserCommunityRole:
    """Grant or change a membership role; the caller commits."""
    membership = db.get(UserCommunityRole, (user_id, community_id))
    if membership is None:
        membership = UserCommunityRole(user_id=user_id, community_id=community_id, role=role)
        db.add(membership)
    else:
        membership.role = role
    db.flush()
    return membership


def remove_role(db: Session, user_id: str, community_id: str) -> bool:
    """Drop a membership; returns False when there was none."""
    membership = db.get(UserCommunityRole, (user_id, community_id))
    if membership is None:
        return False
    db.delete(membership)
    db.flush()
    return True
