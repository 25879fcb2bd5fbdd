"""SQLAlchemy models for communities, their rule overrides and membership roles."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from meriter.db.session import Base
from meriter.db.time import utcnow


class TypeTag(StrEnum):
    """Community category driving the default rule sets."""

    DEFAULT = "default"
    MARATHON_OF_GOOD = "marathon-of-good"
    FUTURE_VISION = "future-vision"
    SUPPORT = "support"
    TEAM = "team"


class CommunityRole(StrEnum):
    """Roles that may appear in rule tables.

    ``superadmin`` is never stored in ``user_community_role``; it is resolved
    from the user's global role.
    """

    SUPERADMIN = "superadmin"
    LEAD = "lead"
    PARTICIPANT = "participant"
    VIEWER = "viewer"


ALL_ROLES: tuple[CommunityRole, ...] = (
    CommunityRole.SUPERADMIN,
    CommunityRole.LEAD,
    CommunityRole.PARTICIPANT,
    CommunityRole.VIEWER,
)
MEMBER_ROLES: tuple[CommunityRole, ...] = (
    CommunityRole.LEAD,
    CommunityRole.PARTICIPANT,
    CommunityRole.VIEWER,
)


class Community(Base):
    """Community metadata plus optional rule overrides.

    Each ``*_rules`` / ``*_settings`` column holds a JSON override; NULL means the
    type-tag default applies.
    """

    __tablename__ = "community"

    id: Mapped[str] = mapped_column(
        Text,
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type_tag: Mapped[str] = mapped_column(Text, nullable=False, default=TypeTag.DEFAULT.value)

    voting_rules: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    posting_rules: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    permission_rules: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    merit_settings: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    tappalka_settings: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    investing_settings: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Manual resets start a fresh quota window from this instant.
    last_quota_reset_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    # Soft lifecycle flags; communities are never hard-deleted.
    needs_setup: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class UserCommunityRole(Base):
    """One row per (user, community) membership."""

    __tablename__ = "user_community_role"
    __table_args__ = (Index("ix_user_community_role_community_id", "community_id"),)

    user_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    community_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("community.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role: Mapped[str] = mapped_column(Text, nullable=False)
