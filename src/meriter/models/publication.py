"""SQLAlchemy models for publications, comments, polls and investments."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from meriter.db.session import Base
from meriter.db.time import utcnow

KIND_POST = "post"
KIND_POLL = "poll"
KIND_PROJECT = "project"


class Publication(Base):
    """A post, poll or project inside a community.

    ``score`` is the vote-driven merit balance of the publication; the effective
    beneficiary may withdraw from it.
    """

    __tablename__ = "publication"
    __table_args__ = (Index("ix_publication_community_id", "community_id"),)

    id: Mapped[str] = mapped_column(
        Text,
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    community_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("community.id"),
        nullable=False,
    )
    author_id: Mapped[str] = mapped_column(Text, ForeignKey("user_account.id"), nullable=False)
    # Optional explicit recipient of vote-driven merits; NULL means the author.
    beneficiary_id: Mapped[str | None] = mapped_column(
        Text,
        ForeignKey("user_account.id"),
        nullable=True,
    )
    kind: Mapped[str] = mapped_column(Text, nullable=False, default=KIND_POST)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    categories: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    poll_options: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Investment contract, fixed when the post settings are saved.
    investing_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    investor_share_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    stop_loss: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    investment_ttl_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Unspent contributions and the running total ever invested.
    investment_pool: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    investment_pool_total: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    @property
    def effective_beneficiary_id(self) -> str:
        """Return the user who receives vote-driven merits."""
        return self.beneficiary_id or self.author_id

    @property
    def has_beneficiary(self) -> bool:
        """Return True when a beneficiary other than the author is set."""
        return self.beneficiary_id is not None and self.beneficiary_id != self.author_id

    @property
    def is_project(self) -> bool:
        return self.kind == KIND_PROJECT


class Comment(Base):
    """Comment attached to a publication; comments can be voted on too."""

    __tablename__ = "comment"
    __table_args__ = (Index("ix_comment_publication_id", "publication_id"),)

    id: Mapped[str] = mapped_column(
        Text,
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    publication_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("publication.id", ondelete="CASCADE"),
        nullable=False,
    )
    community_id: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[str] = mapped_column(Text, ForeignKey("user_account.id"), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reply_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class PollCast(Base):
    """A member's merit-weighted choice on a poll option."""

    __tablename__ = "poll_cast"

    id: Mapped[str] = mapped_column(
        Text,
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    poll_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("publication.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    community_id: Mapped[str] = mapped_column(Text, nullable=False)
    option_index: Mapped[int] = mapped_column(Integer, nullable=False)
    amount_quota: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    amount_wallet: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class Investment(Base):
    """Accumulated contribution of one investor to one publication's pool."""

    __tablename__ = "investment"

    publication_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("publication.id", ondelete="CASCADE"),
        primary_key=True,
    )
    investor_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("user_account.id"),
        primary_key=True,
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
