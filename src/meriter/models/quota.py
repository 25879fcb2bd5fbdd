"""Append-only ledger of daily quota consumption."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from sqlalchemy import CheckConstraint, DateTime, Float, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from meriter.db.session import Base


class UsageType(StrEnum):
    """What a quota spend paid for."""

    VOTE = "vote"
    POLL_CAST = "poll_cast"
    PUBLICATION_CREATION = "publication_creation"
    POLL_CREATION = "poll_creation"


class QuotaUsage(Base):
    """A single quota consumption event.

    Rows are never updated or deleted once written.
    """

    __tablename__ = "quota_usage"
    __table_args__ = (
        CheckConstraint("amount_quota > 0", name="ck_quota_usage_amount_positive"),
        Index("ix_quota_usage_user_community_created", "user_id", "community_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    community_id: Mapped[str] = mapped_column(Text, nullable=False)
    amount_quota: Mapped[float] = mapped_column(Float, nullable=False)
    usage_type: Mapped[str] = mapped_column(Text, nullable=False)
    reference_id: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
