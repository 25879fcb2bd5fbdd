# src/meriter/models/vote.py
"""Models capturing merit votes on publications and comments."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from meriter.db.session import Base
from meriter.db.time import utcnow

TARGET_PUBLICATION = "publication"
TARGET_COMMENT = "comment"

DIRECTION_UP = "up"
DIRECTION_DOWN = "down"


class Vote(Base):
    """A merit-weighted vote.

    Unlike a like, each vote carries an amount split between the daily quota
    and the voter's wallet.
    """

    __tablename__ = "vote"
    __table_args__ = (
        CheckConstraint("direction IN ('up', 'down')", name="ck_vote_direction"),
        CheckConstraint(
            "amount_quota >= 0 AND amount_wallet >= 0",
            name="ck_vote_amounts_non_negative",
        ),
        Index("ix_vote_target", "target_type", "target_id"),
        Index("ix_vote_user_community", "user_id", "community_id"),
    )

    id: Mapped[str] = mapped_column(
        Text,
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    community_id: Mapped[str] = mapped_column(Text, nullable=False)
    target_type: Mapped[str] = mapped_column(Text, nullable=False)
    target_id: Mapped[str] = mapped_column(Text, nullable=False)
    direction: Mapped[str] = mapped_column(Text, nullable=False)
    amount_quota: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    amount_wallet: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    @property
    def total_amount(self) -> float:
        return self.amount_quota + self.amount_wallet
