"""Per-user progress through the tappalka comparison cycle."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from meriter.db.session import Base
from meriter.db.time import utcnow


class TappalkaProgress(Base):
    """Comparison counter for one user in one community.

    ``comparison_count`` restarts at zero every time the user reward is paid.
    """

    __tablename__ = "tappalka_progress"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    community_id: Mapped[str] = mapped_column(Text, primary_key=True)
    comparison_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_comparisons: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_rewards_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    onboarding_seen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
