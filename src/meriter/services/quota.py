"""Daily quota ledger.

Quota spends are append-only ``QuotaUsage`` rows. The amount used in the
current window is always recomputed by summation; nothing caches it.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from meriter.core.errors import ValidationError
from meriter.core.settings import settings
from meriter.db.time import as_utc, utcnow
from meriter.models import Community, QuotaUsage, TypeTag, UsageType
from meriter.schemas.community import EffectiveRules

logger = logging.getLogger(__name__)


def quota_window_start(
    now: datetime,
    last_reset_at: datetime | None = None,
    day_start_hour: int | None = None,
) -> datetime:
    """Return the instant the current quota window opened.

    The day boundary is ``day_start_hour`` UTC. A manual reset later than that
    boundary opens a new window from the reset instant.
    """
    hour = settings.quota_day_start_hour_utc if day_start_hour is None else day_start_hour
    now = as_utc(now)
    start = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if start > now:
        start -= timedelta(days=1)
    if last_reset_at is not None:
        reset = as_utc(last_reset_at)
        if start < reset <= now:
            return reset
    return start


class QuotaLedger:
    """Append and sum quota usage records for (user, community) pairs."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow) -> None:
        self.db = db
        self.clock = clock

    def consume_quota(
        self,
        user_id: str,
        community_id: str,
        amount: float,
        usage_type: UsageType | str,
        reference_id: str,
    ) -> QuotaUsage:
        """Record a quota spend.

        The row is flushed but not committed; the caller owns the transaction.
        No upper bound is enforced here, callers check the remaining quota first.

        Raises:
            ValidationError: If ``amount`` is not positive or an id is missing.
        """
        if amount <= 0:
            raise ValidationError("Quota amount must be positive")
        if not user_id or not community_id:
            raise ValidationError("user_id and community_id are required")
        try:
            usage_type = UsageType(usage_type)
        except ValueError as err:
            raise ValidationError(f"Unknown usage type: {usage_type}") from err

        usage = QuotaUsage(
            id=str(uuid.uuid4()),
            user_id=user_id,
            community_id=community_id,
            amount_quota=float(amount),
            usage_type=usage_type.value,
            reference_id=reference_id,
            created_at=self.clock(),
        )
        self.db.add(usage)
        self.db.flush()
        logger.info(
            "Consumed %s quota for %s in community %s by user %s",
            amount,
            usage_type.value,
            community_id,
            user_id,
        )
        return usage

    def get_quota_used(self, user_id: str, community_id: str, since: datetime) -> float:
        """Sum quota spent by the user in the community at or after ``since``."""
        total = (
            self.db.query(func.coalesce(func.sum(QuotaUsage.amount_quota), 0.0))
            .filter(
                QuotaUsage.user_id == user_id,
                QuotaUsage.community_id == community_id,
                QuotaUsage.created_at >= as_utc(since),
            )
            .scalar()
        )
        return float(total or 0.0)

    def window_start(self, community: Community) -> datetime:
        return quota_window_start(self.clock(), community.last_quota_reset_at)

    def get_remaining_quota(
        self,
        user_id: str,
        community: Community,
        rules: EffectiveRules,
        role: str | None,
    ) -> float:
        """Return how much quota the user may still spend in this window.

        ``future-vision`` communities run on wallets only, and roles missing from
        ``quota_recipients`` receive no quota.
        """
        if rules.type_tag == TypeTag.FUTURE_VISION:
            return 0.0
        if role is None or role not in rules.merit_settings.quota_recipients:
            return 0.0
        used = self.get_quota_used(user_id, community.id, self.window_start(community))
        return max(0.0, rules.merit_settings.daily_quota - used)
