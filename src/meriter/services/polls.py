"""Polls: creation cost and merit-weighted casting."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func
from sqlalchemy.orm import Session

from meriter.core.errors import PermissionDeniedError, ValidationError
from meriter.core.settings import settings
from meriter.models import PollCast, Publication, UsageType, User
from meriter.models.publication import KIND_POLL
from meriter.schemas.community import ActionType
from meriter.schemas.publication import PollCastCreate, PollCreate
from meriter.services import roles
from meriter.services.permissions import DenialReason, can_perform
from meriter.services.publications import PublicationService, get_publication
from meriter.services.settlement import VoteFunding, ensure_covered

logger = logging.getLogger(__name__)


def poll_option_totals(db: Session, poll: Publication) -> list[dict[str, object]]:
    """Return the merit total and cast count for every option of ``poll``."""
    rows = (
        db.query(
            PollCast.option_index,
            func.sum(PollCast.amount_quota + PollCast.amount_wallet),
            func.count(PollCast.id),
        )
        .filter(PollCast.poll_id == poll.id)
        .group_by(PollCast.option_index)
        .all()
    )
    totals = {index: (float(amount or 0), int(count)) for index, amount, count in rows}
    return [
        {
            "index": index,
            "text": text,
            "amount": totals.get(index, (0.0, 0))[0],
            "casts": totals.get(index, (0.0, 0))[1],
        }
        for index, text in enumerate(poll.poll_options or [])
    ]


class PollService(PublicationService):
    """Publication service specialised for polls."""

    def create_poll(self, user: User, data: PollCreate) -> Publication:
        """Create a poll and charge ``POLL_COST``."""
        community = self.rules.get_community(data.community_id)
        rules = self.rules.get_effective_rules(community.id)
        actor = roles.build_actor(self.db, user, community.id)
        decision = can_perform(
            actor,
            rules,
            ActionType.CREATE_POLL,
            self.creation_context(actor, rules),
        )
        if not decision.allowed:
            raise PermissionDeniedError(decision.reason or "denied")

        options = [option.strip() for option in data.options]
        if any(not option for option in options):
            raise ValidationError("Poll options must not be empty")

        poll = Publication(
            id=str(uuid.uuid4()),
            community_id=community.id,
            author_id=user.id,
            kind=KIND_POLL,
            title=data.title,
            body=data.body,
            poll_options=options,
        )
        self.charge_creation(
            user,
            community,
            rules,
            actor.role,
            settings.poll_cost,
            UsageType.POLL_CREATION,
            poll.id,
        )
        self.db.add(poll)
        self.db.commit()
        self.db.refresh(poll)
        logger.info("User %s created poll %s", user.id, poll.id)
        return poll

    def cast(self, user: User, poll_id: str, data: PollCastCreate) -> PollCast:
        """Spend quota and/or wallet merits on one poll option.

        Raises:
            ValidationError: If the poll is closed, the option is unknown or
                nothing is being spent.
            InsufficientFundsError: If quota or wallet fall short.
        """
        poll = get_publication(self.db, poll_id)
        if poll.kind != KIND_POLL:
            raise ValidationError("Publication is not a poll")
        if poll.closed:
            raise ValidationError("Poll is closed")
        if data.option_index >= len(poll.poll_options or []):
            raise ValidationError(f"Unknown poll option: {data.option_index}")

        funding = VoteFunding(quota_amount=data.quota_amount, wallet_amount=data.wallet_amount)
        if funding.total <= 0:
            raise ValidationError("At least one of quota_amount or wallet_amount must be positive")

        community = self.rules.get_community(poll.community_id)
        rules = self.rules.get_effective_rules(community.id)
        actor = roles.build_actor(self.db, user, community.id)
        if actor.role is None:
            raise PermissionDeniedError(DenialReason.NO_ROLE)
        if funding.wallet_amount > 0 and not rules.merit_settings.can_spend:
            raise ValidationError("Spending wallet merits is disabled in this community")

        ensure_covered(
            funding,
            self.ledger.get_remaining_quota(user.id, community, rules, actor.role),
            self.wallets.balance(user.id, community.id),
        )

        cast = PollCast(
            id=str(uuid.uuid4()),
            poll_id=poll.id,
            user_id=user.id,
            community_id=community.id,
            option_index=data.option_index,
            amount_quota=funding.quota_amount,
            amount_wallet=funding.wallet_amount,
        )
        self.db.add(cast)
        if funding.quota_amount > 0:
            self.ledger.consume_quota(
                user.id,
                community.id,
                funding.quota_amount,
                UsageType.POLL_CAST,
                cast.id,
            )
        if funding.wallet_amount > 0:
            self.wallets.debit(user.id, community.id, funding.wallet_amount, "poll_cast", cast.id)
        self.db.commit()
        self.db.refresh(cast)
        logger.info("User %s cast %s on poll %s", user.id, funding.total, poll.id)
        return cast
