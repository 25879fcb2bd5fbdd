"""Vote casting: permission check, funding plan, ledger writes."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.orm import Session

from meriter.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from meriter.models import Comment, Community, Publication, UsageType, User, Vote
from meriter.models.vote import DIRECTION_UP, TARGET_COMMENT, TARGET_PUBLICATION
from meriter.schemas.community import EffectiveRules
from meriter.schemas.vote import VoteCreate
from meriter.services import roles
from meriter.services.permissions import (
    Actor,
    PermissionDecision,
    VoteTarget,
    can_vote,
    can_vote_for_beneficiary,
)
from meriter.services.quota import QuotaLedger
from meriter.services.rule_store import CommunityRuleStore
from meriter.services.settlement import (
    VoteFunding,
    check_vote_mode,
    ensure_covered,
    plan_vote_funding,
)
from meriter.services.wallet import WalletService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedTarget:
    """A votable record with the ownership facts the evaluator needs."""

    record: Publication | Comment
    community_id: str
    author_id: str
    beneficiary_id: str
    has_beneficiary: bool
    is_project: bool

    def as_vote_target(self, user_id: str | None) -> VoteTarget:
        return VoteTarget(
            author_id=self.author_id,
            is_author=user_id is not None and user_id == self.author_id,
            is_beneficiary=self.has_beneficiary and user_id == self.beneficiary_id,
            has_beneficiary=self.has_beneficiary,
            is_project=self.is_project,
        )


def load_target(db: Session, target_type: str, target_id: str) -> LoadedTarget:
    """Fetch a live publication or comment.

    Raises:
        NotFoundError: If the target does not exist or was deleted.
    """
    if target_type == TARGET_PUBLICATION:
        publication = db.get(Publication, target_id)
        if publication is None or publication.deleted:
            raise NotFoundError("Publication", target_id)
        return LoadedTarget(
            record=publication,
            community_id=publication.community_id,
            author_id=publication.author_id,
            beneficiary_id=publication.effective_beneficiary_id,
            has_beneficiary=publication.has_beneficiary,
            is_project=publication.is_project,
        )
    if target_type == TARGET_COMMENT:
        comment = db.get(Comment, target_id)
        if comment is None or comment.deleted:
            raise NotFoundError("Comment", target_id)
        return LoadedTarget(
            record=comment,
            community_id=comment.community_id,
            author_id=comment.author_id,
            beneficiary_id=comment.author_id,
            has_beneficiary=False,
            is_project=False,
        )
    raise ValidationError(f"Unknown vote target type: {target_type}")


class VoteService:
    """Casts merit votes on publications and comments."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.rules = CommunityRuleStore(db)
        self.ledger = QuotaLedger(db)
        self.wallets = WalletService(db)

    def check_can_vote(
        self,
        user: User | None,
        target: LoadedTarget,
        community: Community | None = None,
    ) -> PermissionDecision:
        """Run the vote evaluator and the beneficiary-role check."""
        community = community or self.rules.get_community(target.community_id)
        rules = self.rules.get_effective_rules(community.id)
        actor = roles.build_actor(self.db, user, community.id)
        decision = can_vote(actor, rules, target.as_vote_target(actor.user_id))
        if not decision.allowed:
            logger.debug("Vote denied for %s: %s", actor.user_id, decision.reason)
            return decision
        return self._check_beneficiary(actor, rules, target)

    def _check_beneficiary(
        self,
        actor: Actor,
        rules: EffectiveRules,
        target: LoadedTarget,
    ) -> PermissionDecision:
        if not rules.voting_rules.participants_cannot_vote_for_lead or actor.user_id is None:
            return PermissionDecision.allow()
        beneficiary_role = roles.get_role(self.db, target.beneficiary_id, rules.community_id)
        decision = can_vote_for_beneficiary(
            actor,
            rules,
            beneficiary_role,
            shares_team=roles.share_team(self.db, actor.user_id, target.beneficiary_id),
        )
        if not decision.allowed:
            logger.debug("Vote denied for %s: %s", actor.user_id, decision.reason)
        return decision

    def plan_funding(
        self,
        user: User,
        community: Community,
        rules: EffectiveRules,
        data: VoteCreate,
    ) -> VoteFunding:
        """Work out how the vote is paid for.

        An explicit ``quota_amount``/``wallet_amount`` split is validated as
        given; otherwise ``amount`` is split automatically.
        """
        role = roles.build_actor(self.db, user, community.id).role
        remaining = self.ledger.get_remaining_quota(user.id, community, rules, role)
        balance = self.wallets.balance(user.id, community.id)

        if data.quota_amount is not None or data.wallet_amount is not None:
            funding = VoteFunding(
                quota_amount=data.quota_amount or 0.0,
                wallet_amount=data.wallet_amount or 0.0,
            )
            check_vote_mode(
                direction=data.direction,
                quota_amount=funding.quota_amount,
                wallet_amount=funding.wallet_amount,
                type_tag=rules.type_tag,
                role=role,
                comment=data.comment,
            )
            ensure_covered(funding, remaining, balance)
        elif data.amount is not None:
            funding = plan_vote_funding(
                data.direction,
                data.amount,
                remaining,
                balance,
                rules.type_tag,
                role,
                data.comment,
            )
        else:
            raise ValidationError("Vote amount is required")

        if funding.wallet_amount > 0 and not rules.merit_settings.can_spend:
            raise ValidationError("Spending wallet merits is disabled in this community")
        return funding

    def cast_vote(self, user: User, data: VoteCreate) -> Vote:
        """Cast a vote and settle it.

        Raises:
            NotFoundError: If the target or its community is missing.
            PermissionDeniedError: If the evaluator refuses the vote.
            ValidationError: If the vote mode or amounts are invalid.
            InsufficientFundsError: If quota or wallet do not cover the vote.
        """
        target = load_target(self.db, data.target_type, data.target_id)
        community = self.rules.get_community(target.community_id)
        decision = self.check_can_vote(user, target, community)
        if not decision.allowed:
            raise PermissionDeniedError(decision.reason or "denied")

        rules = self.rules.get_effective_rules(community.id)
        funding = self.plan_funding(user, community, rules, data)

        vote = Vote(
            id=str(uuid.uuid4()),
            user_id=user.id,
            community_id=community.id,
            target_type=data.target_type,
            target_id=data.target_id,
            direction=data.direction,
            amount_quota=funding.quota_amount,
            amount_wallet=funding.wallet_amount,
            comment=data.comment,
        )
        self.db.add(vote)

        if funding.quota_amount > 0:
            self.ledger.consume_quota(
                user.id,
                community.id,
                funding.quota_amount,
                UsageType.VOTE,
                vote.id,
            )
        if funding.wallet_amount > 0:
            self.wallets.debit(user.id, community.id, funding.wallet_amount, "vote", vote.id)

        record = target.record
        if rules.voting_rules.awards_merits:
            delta = funding.total if data.direction == DIRECTION_UP else -funding.total
            record.score += delta
            if data.direction == DIRECTION_UP and data.target_type == TARGET_PUBLICATION:
                self.wallets.credit_earned(
                    target.beneficiary_id,
                    community,
                    funding.total,
                    "publication_vote",
                    record.id,
                )
        record.vote_count += 1

        self.db.commit()
        self.db.refresh(vote)
        logger.info(
            "User %s voted %s %s on %s %s (quota=%s, wallet=%s)",
            user.id,
            data.direction,
            funding.total,
            data.target_type,
            data.target_id,
            funding.quota_amount,
            funding.wallet_amount,
        )
        return vote
