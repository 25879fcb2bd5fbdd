"""Publication lifecycle: creation costs, edits, comments, withdrawal, closing."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.orm import Session

from meriter.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from meriter.core.settings import settings
from meriter.models import Comment, Community, Investment, Publication, UsageType, User
from meriter.models.community import CommunityRole
from meriter.models.publication import KIND_POST, KIND_PROJECT
from meriter.schemas.community import ActionType, EffectiveRules
from meriter.schemas.investment import CloseResult
from meriter.schemas.publication import (
    CommentCreate,
    PublicationCreate,
    PublicationUpdate,
    WithdrawResponse,
)
from meriter.services import roles
from meriter.services.permissions import (
    ActionContext,
    Actor,
    DenialReason,
    PermissionDecision,
    can_perform,
    can_withdraw,
)
from meriter.services.quota import QuotaLedger
from meriter.services.rule_store import CommunityRuleStore
from meriter.services.settlement import plan_creation_cost, pool_return, split_withdrawal
from meriter.services.wallet import WalletService

logger = logging.getLogger(__name__)


def _require(decision: PermissionDecision) -> None:
    if not decision.allowed:
        raise PermissionDeniedError(decision.reason or "denied")


def get_publication(db: Session, publication_id: str) -> Publication:
    """Return a live publication or raise ``NotFoundError``."""
    publication = db.get(Publication, publication_id)
    if publication is None or publication.deleted:
        raise NotFoundError("Publication", publication_id)
    return publication


def get_comment(db: Session, comment_id: str) -> Comment:
    comment = db.get(Comment, comment_id)
    if comment is None or comment.deleted:
        raise NotFoundError("Comment", comment_id)
    return comment


def investor_contributions(db: Session, publication_id: str) -> list[tuple[str, float]]:
    """Return ``(investor_id, amount)`` pairs in the order investors joined."""
    rows = (
        db.query(Investment)
        .filter(Investment.publication_id == publication_id)
        .order_by(Investment.created_at, Investment.investor_id)
        .all()
    )
    return [(row.investor_id, row.amount) for row in rows]


class PublicationService:
    """Creates and manages publications and their comments."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.rules = CommunityRuleStore(db)
        self.ledger = QuotaLedger(db)
        self.wallets = WalletService(db)

    # Creation

    def creation_context(self, actor: Actor, rules: EffectiveRules) -> ActionContext:
        """Team membership facts for the posting checks."""
        teams: set[str] = set()
        if actor.user_id is not None:
            teams = roles.team_community_ids(self.db, actor.user_id)
        return ActionContext(
            is_team_member=rules.community_id in teams,
            has_team_membership=bool(teams),
        )

    def charge_creation(
        self,
        user: User,
        community: Community,
        rules: EffectiveRules,
        role: str | None,
        cost: float,
        usage_type: UsageType,
        reference_id: str,
    ) -> None:
        """Pay a creation cost from quota, or from the wallet once quota runs out."""
        remaining = self.ledger.get_remaining_quota(user.id, community, rules, role)
        balance = self.wallets.balance(user.id, community.id)
        funding = plan_creation_cost(cost, remaining, balance)
        if funding.quota_amount > 0:
            self.ledger.consume_quota(
                user.id,
                community.id,
                funding.quota_amount,
                usage_type,
                reference_id,
            )
        if funding.wallet_amount > 0:
            self.wallets.debit(
                user.id,
                community.id,
                funding.wallet_amount,
                usage_type.value,
                reference_id,
            )

    def create_publication(self, user: User, data: PublicationCreate) -> Publication:
        """Create a post or project and charge ``POST_COST``.

        Raises:
            PermissionDeniedError: If posting is not allowed for the user.
            ValidationError: If investing is requested where it is disabled.
            InsufficientFundsError: If neither quota nor wallet covers the cost.
        """
        community = self.rules.get_community(data.community_id)
        rules = self.rules.get_effective_rules(community.id)
        actor = roles.build_actor(self.db, user, community.id)
        _require(
            can_perform(
                actor,
                rules,
                ActionType.CREATE_PUBLICATION,
                self.creation_context(actor, rules),
            )
        )

        beneficiary_id = data.beneficiary_id
        if beneficiary_id is not None and self.db.get(User, beneficiary_id) is None:
            raise NotFoundError("User", beneficiary_id)

        investing = rules.investing_settings
        if data.investing_enabled and not investing.enabled:
            raise ValidationError("Investing is disabled in this community")

        publication = Publication(
            id=str(uuid.uuid4()),
            community_id=community.id,
            author_id=user.id,
            beneficiary_id=beneficiary_id,
            kind=KIND_PROJECT if data.is_project else KIND_POST,
            title=data.title,
            body=data.body,
            categories=list(data.categories),
            investing_enabled=data.investing_enabled,
            investor_share_percent=(
                data.investor_share_percent
                if data.investor_share_percent is not None
                else investing.default_contract_percent
            ),
            stop_loss=(
                data.stop_loss if data.stop_loss is not None else investing.default_stop_loss
            ),
            investment_ttl_days=(
                data.investment_ttl_days
                if data.investment_ttl_days is not None
                else investing.default_ttl_days
            ),
        )
        self.charge_creation(
            user,
            community,
            rules,
            actor.role,
            settings.post_cost,
            UsageType.PUBLICATION_CREATION,
            publication.id,
        )
        self.db.add(publication)
        self.db.commit()
        self.db.refresh(publication)
        logger.info("User %s created publication %s", user.id, publication.id)
        return publication

    # Editing

    def _check_edit(
        self,
        user: User,
        community_id: str,
        action: ActionType,
        *,
        author_id: str,
        has_votes: bool,
        has_comments: bool,
    ) -> None:
        rules = self.rules.get_effective_rules(community_id)
        actor = roles.build_actor(self.db, user, community_id)
        context = ActionContext(
            is_author=author_id == user.id,
            has_votes=has_votes,
            has_comments=has_comments,
        )
        decision = can_perform(actor, rules, action, context)
        if not decision.allowed:
            logger.debug("%s denied for %s: %s", action.value, user.id, decision.reason)
        _require(decision)

    def update_publication(
        self,
        user: User,
        publication_id: str,
        data: PublicationUpdate,
    ) -> Publication:
        publication = get_publication(self.db, publication_id)
        self._check_edit(
            user,
            publication.community_id,
            ActionType.EDIT_PUBLICATION,
            author_id=publication.author_id,
            has_votes=publication.vote_count > 0,
            has_comments=publication.comment_count > 0,
        )
        if data.title is not None:
            publication.title = data.title
        if data.body is not None:
            publication.body = data.body
        if data.categories is not None:
            publication.categories = list(data.categories)
        self.db.commit()
        self.db.refresh(publication)
        return publication

    def delete_publication(self, user: User, publication_id: str) -> None:
        """Soft-delete a publication."""
        publication = get_publication(self.db, publication_id)
        self._check_edit(
            user,
            publication.community_id,
            ActionType.DELETE_PUBLICATION,
            author_id=publication.author_id,
            has_votes=publication.vote_count > 0,
            has_comments=publication.comment_count > 0,
        )
        publication.deleted = True
        self.db.commit()
        logger.info("User %s deleted publication %s", user.id, publication.id)

    # Comments

    def add_comment(self, user: User, publication_id: str, data: CommentCreate) -> Comment:
        """Comment on a publication; any member of the community may comment."""
        publication = get_publication(self.db, publication_id)
        actor = roles.build_actor(self.db, user, publication.community_id)
        if actor.role is None:
            raise PermissionDeniedError(DenialReason.NO_ROLE)
        comment = Comment(
            publication_id=publication.id,
            community_id=publication.community_id,
            author_id=user.id,
            body=data.body,
        )
        self.db.add(comment)
        publication.comment_count += 1
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def update_comment(self, user: User, comment_id: str, data: CommentCreate) -> Comment:
        comment = get_comment(self.db, comment_id)
        self._check_edit(
            user,
            comment.community_id,
            ActionType.EDIT_COMMENT,
            author_id=comment.author_id,
            has_votes=comment.vote_count > 0,
            has_comments=comment.reply_count > 0,
        )
        comment.body = data.body
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def delete_comment(self, user: User, comment_id: str) -> None:
        comment = get_comment(self.db, comment_id)
        self._check_edit(
            user,
            comment.community_id,
            ActionType.DELETE_COMMENT,
            author_id=comment.author_id,
            has_votes=comment.vote_count > 0,
            has_comments=comment.reply_count > 0,
        )
        comment.deleted = True
        publication = self.db.get(Publication, comment.publication_id)
        if publication is not None and publication.comment_count > 0:
            publication.comment_count -= 1
        self.db.commit()

    # Settlement

    def _distribute(
        self,
        publication: Publication,
        community: Community,
        amount: float,
    ) -> WithdrawResponse:
        split = split_withdrawal(
            amount,
            publication.investor_share_percent,
            investor_contributions(self.db, publication.id),
        )
        beneficiary_id = publication.effective_beneficiary_id

        for investor_id, share in split.investor_amounts.items():
            self.wallets.credit(
                investor_id,
                publication.community_id,
                share,
                "investment_distribution",
                publication.id,
            )
        if split.beneficiary_amount > 0:
            credited_community_id = self.wallets.credit_earned(
                beneficiary_id,
                community,
                split.beneficiary_amount,
                "publication_withdrawal",
                publication.id,
            )
        else:
            credited_community_id = self.wallets.conversion_community_id(beneficiary_id, community)
        publication.score -= amount

        return WithdrawResponse(
            publication_id=publication.id,
            beneficiary_id=beneficiary_id,
            credited_community_id=credited_community_id,
            beneficiary_amount=split.beneficiary_amount,
            investor_distributions=[
                {"investor_id": investor_id, "amount": share}
                for investor_id, share in split.investor_amounts.items()
            ],
            remaining_score=publication.score,
        )

    def withdraw(
        self,
        user: User,
        publication_id: str,
        amount: float | None = None,
    ) -> WithdrawResponse:
        """Move merits from a publication's score into wallets.

        ``amount`` is capped at the current score; when omitted the whole score
        is withdrawn.

        Raises:
            PermissionDeniedError: If the user is not the effective beneficiary.
            ValidationError: If the score is not positive or ``amount`` is not positive.
        """
        publication = get_publication(self.db, publication_id)
        community = self.rules.get_community(publication.community_id)
        rules = self.rules.get_effective_rules(community.id)
        actor = roles.build_actor(self.db, user, community.id)
        _require(can_withdraw(actor, rules, publication.effective_beneficiary_id))

        if amount is not None and amount <= 0:
            raise ValidationError("Withdrawal amount must be positive")
        available = publication.score
        if available <= 0:
            raise ValidationError("No balance available to withdraw")
        amount = available if amount is None else min(amount, available)

        result = self._distribute(publication, community, amount)
        self.db.commit()
        logger.info(
            "Withdrew %s from publication %s to %s",
            amount,
            publication.id,
            result.beneficiary_id,
        )
        return result

    def close(self, user: User, publication_id: str) -> CloseResult:
        """Close a publication.

        The unspent investment pool goes back to investors and any positive
        score is withdrawn to the beneficiary and investors. Only the author,
        leads and superadmins may close.
        """
        publication = get_publication(self.db, publication_id)
        if publication.closed:
            raise ValidationError("Publication is already closed")
        community = self.rules.get_community(publication.community_id)
        actor = roles.build_actor(self.db, user, community.id)
        if publication.author_id != user.id and actor.role not in (
            CommunityRole.LEAD,
            CommunityRole.SUPERADMIN,
        ):
            raise PermissionDeniedError(DenialReason.NOT_AUTHOR)

        returned = pool_return(
            publication.investment_pool,
            investor_contributions(self.db, publication.id),
        )
        for investor_id, amount in returned.items():
            self.wallets.credit(
                investor_id,
                publication.community_id,
                amount,
                "investment_pool_return",
                publication.id,
            )
        publication.investment_pool = 0.0

        withdrawn = 0.0
        if publication.score > 0:
            withdrawn = publication.score
            self._distribute(publication, community, withdrawn)
        publication.closed = True
        self.db.commit()
        logger.info("Closed publication %s", publication.id)
        return CloseResult(
            publication_id=publication.id,
            pool_returned=[
                {"investor_id": investor_id, "amount": amount}
                for investor_id, amount in returned.items()
            ],
            withdrawn=withdrawn,
        )
