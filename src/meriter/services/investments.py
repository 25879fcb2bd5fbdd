"""Investment pools on publications."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from meriter.core.errors import InsufficientFundsError, PermissionDeniedError, ValidationError
from meriter.db.time import utcnow
from meriter.models import Investment, Publication, User
from meriter.schemas.investment import InvestmentResult, InvestmentShare, PortfolioEntry
from meriter.services import roles
from meriter.services.permissions import can_invest
from meriter.services.publications import get_publication, investor_contributions
from meriter.services.rule_store import CommunityRuleStore
from meriter.services.settlement import preview_share, share_percent
from meriter.services.wallet import WalletService

logger = logging.getLogger(__name__)


class InvestmentService:
    """Adds contributions to post pools and reports investor shares.

    Shares are always recomputed from the stored contributions, never cached.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.rules = CommunityRuleStore(db)
        self.wallets = WalletService(db)

    def invest(self, user: User, publication_id: str, amount: float) -> InvestmentResult:
        """Move ``amount`` from the investor's wallet into the post pool.

        Raises:
            ValidationError: If ``amount`` is not positive.
            PermissionDeniedError: If investing is not allowed on this post.
            InsufficientFundsError: If the wallet does not cover ``amount``.
        """
        if amount <= 0:
            raise ValidationError("Investment amount must be positive")
        publication = get_publication(self.db, publication_id)
        rules = self.rules.get_effective_rules(publication.community_id)
        actor = roles.build_actor(self.db, user, publication.community_id)
        decision = can_invest(
            actor,
            rules,
            author_id=publication.author_id,
            investing_enabled=publication.investing_enabled,
            closed=publication.closed,
        )
        if not decision.allowed:
            logger.debug("Investment denied for %s: %s", user.id, decision.reason)
            raise PermissionDeniedError(decision.reason or "denied")

        balance = self.wallets.balance(user.id, publication.community_id)
        if balance < amount:
            raise InsufficientFundsError("wallet balance", balance, amount)
        self.wallets.debit(user.id, publication.community_id, amount, "investment", publication.id)

        investment = self.db.get(Investment, (publication.id, user.id))
        if investment is None:
            investment = Investment(publication_id=publication.id, investor_id=user.id, amount=0.0)
            self.db.add(investment)
        investment.amount += amount
        investment.updated_at = utcnow()
        publication.investment_pool += amount
        publication.investment_pool_total += amount

        self.db.commit()
        self.db.refresh(publication)
        logger.info("User %s invested %s in publication %s", user.id, amount, publication.id)
        return InvestmentResult(
            publication_id=publication.id,
            investor_id=user.id,
            amount=investment.amount,
            investment_pool=publication.investment_pool,
            investment_pool_total=publication.investment_pool_total,
            investments=self.shares(publication),
        )

    def shares(self, publication: Publication) -> list[InvestmentShare]:
        contributions = investor_contributions(self.db, publication.id)
        total = sum(value for _, value in contributions)
        return [
            InvestmentShare(
                investor_id=investor_id,
                amount=value,
                share_percent=share_percent(value, total),
            )
            for investor_id, value in contributions
        ]

    def share_percent(self, publication_id: str, investor_id: str) -> float:
        """Current share of ``investor_id`` in the post's pool, in percent."""
        contributions = dict(investor_contributions(self.db, publication_id))
        return share_percent(contributions.get(investor_id, 0.0), sum(contributions.values()))

    def preview_share(self, publication_id: str, investor_id: str, new_amount: float) -> float:
        """Share ``investor_id`` would hold after investing ``new_amount`` more."""
        contributions = dict(investor_contributions(self.db, publication_id))
        return preview_share(
            contributions.get(investor_id, 0.0),
            sum(contributions.values()),
            new_amount,
        )

    def portfolio(self, user: User) -> list[PortfolioEntry]:
        """List every post ``user`` has invested in with the current share."""
        rows = (
            self.db.query(Investment, Publication)
            .join(Publication, Publication.id == Investment.publication_id)
            .filter(Investment.investor_id == user.id)
            .order_by(Investment.created_at)
            .all()
        )
        return [
            PortfolioEntry(
                publication_id=publication.id,
                amount=investment.amount,
                share_percent=self.share_percent(publication.id, user.id),
                investment_pool=publication.investment_pool,
                investment_pool_total=publication.investment_pool_total,
            )
            for investment, publication in rows
        ]
