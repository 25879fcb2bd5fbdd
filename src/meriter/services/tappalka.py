"""Tappalka: pairwise post comparisons with merit rewards."""

from __future__ import annotations

import logging
import random
import uuid

from sqlalchemy.orm import Session

from meriter.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from meriter.db.time import utcnow
from meriter.models import Publication, TappalkaProgress, User
from meriter.models.publication import KIND_POLL
from meriter.schemas.community import TappalkaSettings
from meriter.schemas.tappalka import (
    TappalkaChoice,
    TappalkaChoiceResult,
    TappalkaPair,
    TappalkaPost,
    TappalkaProgressResponse,
)
from meriter.services import roles
from meriter.services.permissions import DenialReason
from meriter.services.rule_store import CommunityRuleStore
from meriter.services.settlement import (
    TappalkaState,
    advance_progress,
    is_tappalka_eligible,
    progress_state,
    split_show_cost,
)
from meriter.services.wallet import WalletService

logger = logging.getLogger(__name__)


def _to_card(post: Publication) -> TappalkaPost:
    return TappalkaPost(
        id=post.id,
        title=post.title,
        body=post.body,
        author_id=post.author_id,
        rating=post.score,
        category_id=post.categories[0] if post.categories else None,
    )


class TappalkaService:
    """Serves comparison pairs and settles submitted choices."""

    def __init__(self, db: Session, rng: random.Random | None = None) -> None:
        self.db = db
        self.rng = rng or random.Random()
        self.rules = CommunityRuleStore(db)
        self.wallets = WalletService(db)

    def _settings(self, community_id: str) -> TappalkaSettings:
        return self.rules.get_effective_rules(community_id).tappalka_settings

    def _require_enabled(self, community_id: str) -> TappalkaSettings:
        tappalka = self._settings(community_id)
        if not tappalka.enabled:
            raise ValidationError("Tappalka is not enabled for this community")
        return tappalka

    def _require_member(self, user: User, community_id: str) -> None:
        if roles.build_actor(self.db, user, community_id).role is None:
            raise PermissionDeniedError(DenialReason.NO_ROLE)

    def eligible_posts(
        self,
        community_id: str,
        user_id: str,
        tappalka: TappalkaSettings,
    ) -> list[Publication]:
        """Posts that can be shown: not the user's own, live, rich enough to pay."""
        candidates = (
            self.db.query(Publication)
            .filter(
                Publication.community_id == community_id,
                Publication.author_id != user_id,
                Publication.deleted.is_(False),
                Publication.closed.is_(False),
                Publication.kind != KIND_POLL,
            )
            .all()
        )
        return [
            post
            for post in candidates
            if is_tappalka_eligible(
                score=post.score,
                min_rating=tappalka.min_rating,
                show_cost=tappalka.show_cost,
                categories=tappalka.categories,
                post_categories=post.categories or [],
            )
        ]

    def _pick_pair(
        self,
        community_id: str,
        user_id: str,
        tappalka: TappalkaSettings,
    ) -> TappalkaPair | None:
        posts = self.eligible_posts(community_id, user_id, tappalka)
        if len(posts) < 2:
            return None
        post_a, post_b = self.rng.sample(posts, 2)
        session_id = str(uuid.uuid4())
        logger.debug(
            "Generated tappalka pair %s: %s vs %s",
            session_id,
            post_a.id,
            post_b.id,
        )
        return TappalkaPair(session_id=session_id, post_a=_to_card(post_a), post_b=_to_card(post_b))

    def get_pair(self, user: User, community_id: str) -> TappalkaPair | None:
        """Return a random pair of eligible posts, or None when fewer than two exist."""
        tappalka = self._require_enabled(community_id)
        self._require_member(user, community_id)
        return self._pick_pair(community_id, user.id, tappalka)

    def _deduct_show_cost(self, post: Publication, show_cost: float) -> None:
        """Charge one impression: from the score first, the rest from the author."""
        from_score, from_wallet = split_show_cost(show_cost, post.score)
        post.score -= from_score
        if from_wallet > 0:
            self.wallets.debit(
                post.author_id,
                post.community_id,
                from_wallet,
                "tappalka_show_cost",
                post.id,
            )

    def _progress(self, user_id: str, community_id: str) -> TappalkaProgress:
        progress = self.db.get(TappalkaProgress, (user_id, community_id))
        if progress is None:
            progress = TappalkaProgress(
                user_id=user_id,
                community_id=community_id,
                comparison_count=0,
                total_comparisons=0,
                total_rewards_earned=0,
                onboarding_seen=False,
            )
            self.db.add(progress)
            self.db.flush()
        return progress

    def submit_choice(
        self,
        user: User,
        community_id: str,
        choice: TappalkaChoice,
    ) -> TappalkaChoiceResult:
        """Settle a comparison and return the next pair.

        Raises:
            ValidationError: If tappalka is off or the posts are not comparable.
            NotFoundError: If either post does not exist.
        """
        tappalka = self._require_enabled(community_id)
        self._require_member(user, community_id)
        if choice.winner_post_id == choice.loser_post_id:
            raise ValidationError("Winner and loser must be different posts")

        winner = self.db.get(Publication, choice.winner_post_id)
        loser = self.db.get(Publication, choice.loser_post_id)
        if winner is None:
            raise NotFoundError("Publication", choice.winner_post_id)
        if loser is None:
            raise NotFoundError("Publication", choice.loser_post_id)
        if winner.deleted or loser.deleted:
            raise ValidationError("Posts are deleted")
        if winner.community_id != community_id or loser.community_id != community_id:
            raise ValidationError("Posts are not in the same community")

        self._deduct_show_cost(winner, tappalka.show_cost)
        self._deduct_show_cost(loser, tappalka.show_cost)
        # Emission, not a transfer from the loser.
        winner.score += tappalka.win_reward

        progress = self._progress(user.id, community_id)
        step = advance_progress(progress.comparison_count, tappalka.comparisons_required)
        progress.comparison_count = step.comparison_count
        progress.total_comparisons += 1
        progress.updated_at = utcnow()
        if step.reward_earned:
            progress.total_rewards_earned += 1
            if tappalka.user_reward > 0:
                self.wallets.credit(
                    user.id,
                    community_id,
                    tappalka.user_reward,
                    "tappalka_reward",
                    community_id,
                )
            logger.info(
                "User %s earned %s for %s tappalka comparisons in %s",
                user.id,
                tappalka.user_reward,
                tappalka.comparisons_required,
                community_id,
            )
        self.db.commit()

        next_pair = self._pick_pair(community_id, user.id, tappalka)
        return TappalkaChoiceResult(
            success=True,
            state=step.state.value,
            new_comparison_count=step.comparison_count,
            reward_earned=step.reward_earned,
            user_merits_earned=tappalka.user_reward if step.reward_earned else None,
            next_pair=next_pair,
            no_more_posts=next_pair is None,
        )

    def get_progress(self, user: User, community_id: str) -> TappalkaProgressResponse:
        tappalka = self._settings(community_id)
        progress = self.db.get(TappalkaProgress, (user.id, community_id))
        count = progress.comparison_count if progress is not None else 0
        if progress is not None and count == 0 and progress.total_rewards_earned > 0:
            state = TappalkaState.REWARD_ISSUED
        else:
            state = progress_state(count)
        return TappalkaProgressResponse(
            state=state.value,
            current_comparisons=count,
            comparisons_required=tappalka.comparisons_required,
            merit_balance=self.wallets.balance(user.id, community_id),
            onboarding_seen=progress.onboarding_seen if progress is not None else False,
            onboarding_text=tappalka.onboarding_text,
        )

    def mark_onboarding_seen(self, user: User, community_id: str) -> None:
        self.rules.get_community(community_id)
        progress = self._progress(user.id, community_id)
        progress.onboarding_seen = True
        progress.updated_at = utcnow()
        self.db.commit()
