"""Merit movement calculations.

Pure functions only: they take balances and settings and return how merits
should move. Persisting the result is the job of the calling service.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum

from meriter.core.errors import InsufficientFundsError, ValidationError
from meriter.models.community import CommunityRole, TypeTag
from meriter.models.vote import DIRECTION_DOWN, DIRECTION_UP

# Float noise tolerance when comparing merit amounts.
_EPSILON = 1e-9


@dataclass(frozen=True)
class VoteFunding:
    """How a vote or spend is paid for."""

    quota_amount: float
    wallet_amount: float

    @property
    def total(self) -> float:
        return self.quota_amount + self.wallet_amount


def check_vote_mode(
    *,
    direction: str,
    quota_amount: float,
    wallet_amount: float,
    type_tag: str,
    role: str | None,
    comment: str = "",
) -> None:
    """Validate an explicit quota/wallet split against the community's voting mode.

    Raises:
        ValidationError: If the split is not allowed here.
    """
    if direction not in (DIRECTION_UP, DIRECTION_DOWN):
        raise ValidationError(f"Unknown vote direction: {direction}")
    if quota_amount < 0 or wallet_amount < 0:
        raise ValidationError("Vote amounts must not be negative")
    if quota_amount + wallet_amount <= 0:
        raise ValidationError("Vote amount must be positive")
    if direction == DIRECTION_DOWN:
        if quota_amount > 0:
            raise ValidationError("Quota cannot be used for downvotes")
        if not comment.strip():
            raise ValidationError("Downvotes require a comment explaining the reason")
    if type_tag == TypeTag.MARATHON_OF_GOOD and wallet_amount > 0:
        raise ValidationError("Marathon of Good only allows quota voting")
    if type_tag == TypeTag.FUTURE_VISION and quota_amount > 0:
        raise ValidationError("Future Vision only allows wallet voting")
    if role == CommunityRole.VIEWER and wallet_amount > 0:
        raise ValidationError("Viewers can only vote using daily quota")


def plan_vote_funding(
    direction: str,
    amount: float,
    remaining_quota: float,
    wallet_balance: float,
    type_tag: str,
    role: str | None,
    comment: str = "",
) -> VoteFunding:
    """Split ``amount`` between quota and wallet.

    Upvotes draw on quota first and take the excess from the wallet where the
    community allows it. Downvotes are always wallet-funded.

    Raises:
        ValidationError: If the community's voting mode forbids the vote.
        InsufficientFundsError: If quota and wallet together fall short.
    """
    if amount <= 0:
        raise ValidationError("Vote amount must be positive")

    quota_only = type_tag == TypeTag.MARATHON_OF_GOOD or role == CommunityRole.VIEWER
    wallet_only = type_tag == TypeTag.FUTURE_VISION or direction == DIRECTION_DOWN

    if wallet_only:
        funding = VoteFunding(quota_amount=0.0, wallet_amount=amount)
    elif quota_only:
        funding = VoteFunding(quota_amount=amount, wallet_amount=0.0)
    else:
        from_quota = min(amount, max(0.0, remaining_quota))
        funding = VoteFunding(quota_amount=from_quota, wallet_amount=amount - from_quota)

    check_vote_mode(
        direction=direction,
        quota_amount=funding.quota_amount,
        wallet_amount=funding.wallet_amount,
        type_tag=type_tag,
        role=role,
        comment=comment,
    )
    ensure_covered(funding, remaining_quota, wallet_balance)
    return funding


def ensure_covered(funding: VoteFunding, remaining_quota: float, wallet_balance: float) -> None:
    """Raise ``InsufficientFundsError`` when either part of ``funding`` is not covered."""
    if funding.quota_amount > remaining_quota + _EPSILON:
        raise InsufficientFundsError("quota", remaining_quota, funding.quota_amount)
    if funding.wallet_amount > wallet_balance + _EPSILON:
        raise InsufficientFundsError("wallet balance", wallet_balance, funding.wallet_amount)


def plan_creation_cost(cost: float, remaining_quota: float, wallet_balance: float) -> VoteFunding:
    """Pay a publication or poll creation cost, quota first then wallet."""
    if cost <= 0:
        return VoteFunding(quota_amount=0.0, wallet_amount=0.0)
    if remaining_quota + _EPSILON >= cost:
        return VoteFunding(quota_amount=cost, wallet_amount=0.0)
    if wallet_balance + _EPSILON >= cost:
        return VoteFunding(quota_amount=0.0, wallet_amount=cost)
    raise InsufficientFundsError("quota", remaining_quota, cost)


# Investments


def share_percent(amount: float, pool_total: float) -> float:
    """Return ``amount`` as a percentage of ``pool_total``."""
    if pool_total <= 0:
        return 0.0
    return amount / pool_total * 100


def preview_share(existing: float, pool_total: float, new_amount: float) -> float:
    """Share an investor would hold after adding ``new_amount``."""
    return share_percent(existing + new_amount, pool_total + new_amount)


@dataclass(frozen=True)
class WithdrawalSplit:
    """Result of splitting a withdrawal between the beneficiary and investors."""

    beneficiary_amount: float
    investor_amounts: dict[str, float]

    @property
    def investor_total(self) -> float:
        return sum(self.investor_amounts.values())


def split_withdrawal(
    amount: float,
    contract_percent: float,
    contributions: list[tuple[str, float]],
) -> WithdrawalSplit:
    """Split a withdrawal by the post's investor contract.

    ``contract_percent`` of ``amount`` (floored) goes to investors in
    proportion to their contributions, each share floored; the rounding
    remainder goes to the first investor. The beneficiary keeps the rest.
    ``contributions`` must be in investment order.
    """
    active = [(investor, value) for investor, value in contributions if value > 0]
    pool = sum(value for _, value in active)
    if not active or pool <= 0 or contract_percent <= 0:
        return WithdrawalSplit(beneficiary_amount=amount, investor_amounts={})

    investor_total = math.floor(amount * contract_percent / 100)
    shares = {investor: math.floor(investor_total * value / pool) for investor, value in active}
    remainder = investor_total - sum(shares.values())
    if remainder:
        first = active[0][0]
        shares[first] += remainder
    return WithdrawalSplit(
        beneficiary_amount=amount - investor_total,
        investor_amounts={investor: share for investor, share in shares.items() if share > 0},
    )


def pool_return(pool: float, contributions: list[tuple[str, float]]) -> dict[str, float]:
    """Return the unspent pool to investors pro rata to their contributions.

    Each share is floored; the remainder goes to the first investor that
    received anything.
    """
    active = [(investor, value) for investor, value in contributions if value > 0]
    total = sum(value for _, value in active)
    if pool <= 0 or total <= 0:
        return {}
    returned: dict[str, float] = {}
    for investor, value in active:
        amount = math.floor(pool * value / total)
        if amount > 0:
            returned[investor] = returned.get(investor, 0) + amount
    remainder = pool - sum(returned.values())
    if remainder > 0 and returned:
        first = next(iter(returned))
        returned[first] += remainder
    return returned


# Tappalka


class TappalkaState(StrEnum):
    """Where a user stands in the current comparison cycle."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    REWARD_ISSUED = "reward_issued"


@dataclass(frozen=True)
class ProgressStep:
    """Progress after one comparison."""

    state: TappalkaState
    comparison_count: int
    reward_earned: bool


def progress_state(comparison_count: int) -> TappalkaState:
    if comparison_count <= 0:
        return TappalkaState.NOT_STARTED
    return TappalkaState.IN_PROGRESS


def advance_progress(comparison_count: int, comparisons_required: int) -> ProgressStep:
    """Count one comparison; the Nth one issues the reward and restarts the cycle."""
    if comparisons_required < 1:
        raise ValidationError("comparisons_required must be at least 1")
    count = comparison_count + 1
    if count >= comparisons_required:
        return ProgressStep(TappalkaState.REWARD_ISSUED, 0, True)
    return ProgressStep(TappalkaState.IN_PROGRESS, count, False)


def split_show_cost(show_cost: float, score: float) -> tuple[float, float]:
    """Return ``(from_score, from_wallet)`` for one post's show cost."""
    from_score = min(show_cost, max(0.0, score))
    return from_score, show_cost - from_score


def is_tappalka_eligible(
    *,
    score: float,
    min_rating: float,
    show_cost: float,
    categories: list[str],
    post_categories: list[str],
) -> bool:
    """Check the rating and category filters for tappalka candidates."""
    if score < max(min_rating, show_cost):
        return False
    if categories and not set(categories) & set(post_categories):
        return False
    return True
