"""Tappalka (post comparison) schemas."""

from pydantic import BaseModel


class TappalkaPost(BaseModel):
    """Card shown in a comparison pair."""

    id: str
    title: str
    body: str
    author_id: str
    rating: float
    category_id: str | None = None


class TappalkaPair(BaseModel):
    """Two posts to compare."""

    session_id: str
    post_a: TappalkaPost
    post_b: TappalkaPost


class TappalkaChoice(BaseModel):
    """A submitted comparison result."""

    session_id: str
    winner_post_id: str
    loser_post_id: str


class TappalkaChoiceResult(BaseModel):
    """Outcome of a comparison submission."""

    success: bool
    state: str
    new_comparison_count: int
    reward_earned: bool
    user_merits_earned: float | None = None
    next_pair: TappalkaPair | None = None
    no_more_posts: bool


class TappalkaProgressResponse(BaseModel):
    """Progress towards the next user reward."""

    state: str
    current_comparisons: int
    comparisons_required: int
    merit_balance: float
    onboarding_seen: bool
    onboarding_text: str | None = None
