"""Community rule and settings schemas.

Each model describes one rule section. Stored overrides are partial JSON
objects; ``merge_section`` fills the gaps from the type-tag defaults.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from meriter.models.community import CommunityRole


class ActionType(StrEnum):
    """Actions governed by ``permission_rules``."""

    VOTE = "vote"
    CREATE_PUBLICATION = "create_publication"
    CREATE_POLL = "create_poll"
    EDIT_PUBLICATION = "edit_publication"
    DELETE_PUBLICATION = "delete_publication"
    EDIT_COMMENT = "edit_comment"
    DELETE_COMMENT = "delete_comment"
    WITHDRAW = "withdraw"
    INVEST = "invest"


class VotingRules(BaseModel):
    """Who may vote and how votes move merits."""

    allowed_roles: list[CommunityRole]
    can_vote_for_own_posts: bool = False
    participants_cannot_vote_for_lead: bool = False
    spends_merits: bool = True
    awards_merits: bool = True


class PostingRules(BaseModel):
    """Who may create publications and polls."""

    allowed_roles: list[CommunityRole]
    requires_team_membership: bool = False
    only_team_lead: bool = False
    auto_membership: bool = False


class MeritSettings(BaseModel):
    """Daily quota and earn/spend switches."""

    daily_quota: float = Field(ge=0)
    quota_recipients: list[CommunityRole]
    can_earn: bool = True
    can_spend: bool = True


class TappalkaSettings(BaseModel):
    """Card-comparison minigame configuration."""

    enabled: bool = False
    categories: list[str] = Field(default_factory=list)
    win_reward: float = Field(default=1, ge=0)
    user_reward: float = Field(default=1, ge=0)
    comparisons_required: int = Field(default=10, ge=1)
    show_cost: float = Field(default=0.1, ge=0)
    min_rating: float = Field(default=1, ge=0)
    onboarding_text: str | None = None


class InvestingSettings(BaseModel):
    """Community-wide defaults applied when a post opens for investment."""

    enabled: bool = False
    default_contract_percent: float = Field(default=20, ge=0, le=100)
    default_ttl_days: int | None = Field(default=None, ge=1)
    default_stop_loss: float = Field(default=0, ge=0)


class PermissionRule(BaseModel):
    """A single ``(role, action) -> allowed`` entry."""

    role: CommunityRole
    action: ActionType
    allowed: bool


class EffectiveRules(BaseModel):
    """Stored overrides merged over the type-tag defaults."""

    community_id: str
    type_tag: str
    voting_rules: VotingRules
    posting_rules: PostingRules
    permission_rules: list[PermissionRule]
    merit_settings: MeritSettings
    tappalka_settings: TappalkaSettings
    investing_settings: InvestingSettings


class CommunityCreate(BaseModel):
    """Schema for creating a new community."""

    name: str = Field(..., min_length=1, max_length=200)
    type_tag: str = "default"


class CommunityRulesUpdate(BaseModel):
    """Partial rule update for ``PATCH /communities/{id}``.

    Every section is a partial object merged over the current effective rules.
    """

    name: str | None = Field(default=None, min_length=1, max_length=200)
    voting_rules: dict[str, object] | None = None
    posting_rules: dict[str, object] | None = None
    permission_rules: list[PermissionRule] | None = None
    merit_settings: dict[str, object] | None = None
    tappalka_settings: dict[str, object] | None = None
    investing_settings: dict[str, object] | None = None


class CommunityResponse(BaseModel):
    """Schema for community information returned by the API."""

    id: str
    name: str
    type_tag: str
    needs_setup: bool
    is_archived: bool
    last_quota_reset_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class QuotaStatus(BaseModel):
    """Quota snapshot for the current user in one community."""

    community_id: str
    daily_quota: float
    used: float
    remaining: float
    window_start: datetime


class MembershipCreate(BaseModel):
    """Grant or change a stored community role."""

    user_id: str
    role: Literal["lead", "participant", "viewer"] = "participant"


class MembershipResponse(BaseModel):
    user_id: str
    community_id: str
    role: str

    model_config = ConfigDict(from_attributes=True)
