"""Vote-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class VoteCreate(BaseModel):
    """Schema for casting a merit vote.

    When neither ``quota_amount`` nor ``wallet_amount`` is given, ``amount`` is
    split automatically: quota first for upvotes, wallet only for downvotes.
    """

    target_type: Literal["publication", "comment"] = "publication"
    target_id: str
    direction: Literal["up", "down"] = "up"
    amount: float | None = Field(default=None, gt=0)
    quota_amount: float | None = Field(default=None, ge=0)
    wallet_amount: float | None = Field(default=None, ge=0)
    comment: str = ""


class VoteResponse(BaseModel):
    """Vote as returned by the API."""

    id: str
    target_type: str
    target_id: str
    user_id: str
    community_id: str
    direction: str
    amount_quota: float
    amount_wallet: float
    comment: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CanVoteResponse(BaseModel):
    """Outcome of the vote permission evaluator."""

    allowed: bool
    reason: str | None = None
