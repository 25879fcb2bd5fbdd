# src/meriter/schemas/publication.py
"""Publication, poll and withdrawal schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PublicationCreate(BaseModel):
    """Schema for creating a post or project."""

    community_id: str
    title: str = Field(default="", max_length=300)
    body: str = Field(..., min_length=1, max_length=20000)
    beneficiary_id: str | None = None
    categories: list[str] = Field(default_factory=list)
    is_project: bool = False
    investing_enabled: bool = False
    investor_share_percent: float | None = Field(default=None, ge=0, le=100)
    stop_loss: float | None = Field(default=None, ge=0)
    investment_ttl_days: int | None = Field(default=None, ge=1)


class PublicationUpdate(BaseModel):
    """Schema for editing a publication."""

    title: str | None = Field(default=None, max_length=300)
    body: str | None = Field(default=None, min_length=1, max_length=20000)
    categories: list[str] | None = None


class PublicationResponse(BaseModel):
    """Schema for publication information returned by the API."""

    id: str
    community_id: str
    author_id: str
    beneficiary_id: str | None
    kind: str
    title: str
    body: str
    categories: list[str]
    poll_options: list[str] | None = None
    score: float
    vote_count: int
    comment_count: int
    deleted: bool
    closed: bool
    investing_enabled: bool
    investor_share_percent: float
    stop_loss: float
    investment_ttl_days: int | None
    investment_pool: float
    investment_pool_total: float
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommentCreate(BaseModel):
    """Schema for commenting on a publication."""

    body: str = Field(..., min_length=1, max_length=5000)


class CommentResponse(BaseModel):
    """Schema for a comment returned by the API."""

    id: str
    publication_id: str
    author_id: str
    body: str
    score: float
    vote_count: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PollCreate(BaseModel):
    """Schema for creating a poll."""

    community_id: str
    title: str = Field(..., min_length=1, max_length=300)
    body: str = ""
    options: list[str] = Field(..., min_length=2, max_length=20)


class PollCastCreate(BaseModel):
    """Schema for casting merits on a poll option."""

    option_index: int = Field(..., ge=0)
    quota_amount: float = Field(default=0, ge=0)
    wallet_amount: float = Field(default=0, ge=0)


class PollResultsResponse(BaseModel):
    """Per-option totals for a poll."""

    poll_id: str
    results: list[dict[str, object]]


class WithdrawRequest(BaseModel):
    """Schema for withdrawing merits from a publication's score.

    ``amount`` is capped at the current score; omit it to withdraw everything.
    """

    amount: float | None = Field(default=None, gt=0)


class WithdrawResponse(BaseModel):
    """How a withdrawal was split between the beneficiary and investors."""

    publication_id: str
    beneficiary_id: str
    credited_community_id: str
    beneficiary_amount: float
    investor_distributions: list[dict[str, object]]
    remaining_score: float
