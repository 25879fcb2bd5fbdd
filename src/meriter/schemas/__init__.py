"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .community import (
    ActionType,
    CommunityCreate,
    CommunityResponse,
    CommunityRulesUpdate,
    EffectiveRules,
    InvestingSettings,
    MeritSettings,
    PermissionRule,
    PostingRules,
    QuotaStatus,
    TappalkaSettings,
    VotingRules,
)
from .investment import InvestmentCreate, InvestmentResult, InvestmentShare
from .publication import (
    CommentCreate,
    PollCastCreate,
    PollCreate,
    PublicationCreate,
    PublicationResponse,
    PublicationUpdate,
    WithdrawRequest,
)
from .vote import CanVoteResponse, VoteCreate, VoteResponse

__all__ = [
    "ActionType", "CommunityCreate", "CommunityResponse", "CommunityRulesUpdate",
    "EffectiveRules", "InvestingSettings", "MeritSettings", "PermissionRule",
    "PostingRules", "QuotaStatus", "TappalkaSettings", "VotingRules",
    "InvestmentCreate", "InvestmentResult", "InvestmentShare",
    "CommentCreate", "PollCastCreate", "PollCreate",
    "PublicationCreate", "PublicationResponse", "PublicationUpdate", "WithdrawRequest",
    "CanVoteResponse", "VoteCreate", "VoteResponse",
]
