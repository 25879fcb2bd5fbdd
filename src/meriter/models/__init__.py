# src/meriter/models/__init__.py
"""SQLAlchemy models for the Meriter application."""

from .community import Community, CommunityRole, TypeTag, UserCommunityRole
from .publication import Comment, Investment, PollCast, Publication
from .quota import QuotaUsage, UsageType
from .tappalka import TappalkaProgress
from .user import User
from .vote import Vote
from .wallet import Wallet, WalletTransaction

__all__ = [
    "Community", "CommunityRole", "TypeTag", "UserCommunityRole",
    "Comment", "Investment", "PollCast", "Publication",
    "QuotaUsage", "UsageType",
    "TappalkaProgress",
    "User",
    "Vote",
    "Wallet", "WalletTransaction",
]
