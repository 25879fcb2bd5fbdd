"""Business logic services for the Meriter application."""

from .investments import InvestmentService
from .polls import PollService
from .publications import PublicationService
from .quota import QuotaLedger
from .rule_store import CommunityRuleStore
from .tappalka import TappalkaService
from .votes import VoteService
from .wallet import WalletService

__all__ = [
    "CommunityRuleStore",
    "InvestmentService",
    "PollService",
    "PublicationService",
    "QuotaLedger",
    "TappalkaService",
    "VoteService",
    "WalletService",
]
