"""API endpoint modules for version 1."""

from .communities import router as communities_router
from .investments import router as investments_router
from .polls import router as polls_router
from .publications import router as publications_router
from .tappalka import router as tappalka_router
from .votes import router as votes_router
from .wallets import router as wallets_router

__all__ = [
    "communities_router",
    "investments_router",
    "polls_router",
    "publications_router",
    "tappalka_router",
    "votes_router",
    "wallets_router",
]
