"""Version 1 API endpoints."""

from .endpoints import (
    communities_router,
    investments_router,
    polls_router,
    publications_router,
    tappalka_router,
    votes_router,
    wallets_router,
)

__all__ = [
    "communities_router",
    "investments_router",
    "polls_router",
    "publications_router",
    "tappalka_router",
    "votes_router",
    "wallets_router",
]
