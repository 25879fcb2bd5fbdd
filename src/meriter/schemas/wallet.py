"""Wallet schemas."""

from pydantic import BaseModel


class WalletResponse(BaseModel):
    """Wallet balance plus today's quota for the same community."""

    user_id: str
    community_id: str
    balance: float
    quota_remaining: float
