"""Per-community wallets of permanent merits and their transaction log."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from meriter.db.session import Base
from meriter.db.time import utcnow

TX_CREDIT = "credit"
TX_DEBIT = "debit"


class Wallet(Base):
    """Balance of permanent merits for one user in one community."""

    __tablename__ = "wallet"

    user_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    community_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("community.id", ondelete="CASCADE"),
        primary_key=True,
    )
    balance: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)


class WalletTransaction(Base):
    """Audit record for every balance movement."""

    __tablename__ = "wallet_transaction"
    __table_args__ = (Index("ix_wallet_transaction_user_community", "user_id", "community_id"),)

    id: Mapped[str] = mapped_column(
        Text,
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    community_id: Mapped[str] = mapped_column(Text, nullable=False)
    # "credit" or "debit"; amount is always positive.
    direction: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    reference_type: Mapped[str] = mapped_column(Text, nullable=False)
    reference_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
