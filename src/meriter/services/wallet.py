"""Wallet balances of permanent merits."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from meriter.core.errors import InsufficientFundsError, ValidationError
from meriter.models import Community, CommunityRole, TypeTag, Wallet, WalletTransaction
from meriter.models.wallet import TX_CREDIT, TX_DEBIT
from meriter.services import roles
from meriter.services.rule_store import CommunityRuleStore

logger = logging.getLogger(__name__)


class WalletService:
    """Credit and debit per-community wallets.

    Every movement also writes a ``WalletTransaction``. Changes are flushed,
    committing is left to the calling service.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_wallet(self, user_id: str, community_id: str) -> Wallet:
        """Return the wallet row, creating an empty one on first use."""
        wallet = self.db.get(Wallet, (user_id, community_id))
        if wallet is None:
            wallet = Wallet(user_id=user_id, community_id=community_id, balance=0.0)
            self.db.add(wallet)
            self.db.flush()
        return wallet

    def balance(self, user_id: str, community_id: str) -> float:
        wallet = self.db.get(Wallet, (user_id, community_id))
        return wallet.balance if wallet is not None else 0.0

    def credit(
        self,
        user_id: str,
        community_id: str,
        amount: float,
        reference_type: str,
        reference_id: str | None = None,
    ) -> Wallet:
        if amount <= 0:
            raise ValidationError("Credit amount must be positive")
        wallet = self.get_wallet(user_id, community_id)
        wallet.balance += amount
        self._record(user_id, community_id, TX_CREDIT, amount, reference_type, reference_id)
        logger.info(
            "Credited %s to user %s in community %s (%s)",
            amount,
            user_id,
            community_id,
            reference_type,
        )
        return wallet

    def conversion_community_id(self, user_id: str, community: Community) -> str:
        """Return the community whose wallet receives merits earned in ``community``.

        Leads of a ``marathon-of-good`` community are paid in the ``future-vision``
        wallet when that community exists; everyone else is paid where they earned.
        """
        if community.type_tag != TypeTag.MARATHON_OF_GOOD:
            return community.id
        if roles.get_role(self.db, user_id, community.id) != CommunityRole.LEAD:
            return community.id
        target = CommunityRuleStore(self.db).find_by_type_tag(TypeTag.FUTURE_VISION.value)
        if target is None:
            logger.warning(
                "No future-vision community for merit conversion, crediting %s",
                community.id,
            )
            return community.id
        return target.id

    def credit_earned(
        self,
        user_id: str,
        community: Community,
        amount: float,
        reference_type: str,
        reference_id: str | None = None,
    ) -> str:
        """Credit merits earned in ``community`` and return the credited community id."""
        target_id = self.conversion_community_id(user_id, community)
        self.credit(user_id, target_id, amount, reference_type, reference_id)
        return target_id

    def debit(
        self,
        user_id: str,
        community_id: str,
        amount: float,
        reference_type: str,
        reference_id: str | None = None,
    ) -> Wallet:
        """Take ``amount`` from the wallet.

        Raises:
            InsufficientFundsError: If the balance does not cover ``amount``.
        """
        if amount <= 0:
            raise ValidationError("Debit amount must be positive")
        wallet = self.get_wallet(user_id, community_id)
        if wallet.balance < amount:
            raise InsufficientFundsError("wallet balance", wallet.balance, amount)
        wallet.balance -= amount
        self._record(user_id, community_id, TX_DEBIT, amount, reference_type, reference_id)
        logger.info(
            "Debited %s from user %s in community %s (%s)",
            amount,
            user_id,
            community_id,
            reference_type,
        )
        return wallet

    def _record(
        self,
        user_id: str,
        community_id: str,
        direction: str,
        amount: float,
        reference_type: str,
        reference_id: str | None,
    ) -> None:
        self.db.add(
            WalletTransaction(
                user_id=user_id,
                community_id=community_id,
                direction=direction,
                amount=amount,
                reference_type=reference_type,
                reference_id=reference_id,
            )
        )
        self.db.flush()
