"""Wallet service layer.

Every balance change runs inside ``transaction.atomic`` with the wallet
row locked (``SELECT FOR UPDATE``), so concurrent refunds and
redemptions for the same user are applied one after the other.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog
from django.db import transaction

from modules.wallets.exceptions import InsufficientBalance, InvalidWalletAmount
from modules.wallets.models import TransactionType

if TYPE_CHECKING:
    from modules.wallets.models import Wallet
    from modules.wallets.repositories.interfaces import IWalletRepository

logger = structlog.get_logger(__name__)


class WalletService:
    def __init__(self, repository: IWalletRepository) -> None:
        self._repo = repository

    def get_wallet_by_user(self, user_id: str) -> Optional[Wallet]:
        return self._repo.get_by_user(user_id)

    @transaction.atomic
    def adjust_wallet(
        self,
        user_id: str,
        amount: int,
        reason: str,
        note: str = "",
    ) -> Wallet:
        """Credit (``amount > 0``) or debit (``amount < 0``) a user's wallet.

        The wallet is created on first use, so a refund is never dropped
        because the buyer had no wallet yet.

        Raises:
            InvalidWalletAmount: ``amount`` is zero.
            InsufficientBalance: the debit exceeds the current balance.
        """
        if amount == 0:
            raise InvalidWalletAmount("Wallet adjustment amount must be non-zero.")

        wallet = self._repo.get_or_create_for_update(user_id)
        log = logger.bind(
            user_id=str(user_id),
            wallet_id=str(wallet.id),
            amount=amount,
            reason=reason,
        )

        if amount < 0 and wallet.balance < -amount:
            log.warning("wallet.insufficient_balance", balance=wallet.balance)
            raise InsufficientBalance(
                f"Wallet balance {wallet.balance} is lower than debit {-amount}."
            )

        wallet.balance += amount
        wallet.save(update_fields=["balance", "updated_at"])
        self._repo.add_transaction(
            wallet,
            transaction_type=TransactionType.CREDIT if amount > 0 else TransactionType.DEBIT,
            amount=abs(amount),
            reason=reason,
            note=note,
        )

        log.info("wallet.adjusted", new_balance=wallet.balance)
        return wallet
