"""Wallet repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.wallets.models import Wallet, WalletTransaction


class IWalletRepository(IRepository["Wallet"]):
    """Repository contract for the Wallet aggregate (wallet + ledger)."""

    @abstractmethod
    def get_by_user(self, user_id: str) -> Optional[Wallet]:
        """Retrieve a user's wallet without locking it."""

    @abstractmethod
    def get_or_create_for_update(self, user_id: str) -> Wallet:
        """Retrieve (creating if needed) a user's wallet with a row lock.

        Must be called inside a transaction; the lock serialises every
        balance change for that user until the transaction ends.
        """

    @abstractmethod
    def add_transaction(
        self,
        wallet: Wallet,
        transaction_type: str,
        amount: int,
        reason: str,
        note: str = "",
    ) -> WalletTransaction:
        """Append a ledger row reflecting the wallet's current balance."""
