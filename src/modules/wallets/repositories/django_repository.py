"""Django ORM implementation of the Wallet repository."""

from __future__ import annotations

from typing import Optional

import structlog

from django.core.exceptions import ValidationError
from django.db import transaction

from modules.wallets.models import Wallet, WalletTransaction
from modules.wallets.repositories.interfaces import IWalletRepository

logger = structlog.get_logger(__name__)


class WalletDjangoRepository(IWalletRepository):
    """Concrete Wallet repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Wallet]:
        try:
            return Wallet.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    @transaction.atomic
    def save(self, entity: Wallet) -> Wallet:
        entity.save()
        return entity

    def get_by_user(self, user_id: str) -> Optional[Wallet]:
        return Wallet.objects.filter(user_id=user_id).first()

    def get_or_create_for_update(self, user_id: str) -> Wallet:
        wallet, created = Wallet.objects.select_for_update().get_or_create(
            user_id=user_id
        )
        if created:
            logger.info("wallet.created", user_id=str(user_id), wallet_id=str(wallet.id))
        return wallet

    def add_transaction(
        self,
        wallet: Wallet,
        transaction_type: str,
        amount: int,
        reason: str,
        note: str = "",
    ) -> WalletTransaction:
        return WalletTransaction.objects.create(
            wallet=wallet,
            transaction_type=transaction_type,
            amount=amount,
            reason=reason,
            note=note,
            balance_after=wallet.balance,
        )
