"""Unit tests for WalletService against the Django repository.

Covers:
- Credits create the wallet on first use.
- Debits within balance, insufficient balance, zero amount.
- Every adjustment writes a transaction with the resulting balance.
"""

from __future__ import annotations

import pytest

from modules.wallets.exceptions import InsufficientBalance, InvalidWalletAmount
from modules.wallets.models import (
    TransactionReason,
    TransactionType,
    Wallet,
    WalletTransaction,
)
from modules.wallets.repositories.django_repository import WalletDjangoRepository
from modules.wallets.services import WalletService

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return WalletService(WalletDjangoRepository())


class TestAdjustWallet:
    def test_credit_creates_wallet(self, service, buyer):
        assert service.get_wallet_by_user(buyer.pk) is None

        wallet = service.adjust_wallet(buyer.pk, 200, reason=TransactionReason.REFUND)

        assert wallet.balance == 200
        assert service.get_wallet_by_user(buyer.pk).balance == 200

    def test_debit_within_balance(self, service, buyer):
        Wallet.objects.create(user=buyer, balance=100)

        wallet = service.adjust_wallet(buyer.pk, -40, reason=TransactionReason.REDEEM)

        assert wallet.balance == 60
        tx = WalletTransaction.objects.get(wallet=wallet)
        assert tx.transaction_type == TransactionType.DEBIT
        assert tx.amount == 40
        assert tx.balance_after == 60

    def test_debit_exceeding_balance(self, service, buyer):
        Wallet.objects.create(user=buyer, balance=10)

        with pytest.raises(InsufficientBalance):
            service.adjust_wallet(buyer.pk, -11, reason=TransactionReason.REDEEM)

        assert Wallet.objects.get(user=buyer).balance == 10
        assert not WalletTransaction.objects.exists()

    def test_zero_amount_rejected(self, service, buyer):
        with pytest.raises(InvalidWalletAmount):
            service.adjust_wallet(buyer.pk, 0, reason=TransactionReason.ADJUSTMENT)

    def test_transactions_newest_first(self, service, buyer):
        service.adjust_wallet(buyer.pk, 50, reason=TransactionReason.REWARD, note="Welcome")
        service.adjust_wallet(buyer.pk, -20, reason=TransactionReason.REDEEM)

        wallet = Wallet.objects.get(user=buyer)
        history = list(wallet.transactions.order_by("-created_at", "-id"))
        assert [t.balance_after for t in history] == [30, 50]
        assert history[1].note == "Welcome"
