"""Wallet and WalletTransaction models.

A wallet holds a per-user balance of store-credit "coins", spent at
checkout and refunded when an order is cancelled.  Every balance change
produces an immutable ``WalletTransaction`` ledger row.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel


class TransactionType(models.TextChoices):
    CREDIT = "credit", "Credit"
    DEBIT = "debit", "Debit"


class TransactionReason(models.TextChoices):
    REFUND = "refund", "Refund"
    REDEEM = "redeem", "Redeem"
    REWARD = "reward", "Reward"
    ADJUSTMENT = "adjustment", "Adjustment"


class Wallet(BaseModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="wallet",
    )
    balance = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "wallets"

    def __str__(self) -> str:
        return f"Wallet({self.user_id}): {self.balance}"


class WalletTransaction(BaseModel):
    """Append-only ledger entry; ``amount`` is always positive."""

    wallet = models.ForeignKey(
        "wallets.Wallet",
        on_delete=models.CASCADE,
        related_name="transactions",
    )
    transaction_type = models.CharField(max_length=10, choices=TransactionType.choices)
    amount = models.PositiveIntegerField()
    reason = models.CharField(max_length=20, choices=TransactionReason.choices)
    note = models.TextField(blank=True, default="")
    balance_after = models.PositiveIntegerField()

    class Meta:
        db_table = "wallet_transactions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["wallet", "-created_at"],
                name="wallet_tx_wallet_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.transaction_type} {self.amount} ({self.reason})"
