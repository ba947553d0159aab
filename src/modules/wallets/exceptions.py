"""Wallet domain exceptions."""

from __future__ import annotations


class InvalidWalletAmount(Exception):
    """An adjustment of zero coins was requested."""


class InsufficientBalance(Exception):
    """A debit would take the wallet balance below zero."""
