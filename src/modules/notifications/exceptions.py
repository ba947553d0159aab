"""Notification domain exceptions."""

from __future__ import annotations


class NotificationNotFound(Exception):
    """The notification does not exist or belongs to another user."""


class NotificationDeliveryError(Exception):
    """A real-time or email delivery channel rejected the message."""
