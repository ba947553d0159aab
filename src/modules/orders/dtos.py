"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``ChangeStatusDTO``: input for an order status change.
- ``ChangeItemStatusDTO``: input for an order item status change.
- ``StatusHistoryDTO``: output for a status history record.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from modules.orders.models import OrderStatusHistory


def _normalize_status(value: str) -> str:
    value = value.strip().lower()
    if not value:
        raise ValueError("Status must not be blank.")
    return value


class ChangeStatusDTO(BaseModel):
    """Immutable DTO for an order status change request.

    The status is only normalised here (trimmed, lower-cased); whether it
    is a known status reachable from the current one is decided by the
    validator, so unknown values surface as ``InvalidTransition``.
    """

    model_config = ConfigDict(frozen=True)

    status: str
    notes: str = ""

    @field_validator("status")
    @classmethod
    def status_normalized(cls, v: str) -> str:
        return _normalize_status(v)


class ChangeItemStatusDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    item_id: UUID
    status: str

    @field_validator("status")
    @classmethod
    def status_normalized(cls, v: str) -> str:
        return _normalize_status(v)


class StatusHistoryDTO(BaseModel):
    """Immutable DTO for order status history records."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    old_status: Optional[str]
    new_status: str
    notes: str
    changed_by_id: Optional[int] = None
    created_at: datetime

    @classmethod
    def from_entity(cls, history: OrderStatusHistory) -> StatusHistoryDTO:
        return cls(
            id=history.id,
            old_status=history.old_status,
            new_status=history.new_status,
            notes=history.notes,
            changed_by_id=history.changed_by_id,
            created_at=history.created_at,
        )
