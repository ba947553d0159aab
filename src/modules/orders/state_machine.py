"""Order status validator.

One validator serves both orders and order items.  Checks run in a fixed
order: unknown target, then the named prohibitions (``delivered ->
cancelled`` is a ``BusinessRuleViolation`` so the caller is pointed at the
return flow), then the transition table, so any other pair without an
edge is an ``InvalidTransition``.  The prerequisite gates run last and
guard tables supplied by callers.
"""

from __future__ import annotations

from typing import Mapping, Optional

from modules.orders.constants import (
    FORBIDDEN_PRIOR_STATUSES,
    REQUIRED_PRIOR_STATUSES,
    VALID_TRANSITIONS,
    OrderStatus,
)
from modules.orders.exceptions import BusinessRuleViolation, InvalidTransition


class OrderStatusValidator:
    def __init__(
        self,
        transitions: Optional[Mapping[str, frozenset]] = None,
        required_prior: Optional[Mapping[str, frozenset]] = None,
        forbidden_prior: Optional[Mapping[str, frozenset]] = None,
    ) -> None:
        self._transitions = transitions if transitions is not None else VALID_TRANSITIONS
        self._required_prior = (
            required_prior if required_prior is not None else REQUIRED_PRIOR_STATUSES
        )
        self._forbidden_prior = (
            forbidden_prior if forbidden_prior is not None else FORBIDDEN_PRIOR_STATUSES
        )

    def allowed_targets(self, current_status: str) -> list[str]:
        return sorted(self._transitions.get(current_status, frozenset()))

    def is_allowed(self, current_status: str, target_status: str) -> bool:
        try:
            self.validate(current_status, target_status)
        except (InvalidTransition, BusinessRuleViolation):
            return False
        return True

    def validate(self, current_status: str, target_status: str) -> None:
        """Raise if *current_status* may not move to *target_status*.

        Raises:
            InvalidTransition: unknown target, or no edge in the table.
            BusinessRuleViolation: a named prohibition or prerequisite fails.
        """
        allowed = self.allowed_targets(current_status)

        if target_status not in OrderStatus.values:
            raise InvalidTransition(
                current_status,
                target_status,
                allowed,
                message=f"Unknown status '{target_status}'.",
            )

        forbidden = self._forbidden_prior.get(target_status)
        if forbidden and current_status in forbidden:
            raise BusinessRuleViolation(
                current_status,
                target_status,
                f"An order in {current_status} status cannot be moved to "
                f"{target_status}; use the return flow instead.",
            )

        if target_status not in allowed:
            raise InvalidTransition(current_status, target_status, allowed)

        required = self._required_prior.get(target_status)
        if required and current_status not in required:
            raise BusinessRuleViolation(
                current_status,
                target_status,
                f"Status {target_status} requires the order to be in "
                f"{' or '.join(sorted(required))}, not {current_status}.",
            )
