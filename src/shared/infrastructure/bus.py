"""In-memory event bus implementation."""

from __future__ import annotations

from typing import Dict, List, Optional, Type

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent


class InMemoryEventBus(IEventBus):
    """Simple in-process event bus.

    Keeps a name index next to the handler map so the outbox relay can
    turn a stored ``event_type`` back into its event class.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}
        self._event_classes: Dict[str, Type[DomainEvent]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        self._event_classes[event_class.__name__] = event_class
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def publish(self, event: DomainEvent) -> None:
        for handler in self._handlers.get(type(event), []):
            handler.handle(event)

    def resolve(self, event_name: str) -> Optional[Type[DomainEvent]]:
        """Return the event class registered under *event_name*, if any."""
        return self._event_classes.get(event_name)


# Process-wide registry of event handlers, filled by AppConfig.ready()

event_bus = InMemoryEventBus()
