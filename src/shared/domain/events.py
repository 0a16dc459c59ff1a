"""Domain events primitives for the modular monolith."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type
from uuid import UUID, uuid4

_EVENT_TYPES: Dict[str, Type["DomainEvent"]] = {}


@dataclass(frozen=True)
class DomainEvent:
    """Base domain event (immutable).

    Every subclass is registered under its class name so an event stored in
    the outbox can be rebuilt by ``event_from_payload``.
    """

    aggregate_id: UUID
    event_id: UUID = field(default_factory=uuid4)
    occurred_on: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_name: str = field(init=False)

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        _EVENT_TYPES[cls.__name__] = cls

    def __post_init__(self) -> None:
        object.__setattr__(self, "event_name", self.__class__.__name__)


def event_class_for(name: str) -> Optional[Type[DomainEvent]]:
    """Return the registered event class called *name*, if any."""
    return _EVENT_TYPES.get(name)


def event_from_payload(name: str, payload: Dict[str, Any]) -> DomainEvent:
    """Rebuild an event from its outbox ``event_type`` and JSON payload.

    Raises:
        LookupError: no event class is registered under *name*.
    """
    event_cls = event_class_for(name)
    if event_cls is None:
        raise LookupError(f"Unknown domain event type {name!r}.")

    init_names = {f.name for f in fields(event_cls) if f.init}
    kwargs = {key: value for key, value in payload.items() if key in init_names}
    kwargs["aggregate_id"] = UUID(str(kwargs["aggregate_id"]))
    if "event_id" in kwargs:
        kwargs["event_id"] = UUID(str(kwargs["event_id"]))
    if "occurred_on" in kwargs:
        kwargs["occurred_on"] = datetime.fromisoformat(kwargs["occurred_on"])
    return event_cls(**kwargs)


class DomainEventMixin:
    """Mixin for aggregate roots that collect domain events in memory."""

    _domain_events: list[DomainEvent]

    def add_domain_event(self, event: DomainEvent) -> None:
        if not hasattr(self, "_domain_events"):
            self._domain_events = []
        self._domain_events.append(event)

    def clear_domain_events(self) -> None:
        if hasattr(self, "_domain_events"):
            self._domain_events.clear()

    @property
    def domain_events(self) -> list[DomainEvent]:
        if not hasattr(self, "_domain_events"):
            self._domain_events = []
        return list(self._domain_events)
