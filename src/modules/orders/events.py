"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is placed."""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when an order status changes."""

    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order reaches Cancelled, by override or approved request."""

    via_request: bool = False


@dataclass(frozen=True)
class CancellationRequested(DomainEvent):
    """Raised when a customer asks for an order to be cancelled."""


@dataclass(frozen=True)
class CancellationDecided(DomainEvent):
    """Raised when an admin approves or rejects a cancellation request."""

    decision: str = ""
