"""Order domain exceptions.

Raised by the Service Layer when an order or cancellation rule is
violated.  The API layer (Views) catches these and translates them into
HTTP responses: ``OrderNotFound`` becomes 404, every other ``OrderError``
becomes 400.  A failed operation never leaves a partial change behind.
"""

from __future__ import annotations


class OrderError(Exception):
    """Base class for order lifecycle and cancellation workflow errors."""


class OrderNotFound(OrderError):
    """The requested order does not exist (or is not visible to the caller)."""


# ---------------------------------------------------------------------------
# Status transition engine
# ---------------------------------------------------------------------------


class InvalidStatus(OrderError):
    """The requested status is not one of the known order statuses."""


class TerminalOrderError(OrderError):
    """The order is Delivered or Cancelled and accepts no further changes."""


class IllegalTransition(OrderError):
    """The requested status is not reachable from the current one."""


class PendingRequestConflict(OrderError):
    """Direct cancellation attempted while a cancellation request awaits a decision."""


# ---------------------------------------------------------------------------
# Cancellation workflow engine
# ---------------------------------------------------------------------------


class InvalidState(OrderError):
    """The order has progressed too far for a cancellation request."""


class MissingReason(OrderError):
    """The cancellation request carries no reason."""


class DuplicateRequest(OrderError):
    """The order already has a cancellation request (pending or decided)."""


class NoPendingRequest(OrderError):
    """There is no cancellation request awaiting a decision on the order."""


class InvalidDecision(OrderError):
    """The decision is neither ``approved`` nor ``rejected``."""


# ---------------------------------------------------------------------------
# Order intake
# ---------------------------------------------------------------------------


class CustomerNotFound(OrderError):
    """The customer placing the order does not exist."""


class IdempotencyKeyReused(OrderError):
    """The idempotency key belongs to an order of another customer."""
