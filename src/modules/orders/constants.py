"""Order domain constants.

Defines the order status and cancellation decision choices plus the
transition table of the order state machine.  Status values are the
strings the admin console and the storefront already display and send.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PROCESSING = "Food Processing", "Food Processing"
    PREPARED = "Your food is prepared", "Food Prepared"
    OUT_FOR_DELIVERY = "Out for delivery", "Out for Delivery"
    DELIVERED = "Delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class CancellationDecision(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


# Tables hold plain string values so look-ups work for raw strings read
# from the database as well as for enum members (see ``as_value``).

# Forward-only fulfilment; staff may cancel anything not yet terminal.
VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PROCESSING.value: {
        OrderStatus.PREPARED.value,
        OrderStatus.CANCELLED.value,
    },
    OrderStatus.PREPARED.value: {
        OrderStatus.OUT_FOR_DELIVERY.value,
        OrderStatus.CANCELLED.value,
    },
    OrderStatus.OUT_FOR_DELIVERY.value: {
        OrderStatus.DELIVERED.value,
        OrderStatus.CANCELLED.value,
    },
    OrderStatus.DELIVERED.value: set(),
    OrderStatus.CANCELLED.value: set(),
}

TERMINAL_STATES: set[str] = {OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value}

# Customers may ask for a cancellation only before the order leaves the kitchen.
CANCELLABLE_ON_REQUEST: set[str] = {
    OrderStatus.PROCESSING.value,
    OrderStatus.PREPARED.value,
}

DECISIONS: set[str] = {
    CancellationDecision.APPROVED.value,
    CancellationDecision.REJECTED.value,
}

ORDER_NUMBER_MAX_RETRIES = 5


def as_value(choice: object) -> str:
    """Return the plain string value of a choice member or raw string."""
    return str(getattr(choice, "value", choice))
