"""Order, OrderItem, CancellationRequest and OrderStatusHistory models.

Rules implemented here (the service layer enforces the rest):
- Status moves only along ``VALID_TRANSITIONS``; ``can_transition_to`` is the
  single check every status change goes through.
- An order owns at most one cancellation request (one-to-one, unique).
- Items, amount and the delivery address are a snapshot taken at placement.
- ``amount`` is strictly positive and item quantities are at least 1
  (database check constraints).
- Each status change generates an append-only history record.
- Order number auto-generated as human-readable identifier.
- Customer FK uses PROTECT; orders are never deleted.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any, Optional

from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    CANCELLABLE_ON_REQUEST,
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    CancellationDecision,
    OrderStatus,
    as_value,
)
from shared.domain.events import DomainEventMixin


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``ORD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for
    all internal references and API look-ups.

    ``address`` is a JSON snapshot of the delivery details as entered at
    checkout (name, phone, street, city, state, country, zipcode).
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    customer: models.ForeignKey = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    status: models.CharField = models.CharField(
        max_length=32,
        choices=OrderStatus.choices,
        default=OrderStatus.PROCESSING,
    )
    amount: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
    )
    address: models.JSONField = models.JSONField(default=dict)
    idempotency_key: models.CharField = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="orders_amount_positive",
            ),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is Delivered or Cancelled."""
        return as_value(self.status) in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        allowed = VALID_TRANSITIONS.get(as_value(self.status), set())
        return as_value(new_status) in allowed

    @property
    def accepts_cancellation_request(self) -> bool:
        return as_value(self.status) in CANCELLABLE_ON_REQUEST

    # ------------------------------------------------------------------
    # Cancellation request access
    # ------------------------------------------------------------------

    @property
    def current_cancellation_request(self) -> Optional[CancellationRequest]:
        """The order's cancellation request, or ``None`` if never requested."""
        try:
            return self.cancellation_request
        except ObjectDoesNotExist:
            return None

    @property
    def has_pending_cancellation(self) -> bool:
        request = self.current_cancellation_request
        return request is not None and request.is_pending

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item snapshot: dish name, quantity and unit price at checkout."""

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    position: models.PositiveSmallIntegerField = models.PositiveSmallIntegerField(
        default=0
    )
    name: models.CharField = models.CharField(max_length=255)
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    price: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    class Meta:
        db_table = "order_items"
        ordering = ["position", "created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity}"


class CancellationRequest(BaseModel):
    """Customer-initiated cancellation awaiting (or carrying) an admin decision.

    Lives exactly once per order.  ``decided_at`` stays ``None`` while the
    decision is pending; an approved request always belongs to a cancelled
    order because both are written in the same transaction.
    """

    order: models.OneToOneField = models.OneToOneField(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="cancellation_request",
    )
    reason: models.TextField = models.TextField()
    requested_at: models.DateTimeField = models.DateTimeField(default=timezone.now)
    decision: models.CharField = models.CharField(
        max_length=10,
        choices=CancellationDecision.choices,
        default=CancellationDecision.PENDING,
    )
    admin_response: models.TextField = models.TextField(  # noqa: DJ01
        null=True, blank=True, default=None
    )
    decided_at: models.DateTimeField = models.DateTimeField(
        null=True, blank=True, default=None
    )
    requested_by: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    decided_by: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "order_cancellation_requests"
        ordering = ["requested_at", "id"]
        indexes = [
            models.Index(
                fields=["decision", "requested_at"],
                name="ocr_decision_requested_idx",
            ),
        ]

    @property
    def is_pending(self) -> bool:
        return as_value(self.decision) == CancellationDecision.PENDING.value

    def record_decision(
        self,
        decision: str,
        admin_response: Optional[str] = None,
        decided_by: Any = None,
    ) -> None:
        """Stamp the decision in memory; the caller persists it."""
        self.decision = decision
        self.admin_response = admin_response
        self.decided_at = timezone.now()
        self.decided_by = decided_by

    def __str__(self) -> str:
        return f"Cancellation for {self.order_id} ({self.decision})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    Each record captures a single status change with the responsible user
    and optional notes (e.g. the admin response of an approved
    cancellation).  ``user`` is nullable: ``None`` means the change was
    performed by the system.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=32,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=32,
        choices=OrderStatus.choices,
    )
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"
