"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` so that the
Order aggregate (Order + items, or Order + cancellation request) and its
outbox events are persisted together.

Concurrency control uses ``select_for_update()`` on the order row.  The
locking query has no joins: the cancellation request is an optional
(outer-joined) relation and is read after the lock is held.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.core.models import OutboxEvent
from modules.orders.constants import CancellationDecision
from modules.orders.models import (
    CancellationRequest,
    Order,
    OrderItem,
    OrderStatusHistory,
)
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

ORDER_RELATIONS = ("items", "status_history")


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` keys:
        - ``customer_id``, ``amount``, ``address`` (required)
        - ``items`` (required): list of dicts with ``name``, ``quantity``,
          ``price``
        - ``idempotency_key`` (optional)
        """
        order = Order(
            customer_id=data["customer_id"],
            amount=data["amount"],
            address=data["address"],
            idempotency_key=data.get("idempotency_key"),
        )
        order.save()

        items = data.get("items", [])
        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    position=position,
                    name=item["name"],
                    quantity=item["quantity"],
                    price=item.get("price", Decimal("0.00")),
                )
                for position, item in enumerate(items)
            ]
        )

        logger.info("order.created", order_id=str(order.id), item_count=len(items))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _base_queryset(self):
        return Order.objects.select_related(
            "customer", "cancellation_request"
        ).prefetch_related(*ORDER_RELATIONS)

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Uses ``select_related`` for the customer and the cancellation
        request (single JOIN) and ``prefetch_related`` for items and status
        history (separate batched queries).  Prevents N+1.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return self._base_queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Must be called inside ``transaction.atomic``.  Every mutation of
        ``status`` or of the cancellation request starts here, so two
        writers on the same order are serialized while different orders
        proceed in parallel.  Returns ``None`` for non-existent or invalid
        IDs.
        """
        try:
            return Order.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters and eager-loaded relations.

        Supported filter keys are plain ORM look-ups, e.g. ``status``,
        ``customer_id`` or ``created_at__range``.
        """
        queryset = self._base_queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""
        return self._base_queryset().filter(idempotency_key=key).first()

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order and flush its domain events to the outbox."""
        entity.save()

        events = entity.domain_events
        OutboxEvent.objects.bulk_create(
            [
                OutboxEvent(
                    event_type=event.event_name,
                    aggregate_id=str(event.aggregate_id),
                    payload=_serialize_event_payload(event),
                    topic="orders",
                )
                for event in events
            ]
        )
        entity.clear_domain_events()

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    # ------------------------------------------------------------------
    # Status history
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user: Any = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            notes=notes,
            user=user,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
        )
        return history

    # ------------------------------------------------------------------
    # Cancellation requests
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_cancellation_request(
        self, order: Order, reason: str, requested_by: Any = None
    ) -> CancellationRequest:
        request = CancellationRequest.objects.create(
            order=order,
            reason=reason,
            requested_by=requested_by,
        )
        logger.info("cancellation.persisted", order_id=str(order.id))
        return request

    @transaction.atomic
    def save_cancellation_request(
        self, request: CancellationRequest
    ) -> CancellationRequest:
        request.save(
            update_fields=["decision", "admin_response", "decided_at", "decided_by"]
        )
        return request

    def list_pending_cancellations(self) -> List[Order]:
        """Orders with a pending request, oldest ``requested_at`` first.

        The ordering is what admins triage by; ties fall back to the
        request's time-ordered UUIDv7 id.
        """
        return list(
            self._base_queryset()
            .filter(cancellation_request__decision=CancellationDecision.PENDING)
            .order_by("cancellation_request__requested_at", "cancellation_request__id")
        )

    def count_pending_cancellations_before(self, cutoff: datetime) -> int:
        return CancellationRequest.objects.filter(
            decision=CancellationDecision.PENDING,
            requested_at__lt=cutoff,
        ).count()


def _serialize_event_payload(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, list):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
