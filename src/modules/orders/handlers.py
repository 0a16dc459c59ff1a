"""Event handlers for Orders domain events.

Payment refunds and customer notifications are handled by other services;
here events are only recorded in the structured log.
"""

from __future__ import annotations

import structlog

from modules.orders.events import (
    CancellationDecided,
    CancellationRequested,
    OrderCancelled,
    OrderCreated,
    OrderStatusChanged,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info("order.event.created", order_id=str(event.aggregate_id))


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info(
            "order.event.cancelled",
            order_id=str(event.aggregate_id),
            via_request=event.via_request,
        )


class CancellationRequestedHandler(IEventHandler[CancellationRequested]):
    def handle(self, event: CancellationRequested) -> None:
        logger.info("cancellation.event.requested", order_id=str(event.aggregate_id))


class CancellationDecidedHandler(IEventHandler[CancellationDecided]):
    def handle(self, event: CancellationDecided) -> None:
        logger.info(
            "cancellation.event.decided",
            order_id=str(event.aggregate_id),
            decision=event.decision,
        )


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_cancelled_handler = OrderCancelledHandler()
cancellation_requested_handler = CancellationRequestedHandler()
cancellation_decided_handler = CancellationDecidedHandler()
