"""Order service layer (Use Cases).

Orchestrates the order lifecycle and the cancellation-request workflow.
All write operations are atomic: the service defines the unit-of-work
boundary and every mutation starts by locking the order row, so the
``(status, cancellation request)`` pair of one order is only ever changed
by one transaction at a time.

Business rules enforced:
- Status moves only along ``VALID_TRANSITIONS``; Delivered and Cancelled
  are terminal.
- An order has at most one cancellation request, requested only while
  the order is Processing or Prepared.
- An order becomes Cancelled either through an approved request or a
  staff override made while no request is pending.
- History is recorded on every status change.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.db import transaction

from modules.orders.constants import (
    DECISIONS,
    CancellationDecision,
    OrderStatus,
    as_value,
)
from modules.orders.events import (
    CancellationDecided,
    CancellationRequested,
    OrderCancelled,
    OrderCreated,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    CustomerNotFound,
    DuplicateRequest,
    IdempotencyKeyReused,
    IllegalTransition,
    InvalidDecision,
    InvalidState,
    InvalidStatus,
    MissingReason,
    NoPendingRequest,
    OrderNotFound,
    PendingRequestConflict,
    TerminalOrderError,
)

if TYPE_CHECKING:
    from modules.customers.repositories.interfaces import ICustomerRepository
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        customer_repository: ICustomerRepository,
    ) -> None:
        self._order_repo = order_repository
        self._customer_repo = customer_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Place a new order in ``Food Processing``.

        Items, amount and address are stored as given; pricing and payment
        happen upstream.  Re-submitting with the same ``idempotency_key``
        returns the order created by the first call.

        Raises:
            IdempotencyKeyReused: the key belongs to another customer's order.
            CustomerNotFound: customer does not exist.
        """
        log = logger.bind(customer_id=str(dto.customer_id))
        log.info("order.creation_started")

        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing and existing.customer_id != dto.customer_id:
                log.warning("order.idempotency_key_reused")
                raise IdempotencyKeyReused(
                    "Idempotency-Key was already used for another order."
                )
            if existing:
                log.info(
                    "order.idempotency_hit",
                    order_id=str(existing.id),
                    key=dto.idempotency_key,
                )
                return existing

        customer = self._customer_repo.get_by_id(str(dto.customer_id))
        if not customer:
            raise CustomerNotFound(f"Customer {dto.customer_id} not found.")

        order = self._order_repo.create(
            {
                "customer_id": customer.id,
                "items": [item.model_dump() for item in dto.items],
                "amount": dto.amount,
                "address": dto.address.model_dump(),
                "idempotency_key": dto.idempotency_key,
            }
        )

        order.add_domain_event(OrderCreated(aggregate_id=order.id))
        self._order_repo.save(order)

        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.PROCESSING,
            notes="Order placed",
        )

        log.info("order.created", order_id=str(order.id))
        order_with_relations = self._order_repo.get_by_id(str(order.id))
        return order_with_relations or order

    @transaction.atomic
    def set_status(
        self,
        order_id: UUID,
        new_status: str,
        actor: Any = None,
        notes: str = "",
    ) -> Order:
        """Move an order to *new_status* (staff action).

        Acquires a row-level lock (``SELECT FOR UPDATE``) on the order
        before validating, then checks in this order: known status, order
        exists, order not terminal, transition allowed, and for a direct
        cancellation that no request awaits a decision.  The cancellation
        request itself is never modified here.

        Raises:
            InvalidStatus: *new_status* is not an order status.
            OrderNotFound: order does not exist.
            TerminalOrderError: order is Delivered or Cancelled.
            IllegalTransition: *new_status* is not reachable from the
                current status (including the current status itself).
            PendingRequestConflict: cancelling while a request is pending.
        """
        target = as_value(new_status)
        if target not in OrderStatus.values:
            raise InvalidStatus(f"Unknown order status: {target!r}.")

        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        old_status = as_value(order.status)
        log = logger.bind(
            order_id=str(order_id),
            current_status=old_status,
            new_status=target,
        )

        if order.is_terminal:
            log.warning("order.terminal_status_change")
            raise TerminalOrderError(
                f"Order is {old_status} and can no longer change status."
            )

        if not order.can_transition_to(target):
            log.warning("order.invalid_transition")
            raise IllegalTransition(
                f"Cannot transition from {old_status} to {target}."
            )

        if target == OrderStatus.CANCELLED.value and order.has_pending_cancellation:
            log.warning("order.cancel_blocked_by_request")
            raise PendingRequestConflict(
                "A cancellation request is pending; approve or reject it instead."
            )

        order.status = target
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id, old_status=old_status, new_status=target
            )
        )
        if target == OrderStatus.CANCELLED.value:
            order.add_domain_event(OrderCancelled(aggregate_id=order.id))
        self._order_repo.save(order)

        self._order_repo.add_history(
            order_id=order.id,
            status=target,
            notes=notes,
            old_status=old_status,
            user=actor,
        )

        log.info("order.status_updated")
        return self._order_repo.get_by_id(str(order_id)) or order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def find_by_idempotency_key(self, key: str) -> Optional[Order]:
        return self._order_repo.get_by_idempotency_key(key)

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """Return a list of orders, optionally filtered."""
        return self._order_repo.list(filters)

    def list_customer_orders(self, user: Any) -> List[Order]:
        """Orders placed by the customer profile of *user*, newest first."""
        return self._order_repo.list({"customer__user": user})


class CancellationService:
    """Application service for the cancellation-request workflow.

    A customer asks, an admin decides.  Approval cancels the order in the
    same transaction; rejection leaves the order free to continue.
    """

    def __init__(self, order_repository: IOrderRepository) -> None:
        self._order_repo = order_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_request(
        self,
        order_id: UUID,
        reason: str,
        requested_by: Any = None,
    ) -> Order:
        """Open a pending cancellation request on an order.

        When *requested_by* is given, an order that belongs to somebody else
        is reported as missing.  An existing request of any decision blocks
        a new one, so an order has one request for its whole life.

        Raises:
            MissingReason: *reason* is empty or only whitespace.
            OrderNotFound: order does not exist or is not the requester's.
            DuplicateRequest: the order already has a request.
            InvalidState: the order is past Prepared.
        """
        reason = (reason or "").strip()
        if not reason:
            raise MissingReason("A reason is required to request a cancellation.")

        order = self._order_repo.get_for_update(str(order_id))
        if not order or not self._is_owner(order, requested_by):
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order_id), status=as_value(order.status))

        if order.current_cancellation_request is not None:
            log.warning("cancellation.duplicate_request")
            raise DuplicateRequest(
                "A cancellation request already exists for this order."
            )

        if not order.accepts_cancellation_request:
            log.warning("cancellation.invalid_state")
            raise InvalidState(
                f"Orders that are {as_value(order.status)} cannot be cancelled."
            )

        self._order_repo.create_cancellation_request(
            order, reason=reason, requested_by=requested_by
        )
        order.add_domain_event(CancellationRequested(aggregate_id=order.id))
        self._order_repo.save(order)

        log.info("cancellation.requested")
        return self._order_repo.get_by_id(str(order_id)) or order

    @transaction.atomic
    def decide(
        self,
        order_id: UUID,
        decision: str,
        admin_response: Optional[str] = None,
        actor: Any = None,
    ) -> Order:
        """Approve or reject the pending cancellation request of an order.

        Approval stamps the request and moves the order to Cancelled with a
        history record; rejection only stamps the request.

        Raises:
            InvalidDecision: *decision* is not ``approved`` or ``rejected``.
            OrderNotFound: order does not exist.
            TerminalOrderError: order is already Delivered or Cancelled.
            NoPendingRequest: no request awaits a decision.
        """
        value = as_value(decision).strip().lower()
        if value not in DECISIONS:
            raise InvalidDecision(f"Unknown decision: {decision!r}.")

        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        old_status = as_value(order.status)
        log = logger.bind(order_id=str(order_id), decision=value)

        if order.is_terminal:
            log.warning("cancellation.terminal_order")
            raise TerminalOrderError(
                f"Order is {old_status}; its cancellation can no longer be decided."
            )

        request = order.current_cancellation_request
        if request is None or not request.is_pending:
            log.warning("cancellation.no_pending_request")
            raise NoPendingRequest("No pending cancellation request for this order.")

        request.record_decision(value, admin_response=admin_response, decided_by=actor)
        self._order_repo.save_cancellation_request(request)
        order.add_domain_event(
            CancellationDecided(aggregate_id=order.id, decision=value)
        )

        if value == CancellationDecision.APPROVED.value:
            order.status = OrderStatus.CANCELLED.value
            order.add_domain_event(
                OrderStatusChanged(
                    aggregate_id=order.id,
                    old_status=old_status,
                    new_status=OrderStatus.CANCELLED.value,
                )
            )
            order.add_domain_event(
                OrderCancelled(aggregate_id=order.id, via_request=True)
            )
        self._order_repo.save(order)

        if value == CancellationDecision.APPROVED.value:
            self._order_repo.add_history(
                order_id=order.id,
                status=OrderStatus.CANCELLED,
                notes=admin_response or request.reason,
                old_status=old_status,
                user=actor,
            )
            log.info("cancellation.approved")
        else:
            log.info("cancellation.rejected")

        return self._order_repo.get_by_id(str(order_id)) or order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_pending(self) -> List[Order]:
        """Orders awaiting a decision, oldest request first."""
        return self._order_repo.list_pending_cancellations()

    def count_overdue(self, older_than: datetime) -> int:
        """Number of pending requests made before *older_than*."""
        return self._order_repo.count_pending_cancellations_before(older_than)

    @staticmethod
    def _is_owner(order: Order, user: Any) -> bool:
        if user is None:
            return True
        return order.customer.user_id == user.pk
