"""Unit tests for OrderService and CancellationService with mocked repositories."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest

from modules.orders.constants import CancellationDecision, OrderStatus
from modules.orders.dtos import AddressDTO, CreateOrderDTO, OrderItemDTO
from modules.orders.events import (
    CancellationDecided,
    CancellationRequested,
    OrderCancelled,
    OrderCreated,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    CustomerNotFound,
    IdempotencyKeyReused,
    InvalidStatus,
    NoPendingRequest,
    OrderNotFound,
    PendingRequestConflict,
)
from modules.orders.models import Order
from modules.orders.services import CancellationService, OrderService

pytestmark = pytest.mark.unit


@dataclass
class StubCustomer:
    id: UUID


@dataclass
class StubRequest:
    reason: str = "Changed my mind"
    decision: str = CancellationDecision.PENDING.value
    admin_response: Optional[str] = None
    decided_by: Any = None
    decided_at: Any = None

    @property
    def is_pending(self) -> bool:
        return self.decision == CancellationDecision.PENDING.value

    def record_decision(self, decision, admin_response=None, decided_by=None):
        self.decision = decision
        self.admin_response = admin_response
        self.decided_by = decided_by
        self.decided_at = "now"


@dataclass
class StubOrder:
    """Stand-in exposing the Order state-machine helpers without a database."""

    id: UUID = field(default_factory=uuid4)
    status: str = OrderStatus.PROCESSING.value
    request: Optional[StubRequest] = None
    events: list = field(default_factory=list)

    is_terminal = Order.is_terminal
    can_transition_to = Order.can_transition_to
    accepts_cancellation_request = Order.accepts_cancellation_request

    @property
    def current_cancellation_request(self):
        return self.request

    @property
    def has_pending_cancellation(self) -> bool:
        return self.request is not None and self.request.is_pending

    def add_domain_event(self, event) -> None:
        self.events.append(event)


def _call_set_status(service: OrderService, order_id, new_status, **kwargs):
    return OrderService.set_status.__wrapped__(service, order_id, new_status, **kwargs)


def _call_decide(service: CancellationService, order_id, decision, **kwargs):
    return CancellationService.decide.__wrapped__(service, order_id, decision, **kwargs)


def _call_create_request(service: CancellationService, order_id, reason, **kwargs):
    return CancellationService.create_request.__wrapped__(
        service, order_id, reason, **kwargs
    )


@pytest.fixture()
def order_repo():
    return MagicMock()


@pytest.fixture()
def customer_repo():
    return MagicMock()


@pytest.fixture()
def services(order_repo, customer_repo):
    return (
        OrderService(order_repo, customer_repo),
        CancellationService(order_repo),
    )


def _dto(customer_id: UUID, key: Optional[str] = None) -> CreateOrderDTO:
    return CreateOrderDTO(
        customer_id=customer_id,
        items=[OrderItemDTO(name="Greek Salad", quantity=2, price=Decimal("12.00"))],
        amount=Decimal("26.00"),
        address=AddressDTO(
            firstName="Ana", phone="+5511990000001", street="Rua A", city="SP"
        ),
        idempotency_key=key,
    )


class TestCreateOrder:
    def test_persists_snapshot_and_history(self, services, order_repo, customer_repo):
        service, _ = services
        customer_id = uuid4()
        customer_repo.get_by_id.return_value = StubCustomer(customer_id)
        order_repo.get_by_idempotency_key.return_value = None
        order = StubOrder()
        order_repo.create.return_value = order
        order_repo.get_by_id.return_value = order

        result = OrderService.create_order.__wrapped__(service, _dto(customer_id))

        assert result is order
        data = order_repo.create.call_args.args[0]
        assert data["customer_id"] == customer_id
        assert data["amount"] == Decimal("26.00")
        assert data["items"] == [
            {"name": "Greek Salad", "quantity": 2, "price": Decimal("12.00")}
        ]
        assert data["address"]["firstName"] == "Ana"
        assert isinstance(order.events[0], OrderCreated)
        order_repo.save.assert_called_once_with(order)
        order_repo.add_history.assert_called_once_with(
            order_id=order.id, status=OrderStatus.PROCESSING, notes="Order placed"
        )

    def test_missing_customer(self, services, order_repo, customer_repo):
        service, _ = services
        customer_repo.get_by_id.return_value = None

        with pytest.raises(CustomerNotFound):
            OrderService.create_order.__wrapped__(service, _dto(uuid4()))
        order_repo.create.assert_not_called()

    def test_idempotency_hit_returns_existing(self, services, order_repo):
        service, _ = services
        customer_id = uuid4()
        existing = MagicMock(customer_id=customer_id)
        order_repo.get_by_idempotency_key.return_value = existing

        result = OrderService.create_order.__wrapped__(
            service, _dto(customer_id, key="abc")
        )

        assert result is existing
        order_repo.create.assert_not_called()

    def test_idempotency_key_of_another_customer(self, services, order_repo):
        service, _ = services
        order_repo.get_by_idempotency_key.return_value = MagicMock(customer_id=uuid4())

        with pytest.raises(IdempotencyKeyReused):
            OrderService.create_order.__wrapped__(service, _dto(uuid4(), key="abc"))
        order_repo.create.assert_not_called()


class TestSetStatus:
    def test_success_saves_events_and_history(self, services, order_repo):
        service, _ = services
        order = StubOrder()
        order_repo.get_for_update.return_value = order
        actor = object()

        _call_set_status(service, order.id, OrderStatus.PREPARED, actor=actor)

        assert order.status == OrderStatus.PREPARED.value
        event = order.events[0]
        assert isinstance(event, OrderStatusChanged)
        assert event.old_status == OrderStatus.PROCESSING.value
        assert event.new_status == OrderStatus.PREPARED.value
        order_repo.save.assert_called_once_with(order)
        order_repo.add_history.assert_called_once_with(
            order_id=order.id,
            status=OrderStatus.PREPARED.value,
            notes="",
            old_status=OrderStatus.PROCESSING.value,
            user=actor,
        )

    def test_override_cancel_raises_cancelled_event(self, services, order_repo):
        service, _ = services
        order = StubOrder(status=OrderStatus.OUT_FOR_DELIVERY.value)
        order_repo.get_for_update.return_value = order

        _call_set_status(service, order.id, OrderStatus.CANCELLED)

        assert [type(e) for e in order.events] == [OrderStatusChanged, OrderCancelled]
        assert order.events[1].via_request is False

    def test_invalid_status_does_not_lock(self, services, order_repo):
        service, _ = services
        with pytest.raises(InvalidStatus):
            _call_set_status(service, uuid4(), "Lost")
        order_repo.get_for_update.assert_not_called()

    def test_missing_order(self, services, order_repo):
        service, _ = services
        order_repo.get_for_update.return_value = None
        with pytest.raises(OrderNotFound):
            _call_set_status(service, uuid4(), OrderStatus.PREPARED)

    def test_pending_request_blocks_cancel(self, services, order_repo):
        service, _ = services
        order = StubOrder(request=StubRequest())
        order_repo.get_for_update.return_value = order

        with pytest.raises(PendingRequestConflict):
            _call_set_status(service, order.id, OrderStatus.CANCELLED)
        order_repo.save.assert_not_called()
        assert order.request.is_pending


class TestCancellationWorkflow:
    def test_create_request_persists_and_raises_event(self, services, order_repo):
        _, service = services
        order = StubOrder()
        order_repo.get_for_update.return_value = order

        _call_create_request(service, order.id, "Ordered by mistake")

        order_repo.create_cancellation_request.assert_called_once_with(
            order, reason="Ordered by mistake", requested_by=None
        )
        assert isinstance(order.events[0], CancellationRequested)
        order_repo.save.assert_called_once_with(order)

    def test_approve_updates_request_status_and_history(self, services, order_repo):
        _, service = services
        request = StubRequest()
        order = StubOrder(status=OrderStatus.PREPARED.value, request=request)
        order_repo.get_for_update.return_value = order

        _call_decide(
            service, order.id, CancellationDecision.APPROVED, admin_response="OK"
        )

        assert request.decision == CancellationDecision.APPROVED.value
        assert request.admin_response == "OK"
        assert order.status == OrderStatus.CANCELLED.value
        order_repo.save_cancellation_request.assert_called_once_with(request)
        assert [type(e) for e in order.events] == [
            CancellationDecided,
            OrderStatusChanged,
            OrderCancelled,
        ]
        assert order.events[2].via_request is True
        order_repo.add_history.assert_called_once()
        assert order_repo.add_history.call_args.kwargs["notes"] == "OK"

    def test_reject_keeps_status(self, services, order_repo):
        _, service = services
        request = StubRequest()
        order = StubOrder(request=request)
        order_repo.get_for_update.return_value = order

        _call_decide(service, order.id, "rejected")

        assert request.decision == CancellationDecision.REJECTED.value
        assert order.status == OrderStatus.PROCESSING.value
        order_repo.add_history.assert_not_called()
        assert [type(e) for e in order.events] == [CancellationDecided]

    def test_decided_request_is_not_pending(self, services, order_repo):
        _, service = services
        order = StubOrder(
            request=StubRequest(decision=CancellationDecision.REJECTED.value)
        )
        order_repo.get_for_update.return_value = order

        with pytest.raises(NoPendingRequest):
            _call_decide(service, order.id, CancellationDecision.APPROVED)
        order_repo.save_cancellation_request.assert_not_called()

    def test_queries_delegate_to_repository(self, services, order_repo):
        _, service = services
        order_repo.list_pending_cancellations.return_value = ["o1"]
        order_repo.count_pending_cancellations_before.return_value = 3

        assert service.list_pending() == ["o1"]
        assert service.count_overdue("cutoff") == 3
        order_repo.count_pending_cancellations_before.assert_called_once_with("cutoff")
