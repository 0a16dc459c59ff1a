"""Order API views.

Exposes ``OrderService`` and ``CancellationService`` via HTTP using a DRF
ViewSet mounted at ``/api/order/``.  Domain exceptions are caught and
translated into the ``{success, message}`` envelope: ``OrderNotFound``
becomes 404, every other ``OrderError`` becomes 400.  The view never
swallows generic exceptions.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import BasePermission, IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.customers.repositories.django_repository import CustomerDjangoRepository
from modules.orders.dtos import (
    CancellationDecisionDTO,
    CancellationRequestDTO,
    CreateOrderDTO,
    OrderIntakeDTO,
    StatusChangeDTO,
)
from modules.orders.exceptions import InvalidDecision, OrderError, OrderNotFound
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    HandleCancellationSerializer,
    OrderSerializer,
    PlaceOrderSerializer,
    RequestCancellationSerializer,
    UpdateStatusSerializer,
)
from modules.orders.services import CancellationService, OrderService

logger = structlog.get_logger(__name__)

ADMIN_ACTIONS = {
    "all_orders",
    "update_status",
    "cancellation_requests",
    "handle_cancellation",
}


def _error(message: str, http_status: int) -> Response:
    return Response({"success": False, "message": message}, status=http_status)


def _domain_error(exc: OrderError) -> Response:
    logger.info("order.request_refused", error=type(exc).__name__, detail=str(exc))
    if isinstance(exc, OrderNotFound):
        return _error(str(exc), status.HTTP_404_NOT_FOUND)
    return _error(str(exc), status.HTTP_400_BAD_REQUEST)


def _validation_error(exc: PydanticValidationError) -> Response:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid input.")
    if location:
        message = f"{location}: {message}"
    return _error(message, status.HTTP_400_BAD_REQUEST)


class OrderViewSet(GenericViewSet):
    """ViewSet for the admin console and storefront order operations.

    Uses ``OrderService`` and ``CancellationService`` with injected
    repositories (DIP).  Does **not** extend ``ModelViewSet``; writes go
    through the service/repository layer.
    """

    queryset = Order.objects.all()
    serializer_class = OrderSerializer
    filterset_class = OrderFilter

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        order_repository = OrderDjangoRepository()
        self._customers = CustomerDjangoRepository()
        self._service = OrderService(
            order_repository=order_repository,
            customer_repository=self._customers,
        )
        self._cancellations = CancellationService(order_repository=order_repository)

    def get_permissions(self) -> list[BasePermission]:
        if self.action in ADMIN_ACTIONS:
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttle scopes per action."""
        throttle_scope: str | None
        if self.action == "place":
            throttle_scope = "order_placement"
        elif self.action == "request_cancellation":
            throttle_scope = "cancellation_request"
        elif self.action in ADMIN_ACTIONS:
            throttle_scope = "order_admin"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        return (
            Order.objects.select_related("customer", "cancellation_request")
            .prefetch_related("items")
            .order_by("-created_at", "-id")
        )

    # ------------------------------------------------------------------
    # Admin console
    # ------------------------------------------------------------------

    @action(detail=False, methods=["get"], url_path="list")
    def all_orders(self, request: Request) -> Response:
        """GET /api/order/list

        Newest first.  Filtering (status, date range, amount range, search)
        is handled by ``OrderFilter``.
        """
        queryset = self.filter_queryset(self.get_queryset())
        serializer = OrderSerializer(queryset, many=True)
        return Response({"success": True, "data": serializer.data})

    @action(detail=False, methods=["post"], url_path="status")
    def update_status(self, request: Request) -> Response:
        """POST /api/order/status  ``{orderId, status}``"""
        serializer = UpdateStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        dto = StatusChangeDTO(
            order_id=data["orderId"], status=data["status"], notes=data["notes"]
        )

        try:
            self._service.set_status(
                order_id=dto.order_id,
                new_status=dto.status,
                actor=request.user,
                notes=dto.notes,
            )
        except OrderError as exc:
            return _domain_error(exc)

        return Response({"success": True, "message": "Status Updated"})

    @action(detail=False, methods=["get"], url_path="cancellation-requests")
    def cancellation_requests(self, request: Request) -> Response:
        """GET /api/order/cancellation-requests

        Orders with a pending request, oldest request first.
        """
        orders = self._cancellations.list_pending()
        serializer = OrderSerializer(orders, many=True)
        return Response({"success": True, "data": serializer.data})

    @action(detail=False, methods=["post"], url_path="handle-cancellation")
    def handle_cancellation(self, request: Request) -> Response:
        """POST /api/order/handle-cancellation  ``{orderId, action, adminResponse?}``"""
        serializer = HandleCancellationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            dto = CancellationDecisionDTO(
                order_id=data["orderId"],
                decision=data["action"],
                admin_response=data.get("adminResponse"),
            )
        except PydanticValidationError:
            return _domain_error(
                InvalidDecision("Action must be 'approved' or 'rejected'.")
            )

        try:
            self._cancellations.decide(
                order_id=dto.order_id,
                decision=dto.decision,
                admin_response=dto.admin_response,
                actor=request.user,
            )
        except OrderError as exc:
            return _domain_error(exc)

        return Response(
            {"success": True, "message": f"Cancellation request {dto.decision}"}
        )

    # ------------------------------------------------------------------
    # Storefront
    # ------------------------------------------------------------------

    @action(detail=False, methods=["post"], url_path="place")
    def place(self, request: Request) -> Response:
        """POST /api/order/place

        Supports idempotency via the ``Idempotency-Key`` header.
        Returns 200 if the key was already used, 201 for new orders.
        """
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        idempotency_key = request.headers.get("Idempotency-Key")

        try:
            intake = OrderIntakeDTO(
                items=[dict(item) for item in data["items"]],
                amount=data["amount"],
                address=data["address"],
                idempotency_key=idempotency_key,
            )
        except PydanticValidationError as exc:
            return _validation_error(exc)

        customer = self._customers.get_or_create_for_user(request.user)
        dto = CreateOrderDTO(customer_id=customer.id, **intake.model_dump())

        replayed = bool(idempotency_key) and (
            self._service.find_by_idempotency_key(idempotency_key) is not None
        )

        try:
            order = self._service.create_order(dto)
        except OrderError as exc:
            return _domain_error(exc)

        http_status = status.HTTP_200_OK if replayed else status.HTTP_201_CREATED
        return Response(
            {"success": True, "data": OrderSerializer(order).data},
            status=http_status,
        )

    @action(detail=False, methods=["post"], url_path="request-cancellation")
    def request_cancellation(self, request: Request) -> Response:
        """POST /api/order/request-cancellation  ``{orderId, reason}``"""
        serializer = RequestCancellationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            dto = CancellationRequestDTO(order_id=data["orderId"], reason=data["reason"])
        except PydanticValidationError as exc:
            return _validation_error(exc)

        try:
            self._cancellations.create_request(
                order_id=dto.order_id,
                reason=dto.reason,
                requested_by=request.user,
            )
        except OrderError as exc:
            return _domain_error(exc)

        return Response(
            {"success": True, "message": "Cancellation request submitted"}
        )

    @action(detail=False, methods=["get"], url_path="userorders")
    def userorders(self, request: Request) -> Response:
        """GET /api/order/userorders

        The caller's orders with their cancellation request, newest first.
        """
        orders = self._service.list_customer_orders(request.user)
        serializer = OrderSerializer(orders, many=True)
        return Response({"success": True, "data": serializer.data})
