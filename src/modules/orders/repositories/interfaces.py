"""Order repository interface.

Extends ``IRepository[Order]`` with what the Order aggregate needs:
atomic creation with items, row-locked reads for mutations, the
cancellation request sub-record, status history, and idempotency-key
look-up.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import CancellationRequest, Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children, the optional
    CancellationRequest and OrderStatusHistory records.  Mutations must be
    atomic and must start from ``get_for_update``.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` must include ``customer_id``, ``items`` (list of dicts with
        ``name``, ``quantity``, ``price``), ``amount`` and ``address``, and
        optionally ``idempotency_key``.
        """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with prefetched relations."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order holding its row lock until the transaction ends."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user: Any = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""

    # ------------------------------------------------------------------
    # Cancellation requests
    # ------------------------------------------------------------------

    @abstractmethod
    def create_cancellation_request(
        self, order: Order, reason: str, requested_by: Any = None
    ) -> CancellationRequest:
        """Attach a pending cancellation request to *order*."""

    @abstractmethod
    def save_cancellation_request(
        self, request: CancellationRequest
    ) -> CancellationRequest:
        """Persist a decided cancellation request."""

    @abstractmethod
    def list_pending_cancellations(self) -> List[Order]:
        """Orders whose request is pending, oldest request first."""

    @abstractmethod
    def count_pending_cancellations_before(self, cutoff: datetime) -> int:
        """Number of pending requests made before *cutoff*."""
