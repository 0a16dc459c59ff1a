"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``OrderItemDTO`` / ``AddressDTO`` / ``OrderIntakeDTO`` / ``CreateOrderDTO``: order intake.
- ``CancellationRequestDTO``: a customer's cancellation request.
- ``CancellationDecisionDTO``: an admin's decision on a pending request.
- ``StatusChangeDTO``: a staff status change.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.orders.constants import DECISIONS, as_value

# ---------------------------------------------------------------------------
# Order intake
# ---------------------------------------------------------------------------


class OrderItemDTO(BaseModel):
    """Immutable snapshot of one ordered dish."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=255)
    quantity: int
    price: Decimal = Decimal("0.00")

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @field_validator("price")
    @classmethod
    def price_must_not_be_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Price cannot be negative.")
        return v


class AddressDTO(BaseModel):
    """Delivery address as entered at checkout.

    Field names follow the storefront payload so the stored snapshot can be
    returned to the admin console unchanged.
    """

    model_config = ConfigDict(frozen=True)

    firstName: str = Field(min_length=1)
    lastName: str = ""
    email: str = ""
    phone: str = Field(min_length=1)
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = ""
    country: str = ""
    zipcode: str = ""


class OrderIntakeDTO(BaseModel):
    """Immutable DTO for the storefront payload of an order.

    Validates:
    - ``items`` must contain at least one item.
    - ``amount`` must be strictly positive.
    """

    model_config = ConfigDict(frozen=True)

    items: List[OrderItemDTO]
    amount: Decimal
    address: AddressDTO
    idempotency_key: Optional[str] = None

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[OrderItemDTO]) -> List[OrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @field_validator("amount")
    @classmethod
    def amount_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Amount must be greater than zero.")
        return v


class CreateOrderDTO(OrderIntakeDTO):
    """Order placement on behalf of a resolved customer."""

    customer_id: UUID


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


class StatusChangeDTO(BaseModel):
    """Staff request to move an order to *status*.

    ``status`` is kept as a plain string: rejecting unknown values is the
    status engine's job (``InvalidStatus``).
    """

    model_config = ConfigDict(frozen=True)

    order_id: UUID
    status: str
    notes: str = ""


# ---------------------------------------------------------------------------
# Cancellation workflow
# ---------------------------------------------------------------------------


class CancellationRequestDTO(BaseModel):
    """Customer request to cancel *order_id*; ``reason`` is required."""

    model_config = ConfigDict(frozen=True)

    order_id: UUID
    reason: str

    @field_validator("reason")
    @classmethod
    def reason_must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("A cancellation reason is required.")
        return v


class CancellationDecisionDTO(BaseModel):
    """Admin decision on the pending request of *order_id*.

    A blank ``admin_response`` is stored as ``None``.
    """

    model_config = ConfigDict(frozen=True)

    order_id: UUID
    decision: str
    admin_response: Optional[str] = None

    @field_validator("decision", mode="before")
    @classmethod
    def decision_must_be_known(cls, v: Any) -> str:
        value = as_value(v).strip().lower()
        if value not in DECISIONS:
            raise ValueError("Decision must be 'approved' or 'rejected'.")
        return value

    @field_validator("admin_response")
    @classmethod
    def blank_response_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None
