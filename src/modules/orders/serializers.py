"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.

Output keys follow the payloads the admin console and storefront
already consume (``_id``, ``userId``, ``cancellationRequest`` ...).
"""

from __future__ import annotations

from rest_framework import serializers

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class PlaceOrderItemSerializer(serializers.Serializer):
    """Validates a single dish in an order placement request."""

    name = serializers.CharField(max_length=255)
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)


class PlaceOrderSerializer(serializers.Serializer):
    """Validates the order placement payload.

    The address is checked field by field by ``AddressDTO``.
    """

    items = PlaceOrderItemSerializer(many=True, allow_empty=False)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    address = serializers.DictField()


class UpdateStatusSerializer(serializers.Serializer):
    orderId = serializers.UUIDField()
    status = serializers.CharField()
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class RequestCancellationSerializer(serializers.Serializer):
    orderId = serializers.UUIDField()
    reason = serializers.CharField()


class HandleCancellationSerializer(serializers.Serializer):
    """Validates an admin decision payload.

    ``action`` stays a free string; unknown decisions are reported by the
    cancellation workflow itself.
    """

    orderId = serializers.UUIDField()
    action = serializers.CharField()
    adminResponse = serializers.CharField(
        required=False, allow_null=True, allow_blank=True, default=None
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class CustomerSummarySerializer(serializers.Serializer):
    _id = serializers.UUIDField(source="id", read_only=True)
    name = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)
    phone = serializers.CharField(read_only=True)


class OrderItemSerializer(serializers.Serializer):
    name = serializers.CharField(read_only=True)
    quantity = serializers.IntegerField(read_only=True)
    price = serializers.DecimalField(
        max_digits=10, decimal_places=2, coerce_to_string=False, read_only=True
    )


class CancellationRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(read_only=True)
    requestedAt = serializers.DateTimeField(source="requested_at", read_only=True)
    decision = serializers.CharField(read_only=True)
    adminResponse = serializers.CharField(source="admin_response", read_only=True)
    decidedAt = serializers.DateTimeField(source="decided_at", read_only=True)


class OrderSerializer(serializers.Serializer):
    """Read serializer for orders with customer, items and cancellation request."""

    _id = serializers.UUIDField(source="id", read_only=True)
    orderNumber = serializers.CharField(source="order_number", read_only=True)
    userId = CustomerSummarySerializer(source="customer", read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, coerce_to_string=False, read_only=True
    )
    address = serializers.JSONField(read_only=True)
    status = serializers.CharField(read_only=True)
    cancellationRequest = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    def get_cancellationRequest(self, obj):
        request = obj.current_cancellation_request
        if request is None:
            return None
        return CancellationRequestSerializer(request).data
