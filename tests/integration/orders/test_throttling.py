"""Integration tests for per-action throttling on the order API."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from rest_framework.throttling import ScopedRateThrottle

from modules.orders.views import OrderViewSet

pytestmark = pytest.mark.integration

REQUEST_URL = "/api/order/request-cancellation"
LIST_URL = "/api/order/list"


@pytest.fixture(autouse=True)
def _scoped_throttling():
    """The test settings disable throttling; turn the scoped throttle back on."""
    with patch.object(OrderViewSet, "throttle_classes", [ScopedRateThrottle]):
        yield


def test_cancellation_requests_are_throttled(customer_client, make_order):
    order = make_order()
    payload = {"orderId": str(order.id), "reason": "Changed my mind"}

    for _ in range(5):
        response = customer_client.post(REQUEST_URL, payload, format="json")
        assert response.status_code != 429

    response = customer_client.post(REQUEST_URL, payload, format="json")
    assert response.status_code == 429
    assert response.json()["success"] is False


def test_admin_listing_has_higher_limit(admin_client):
    for _ in range(10):
        assert admin_client.get(LIST_URL).status_code == 200
