from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.customers.models import Customer
from modules.customers.repositories.django_repository import CustomerDjangoRepository
from modules.orders.constants import OrderStatus
from modules.orders.models import CancellationRequest, Order, OrderItem
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import CancellationService, OrderService

User = get_user_model()

ADDRESS = {
    "firstName": "Ana",
    "lastName": "Souza",
    "email": "ana@example.com",
    "phone": "+5511990000001",
    "street": "Rua das Flores, 10",
    "city": "São Paulo",
    "state": "SP",
    "country": "Brazil",
    "zipcode": "01000-000",
}


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def admin_user():
    return User.objects.create_user(
        username="kitchen-admin", password="testpass123", is_staff=True
    )


@pytest.fixture()
def admin_client(admin_user):
    """APIClient authenticated as a staff member of the admin console."""
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture()
def customer_user():
    return User.objects.create_user(
        username="ana", email="ana@example.com", password="testpass123"
    )


@pytest.fixture()
def customer(customer_user):
    return Customer.objects.create(
        user=customer_user,
        name="Ana Souza",
        email="ana@example.com",
        phone="+5511990000001",
    )


@pytest.fixture()
def customer_client(customer_user):
    """APIClient authenticated as the storefront customer."""
    client = APIClient()
    client.force_authenticate(user=customer_user)
    return client


@pytest.fixture()
def make_order(customer):
    """Factory building an order directly in the given state.

    ``request`` may be ``None`` (no cancellation request) or a decision
    value, in which case a request with that decision is attached.
    """

    def _make(status=OrderStatus.PROCESSING, request=None, reason="Changed my mind"):
        order = Order.objects.create(
            customer=customer,
            status=status,
            amount=Decimal("26.00"),
            address=ADDRESS,
        )
        OrderItem.objects.create(
            order=order, position=0, name="Greek Salad", quantity=2, price="12.00"
        )
        if request is not None:
            CancellationRequest.objects.create(
                order=order, reason=reason, decision=request
            )
        return order

    return _make


@pytest.fixture()
def order_service():
    return OrderService(
        order_repository=OrderDjangoRepository(),
        customer_repository=CustomerDjangoRepository(),
    )


@pytest.fixture()
def cancellation_service():
    return CancellationService(order_repository=OrderDjangoRepository())
