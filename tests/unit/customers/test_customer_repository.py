"""Unit tests for CustomerDjangoRepository.

Covers:
- Interface compliance.
- get_by_id / list / save.
- Lazy profile creation for authenticated users.
- Edge cases: invalid UUID, non-existent records.
"""

from __future__ import annotations

import uuid

import pytest
from django.contrib.auth import get_user_model

from modules.customers.models import Customer
from modules.customers.repositories.django_repository import CustomerDjangoRepository
from modules.customers.repositories.interfaces import ICustomerRepository

pytestmark = pytest.mark.unit

User = get_user_model()


@pytest.fixture()
def repo():
    return CustomerDjangoRepository()


def test_implements_interface(repo):
    assert isinstance(repo, ICustomerRepository)


class TestLookups:
    def test_get_by_id(self, repo, customer):
        assert repo.get_by_id(str(customer.id)) == customer

    def test_get_by_id_missing(self, repo):
        assert repo.get_by_id(str(uuid.uuid4())) is None

    def test_get_by_id_invalid_uuid(self, repo):
        assert repo.get_by_id("not-a-uuid") is None

    def test_list_with_filters(self, repo, customer):
        Customer.objects.create(name="Bruno", email="bruno@example.com")
        assert repo.list({"name": "Ana Souza"}) == [customer]
        assert len(repo.list()) == 2

    def test_save_persists_changes(self, repo, customer):
        customer.phone = "+5511999999999"
        repo.save(customer)
        customer.refresh_from_db()
        assert customer.phone == "+5511999999999"


class TestGetOrCreateForUser:
    def test_returns_linked_profile(self, repo, customer, customer_user):
        assert repo.get_or_create_for_user(customer_user) == customer

    def test_claims_profile_with_same_email(self, repo):
        legacy = Customer.objects.create(name="Carla", email="carla@example.com")
        user = User.objects.create_user(
            username="carla", email="carla@example.com", password="x"
        )

        profile = repo.get_or_create_for_user(user)

        assert profile.id == legacy.id
        assert profile.user == user

    def test_creates_profile(self, repo):
        user = User.objects.create_user(
            username="daniel",
            email="daniel@example.com",
            password="x",
            first_name="Daniel",
            last_name="Costa",
        )

        profile = repo.get_or_create_for_user(user)

        assert profile.name == "Daniel Costa"
        assert profile.email == "daniel@example.com"
        assert Customer.objects.filter(user=user).count() == 1

    def test_user_without_email_gets_placeholder(self, repo):
        user = User.objects.create_user(username="noemail", password="x")
        profile = repo.get_or_create_for_user(user)
        assert profile.email == "noemail@users.invalid"
        assert profile.name == "noemail"

    def test_email_linked_to_another_user_gets_placeholder(
        self, repo, customer, customer_user
    ):
        twin = User.objects.create_user(
            username="ana-twin", email=customer_user.email, password="x"
        )

        profile = repo.get_or_create_for_user(twin)

        assert profile.id != customer.id
        assert profile.email == "ana-twin@users.invalid"
        customer.refresh_from_db()
        assert customer.user == customer_user
