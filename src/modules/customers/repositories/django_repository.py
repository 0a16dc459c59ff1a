"""Django ORM implementation of the Customer repository.

Satisfies ``ICustomerRepository`` using Django's QuerySet API.
Look-ups follow the Null Object pattern: they return ``None`` instead of
raising, and the Service Layer decides what a missing customer means.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.customers.models import Customer
from modules.customers.repositories.interfaces import ICustomerRepository

logger = structlog.get_logger(__name__)


class CustomerDjangoRepository(ICustomerRepository):
    """Concrete Customer repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Customer]:
        """Retrieve a customer by primary key.

        Returns ``None`` for non-existent or invalid IDs (e.g. malformed UUID).
        """
        try:
            return Customer.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Customer]:
        queryset = Customer.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Customer) -> Customer:
        """Persist (create or update) a customer."""
        is_new = entity._state.adding
        entity.save()
        logger.info("customer.saved", customer_id=str(entity.id), is_new=is_new)
        return entity

    @transaction.atomic
    def get_or_create_for_user(self, user: Any) -> Customer:
        """Return the profile linked to *user*.

        A legacy profile with the user's email but no login is claimed
        instead of creating a duplicate.  When the email already belongs to
        another user's profile, the new profile gets a placeholder address.
        """
        customer = Customer.objects.filter(user=user).first()
        if customer:
            return customer

        customer = None
        email = user.email
        if email:
            customer = Customer.objects.filter(user__isnull=True, email=email).first()
            if customer is None and Customer.objects.filter(email=email).exists():
                logger.warning("customer.email_taken", user_id=user.pk)
                email = None
        if customer is None:
            customer = Customer(
                email=email or f"{user.get_username()}@users.invalid",
                name=user.get_full_name() or user.get_username(),
            )
        customer.user = user
        return self.save(customer)
