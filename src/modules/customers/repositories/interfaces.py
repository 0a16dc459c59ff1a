"""Customer repository interface.

Extends ``IRepository[Customer]`` with the look-ups the order workflow
needs: resolving the profile of the authenticated user placing an order.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.customers.models import Customer


class ICustomerRepository(IRepository["Customer"]):
    """Repository contract for the Customer aggregate."""

    @abstractmethod
    def get_or_create_for_user(self, user: Any) -> Customer:
        """Return the customer profile of *user*, creating it on first use."""
