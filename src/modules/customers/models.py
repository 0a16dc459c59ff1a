"""Customer model.

A customer is the account that places orders on the storefront.  Admin
payloads expand an order's ``userId`` into the customer's name, email and
phone.  Customer CRUD belongs to the account service; this module only
keeps the profile the order workflow needs.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel


class Customer(BaseModel):
    """Customer profile linked to an authenticated user.

    ``user`` is nullable so profiles imported from the legacy store (which
    have no local login) can still own orders.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="customer",
    )
    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=254, unique=True)
    phone = models.CharField(max_length=20, blank=True, default="")

    class Meta:
        db_table = "customers"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["-created_at"], name="customers_created_idx"),
        ]

    def __str__(self) -> str:
        return self.name
