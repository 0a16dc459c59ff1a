from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal
from typing import Iterable

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.customers.models import Customer
from modules.orders.constants import CancellationDecision, OrderStatus
from modules.orders.models import (
    CancellationRequest,
    Order,
    OrderItem,
    OrderStatusHistory,
)

MENU = [
    ("Greek Salad", Decimal("12.00")),
    ("Veg Salad", Decimal("18.00")),
    ("Chicken Rolls", Decimal("20.00")),
    ("Lasagna Rolls", Decimal("14.00")),
    ("Peri Peri Rolls", Decimal("12.00")),
    ("Ripple Ice Cream", Decimal("14.00")),
    ("Chicken Sandwich", Decimal("12.00")),
    ("Cup Cake", Decimal("14.00")),
    ("Garlic Mushroom", Decimal("14.00")),
    ("Butter Noodles", Decimal("14.00")),
]

FULFILMENT_PATH = [
    OrderStatus.PROCESSING,
    OrderStatus.PREPARED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]

REASONS = [
    "Ordered by mistake",
    "Delivery is taking too long",
    "Changed my mind",
    "Wrong address on the order",
]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        customers = self._seed_customers()
        orders_created = self._seed_orders(customers)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"customers={len(customers)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="manager").exists():
            User.objects.create_user("manager", password="manager123", is_staff=True)
            created += 1
        return created

    def _seed_customers(self) -> list[Customer]:
        self.stdout.write("Creating customers...")
        User = get_user_model()
        customers: list[Customer] = []
        seed_customers = [
            ("ana", "Ana Souza", "ana@example.com", "+5511990000001"),
            ("bruno", "Bruno Lima", "bruno@example.com", "+5511990000002"),
            ("carla", "Carla Mendes", "carla@example.com", "+5511990000003"),
            ("daniel", "Daniel Costa", "daniel@example.com", "+5511990000004"),
            ("helena", "Helena Ferreira", "helena@example.com", "+5511990000005"),
        ]
        for username, name, email, phone in seed_customers:
            user, user_created = User.objects.get_or_create(
                username=username, defaults={"email": email}
            )
            if user_created:
                user.set_password(f"{username}123")
                user.save(update_fields=["password"])
            customer, _ = Customer.objects.get_or_create(
                email=email,
                defaults={"name": name, "phone": phone, "user": user},
            )
            customers.append(customer)
        self.stdout.write(self.style.SUCCESS("Creating customers... Done!"))
        return customers

    def _seed_orders(self, customers: Iterable[Customer]) -> int:
        self.stdout.write("Creating orders...")
        orders_created = 0
        customers_list = list(customers)
        if not customers_list:
            self.stdout.write(self.style.WARNING("Skipping orders (no customers)."))
            return 0

        for i in range(40):
            customer = random.choice(customers_list)
            first_name, _, last_name = customer.name.partition(" ")
            order, created = Order.objects.get_or_create(
                idempotency_key=f"seed-{i + 1}",
                defaults={
                    "customer": customer,
                    "amount": Decimal("1.00"),
                    "address": {
                        "firstName": first_name,
                        "lastName": last_name,
                        "email": customer.email,
                        "phone": customer.phone,
                        "street": f"Rua das Flores, {i + 1}",
                        "city": "São Paulo",
                        "state": "SP",
                        "country": "Brazil",
                        "zipcode": "01000-000",
                    },
                },
            )
            if not created:
                continue

            total = Decimal("0.00")
            dishes = random.sample(MENU, k=random.randint(1, 4))
            for position, (name, price) in enumerate(dishes):
                quantity = random.randint(1, 3)
                OrderItem.objects.create(
                    order=order,
                    position=position,
                    name=name,
                    quantity=quantity,
                    price=price,
                )
                total += price * quantity

            placed_at = timezone.now() - timedelta(
                days=random.randint(0, 30), minutes=random.randint(0, 600)
            )
            status = self._walk_lifecycle(order, placed_at)
            Order.objects.filter(id=order.id).update(
                amount=total + Decimal("2.00"), created_at=placed_at, status=status
            )
            orders_created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders_created

    def _walk_lifecycle(self, order: Order, placed_at) -> str:
        """Advance *order* along the fulfilment path and maybe a cancellation.

        Returns the final status; history and requests are written here.
        """
        OrderStatusHistory.objects.create(
            order=order, new_status=OrderStatus.PROCESSING, notes="Order placed"
        )
        steps = random.randint(0, len(FULFILMENT_PATH) - 1)
        status = OrderStatus.PROCESSING
        for next_status in FULFILMENT_PATH[1 : steps + 1]:
            OrderStatusHistory.objects.create(
                order=order, old_status=status, new_status=next_status
            )
            status = next_status

        if status not in (OrderStatus.PROCESSING, OrderStatus.PREPARED):
            return status.value
        if random.random() < 0.5:
            return status.value

        decision = random.choice(list(CancellationDecision))
        request = CancellationRequest.objects.create(
            order=order,
            reason=random.choice(REASONS),
            requested_at=placed_at + timedelta(minutes=random.randint(1, 20)),
            requested_by=order.customer.user,
        )
        if decision == CancellationDecision.PENDING:
            return status.value

        response = "Refund issued" if decision == CancellationDecision.APPROVED else (
            "Your food is already on the stove"
        )
        request.record_decision(decision.value, admin_response=response)
        request.save()
        if decision == CancellationDecision.REJECTED:
            return status.value

        OrderStatusHistory.objects.create(
            order=order,
            old_status=status,
            new_status=OrderStatus.CANCELLED,
            notes=response,
        )
        return OrderStatus.CANCELLED.value
