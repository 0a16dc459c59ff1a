import django_filters
from django.db.models import Q

from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    customer = django_filters.UUIDFilter(field_name="customer_id")
    start_date = django_filters.DateFilter(
        field_name="created_at", lookup_expr="date__gte"
    )
    end_date = django_filters.DateFilter(
        field_name="created_at", lookup_expr="date__lte"
    )
    min_amount = django_filters.NumberFilter(field_name="amount", lookup_expr="gte")
    max_amount = django_filters.NumberFilter(field_name="amount", lookup_expr="lte")
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Order
        fields = [
            "status",
            "customer",
            "start_date",
            "end_date",
            "min_amount",
            "max_amount",
            "search",
        ]

    def filter_search(self, queryset, name, value):
        # Customer account name or the name on the delivery address.
        return queryset.filter(
            Q(customer__name__icontains=value)
            | Q(address__firstName__icontains=value)
            | Q(address__lastName__icontains=value)
            | Q(order_number__icontains=value)
        )
