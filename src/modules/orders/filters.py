import django_filters

from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    payment_status = django_filters.CharFilter(field_name="payment_status", lookup_expr="iexact")
    delivery_status = django_filters.CharFilter(field_name="delivery_status", lookup_expr="iexact")
    customer = django_filters.UUIDFilter(field_name="customer_id")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    delivery_from = django_filters.DateFilter(field_name="delivery_date", lookup_expr="gte")
    delivery_to = django_filters.DateFilter(field_name="delivery_date", lookup_expr="lte")
    min_total = django_filters.NumberFilter(field_name="total_amount", lookup_expr="gte")
    max_total = django_filters.NumberFilter(field_name="total_amount", lookup_expr="lte")

    class Meta:
        model = Order
        fields = [
            "payment_status",
            "delivery_status",
            "customer",
            "start_date",
            "end_date",
            "delivery_from",
            "delivery_to",
            "min_total",
            "max_total",
        ]
