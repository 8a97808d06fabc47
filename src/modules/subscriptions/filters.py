import django_filters

from modules.subscriptions.models import Subscription


class SubscriptionFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    frequency = django_filters.CharFilter(field_name="frequency", lookup_expr="iexact")
    customer = django_filters.UUIDFilter(field_name="customer_id")
    emergency = django_filters.BooleanFilter(field_name="is_emergency")

    class Meta:
        model = Subscription
        fields = ["status", "frequency", "customer", "emergency"]
