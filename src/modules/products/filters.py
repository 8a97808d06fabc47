import django_filters

from modules.products.models import Product


class ProductFilter(django_filters.FilterSet):
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")
    code = django_filters.CharFilter(field_name="code", lookup_expr="iexact")
    active = django_filters.BooleanFilter(field_name="is_active")
    low_stock = django_filters.NumberFilter(field_name="stock_quantity", lookup_expr="lte")

    class Meta:
        model = Product
        fields = ["name", "code", "active", "low_stock"]
