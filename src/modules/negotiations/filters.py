import django_filters

from modules.negotiations.constants import NegotiationStatus
from modules.negotiations.models import NegotiationThread


class NegotiationFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=NegotiationStatus.choices)
    product = django_filters.UUIDFilter(field_name="product_id")
    min_price = django_filters.NumberFilter(field_name="current_price", lookup_expr="gte")
    max_price = django_filters.NumberFilter(field_name="current_price", lookup_expr="lte")
    expires_before = django_filters.IsoDateTimeFilter(
        field_name="expires_at", lookup_expr="lt"
    )

    class Meta:
        model = NegotiationThread
        fields = ["status", "product", "min_price", "max_price", "expires_before"]
