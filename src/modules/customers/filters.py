import django_filters

from modules.customers.models import Customer, CustomerStatus


class CustomerFilter(django_filters.FilterSet):
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")
    email = django_filters.CharFilter(field_name="email", lookup_expr="iexact")
    status = django_filters.ChoiceFilter(field_name="status", choices=CustomerStatus.choices)

    class Meta:
        model = Customer
        fields = ["name", "email", "status"]
