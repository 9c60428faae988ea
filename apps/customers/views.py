from django.db.models import Q
from rest_framework import viewsets

from apps.common.permissions import RolePermission
from apps.customers.models import Customer, normalize_phone
from apps.customers.serializers import CustomerSerializer


class CustomerViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Customer.objects.order_by("name")
    serializer_class = CustomerSerializer
    permission_classes = [RolePermission]
    capability_map = {"list": ["customers.view"], "retrieve": ["customers.view"]}

    def get_queryset(self):
        queryset = super().get_queryset()
        phone = self.request.query_params.get("phone")
        query = self.request.query_params.get("q")
        if phone:
            queryset = queryset.filter(phone_normalized=normalize_phone(phone))
        if query:
            normalized = normalize_phone(query)
            queryset = queryset.filter(
                Q(name__icontains=query) | Q(phone__icontains=query) | Q(phone_normalized__icontains=normalized)
            )
        return queryset
