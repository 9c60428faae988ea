from django.db.models import Q
from rest_framework import generics, viewsets
from rest_framework.permissions import AllowAny

from apps.audit.services import record_audit
from apps.catalog.models import Service
from apps.catalog.serializers import ActiveServiceSerializer, ServiceSerializer
from apps.common.permissions import RolePermission


class ServiceViewSet(viewsets.ModelViewSet):
    queryset = Service.objects.all()
    serializer_class = ServiceSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "list": ["catalog.view"],
        "retrieve": ["catalog.view"],
        "create": ["catalog.manage"],
        "partial_update": ["catalog.manage"],
        "update": ["catalog.manage"],
        "destroy": ["catalog.manage"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        query = self.request.query_params.get("q")
        if query:
            queryset = queryset.filter(Q(name__icontains=query) | Q(description__icontains=query))

        service_type = self.request.query_params.get("service_type")
        if service_type:
            queryset = queryset.filter(service_type=service_type)

        is_active = self.request.query_params.get("is_active")
        if is_active is not None:
            normalized = is_active.strip().lower()
            if normalized in {"1", "true", "yes"}:
                queryset = queryset.filter(is_active=True)
            elif normalized in {"0", "false", "no"}:
                queryset = queryset.filter(is_active=False)
        return queryset

    @staticmethod
    def _snapshot(service):
        return {
            "name": service.name,
            "price": str(service.price),
            "service_type": service.service_type,
            "is_active": service.is_active,
        }

    def perform_create(self, serializer):
        service = serializer.save()
        record_audit(
            actor=self.request.user,
            action="catalog.service.create",
            entity_type="service",
            entity_id=service.id,
            payload=self._snapshot(service),
        )

    def perform_update(self, serializer):
        before = self._snapshot(self.get_object())
        service = serializer.save()
        record_audit(
            actor=self.request.user,
            action="catalog.service.update",
            entity_type="service",
            entity_id=service.id,
            payload={"before": before, "after": self._snapshot(service)},
        )

    def perform_destroy(self, instance):
        # Services referenced by booking or order lines are retired, not deleted.
        if instance.booking_lines.exists() or instance.order_lines.exists():
            instance.is_active = False
            instance.save(update_fields=["is_active", "updated_at"])
            action = "catalog.service.deactivate"
        else:
            action = "catalog.service.delete"
        record_audit(
            actor=self.request.user,
            action=action,
            entity_type="service",
            entity_id=instance.id,
            payload=self._snapshot(instance),
        )
        if action == "catalog.service.delete":
            instance.delete()


class ActiveServiceListView(generics.ListAPIView):
    serializer_class = ActiveServiceSerializer
    permission_classes = [AllowAny]
    pagination_class = None

    def get_queryset(self):
        return Service.objects.filter(is_active=True).order_by("service_type", "name")
