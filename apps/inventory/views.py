import uuid

from django.db import transaction
from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.audit.services import record_audit
from apps.common.permissions import RolePermission
from apps.inventory.models import InventoryItem, InventoryMovement, PackageInclude
from apps.inventory.serializers import (
    InventoryAdjustmentSerializer,
    InventoryItemSerializer,
    InventoryMovementSerializer,
    PackageIncludeSerializer,
)
from apps.inventory.services import adjust_item


class InventoryItemViewSet(viewsets.ModelViewSet):
    queryset = InventoryItem.objects.select_related("service")
    serializer_class = InventoryItemSerializer
    permission_classes = [RolePermission]
    http_method_names = ["get", "post", "put", "patch", "head", "options"]
    capability_map = {
        "list": ["inventory.view"],
        "retrieve": ["inventory.view"],
        "create": ["inventory.manage"],
        "partial_update": ["inventory.manage"],
        "update": ["inventory.manage"],
        "adjust": ["inventory.manage"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        query = self.request.query_params.get("q")
        if query:
            queryset = queryset.filter(Q(name__icontains=query) | Q(service__name__icontains=query))
        return queryset

    def perform_create(self, serializer):
        item = serializer.save()
        record_audit(
            actor=self.request.user,
            action="inventory.item.create",
            entity_type="inventory_item",
            entity_id=item.id,
            payload={"name": item.name, "quantity": str(item.quantity)},
        )

    def perform_update(self, serializer):
        item = serializer.save()
        record_audit(
            actor=self.request.user,
            action="inventory.item.update",
            entity_type="inventory_item",
            entity_id=item.id,
            payload={"name": item.name, "quantity": str(item.quantity)},
        )

    @action(detail=True, methods=["post"])
    def adjust(self, request, pk=None):
        serializer = InventoryAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            item = InventoryItem.objects.select_for_update().get(pk=self.get_object().pk)
            movement = adjust_item(
                item,
                quantity_delta=serializer.validated_data["quantity_delta"],
                note=serializer.validated_data["note"],
                actor=request.user,
                reference_id=f"adj-{uuid.uuid4().hex[:12]}",
            )
            record_audit(
                actor=request.user,
                action="inventory.adjustment.create",
                entity_type="inventory_movement",
                entity_id=movement.id,
                payload={
                    "item_id": str(item.id),
                    "quantity_delta": str(movement.quantity_delta),
                    "note": movement.note,
                },
            )

        return Response(InventoryItemSerializer(item).data, status=status.HTTP_200_OK)


class PackageIncludeViewSet(viewsets.ModelViewSet):
    queryset = PackageInclude.objects.select_related("bundle", "inventory_item")
    serializer_class = PackageIncludeSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "list": ["inventory.view"],
        "retrieve": ["inventory.view"],
        "create": ["inventory.manage"],
        "partial_update": ["inventory.manage"],
        "update": ["inventory.manage"],
        "destroy": ["inventory.manage"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        bundle_id = self.request.query_params.get("bundle")
        if bundle_id:
            queryset = queryset.filter(bundle_id=bundle_id)
        return queryset


class InventoryMovementViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = InventoryMovement.objects.select_related("item", "created_by")
    serializer_class = InventoryMovementSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "list": ["inventory.view"],
        "retrieve": ["inventory.view"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        item_id = self.request.query_params.get("item")
        if item_id:
            queryset = queryset.filter(item_id=item_id)
        reference_type = self.request.query_params.get("reference_type")
        if reference_type:
            queryset = queryset.filter(reference_type=reference_type)
        return queryset
