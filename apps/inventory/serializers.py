from rest_framework import serializers

from apps.inventory.models import InventoryItem, InventoryMovement, PackageInclude


class InventoryItemSerializer(serializers.ModelSerializer):
    service_name = serializers.CharField(source="service.name", read_only=True)

    class Meta:
        model = InventoryItem
        fields = ["id", "name", "service", "service_name", "quantity", "unit", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_service(self, value):
        if value is not None and value.service_type != "add_on_supply":
            raise serializers.ValidationError("Only add-on supplies can map 1:1 onto an inventory item.")
        return value


class InventoryAdjustmentSerializer(serializers.Serializer):
    quantity_delta = serializers.DecimalField(max_digits=12, decimal_places=2)
    note = serializers.CharField(max_length=255)


class PackageIncludeSerializer(serializers.ModelSerializer):
    bundle_name = serializers.CharField(source="bundle.name", read_only=True)
    inventory_item_name = serializers.CharField(source="inventory_item.name", read_only=True)

    class Meta:
        model = PackageInclude
        fields = ["id", "bundle", "bundle_name", "inventory_item", "inventory_item_name", "quantity_used"]
        read_only_fields = ["id"]

    def validate(self, attrs):
        bundle = attrs.get("bundle") or getattr(self.instance, "bundle", None)
        if bundle is not None and bundle.service_type != "bundle_package":
            raise serializers.ValidationError({"bundle": "Only bundle packages can include inventory items."})
        quantity_used = attrs.get("quantity_used")
        if quantity_used is not None and quantity_used <= 0:
            raise serializers.ValidationError({"quantity_used": "quantity_used must be greater than 0."})
        return attrs


class InventoryMovementSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source="item.name", read_only=True)
    created_by_username = serializers.CharField(source="created_by.username", read_only=True, default=None)

    class Meta:
        model = InventoryMovement
        fields = [
            "id",
            "item",
            "item_name",
            "movement_type",
            "quantity_delta",
            "reference_type",
            "reference_id",
            "note",
            "created_by",
            "created_by_username",
            "created_at",
        ]
        read_only_fields = fields
