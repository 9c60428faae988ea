from rest_framework import serializers

from apps.catalog.models import Service


class ServiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Service
        fields = [
            "id",
            "name",
            "price",
            "unit_type",
            "service_type",
            "description",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError("price must be greater than or equal to 0.")
        return value


class ActiveServiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Service
        fields = ["id", "name", "price", "unit_type", "service_type", "description"]
        read_only_fields = fields


class SupplySelectionSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)
    quantity = serializers.IntegerField(min_value=0, default=1)

    def to_internal_value(self, data):
        if isinstance(data, str):
            data = {"name": data}
        elif isinstance(data, dict) and "name" not in data and "service_name" in data:
            data = {**data, "name": data["service_name"]}
        return super().to_internal_value(data)


class ServiceSelectionSerializer(serializers.Serializer):
    """Shared input for the public booking form and the walk-in counter."""

    load = serializers.IntegerField(min_value=1, default=1)
    promo = serializers.CharField(max_length=120, required=False, allow_blank=True, allow_null=True)
    main_services = serializers.ListField(child=serializers.CharField(max_length=120), required=False)
    supplies = SupplySelectionSerializer(many=True, required=False)

    def validate(self, attrs):
        attrs = super().validate(attrs)
        has_promo = bool(attrs.get("promo"))
        has_main = bool(attrs.get("main_services"))
        if has_promo and has_main:
            raise serializers.ValidationError({"services": "Choose either a promo or main services, not both."})
        if not has_promo and not has_main:
            raise serializers.ValidationError({"services": "A promo or at least one main service is required."})
        return attrs
