from rest_framework import serializers

from apps.catalog.serializers import ServiceSelectionSerializer
from apps.common.pricing import compute_total
from apps.customers.models import is_valid_mobile
from apps.orders.models import Order, OrderDetail


class OrderDetailSerializer(serializers.ModelSerializer):
    service_name = serializers.CharField(source="service.name", read_only=True)
    service_type = serializers.CharField(source="service.service_type", read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderDetail
        fields = ["id", "service", "service_name", "service_type", "quantity", "unit_price", "line_total"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(read_only=True)
    customer_phone = serializers.CharField(read_only=True)
    details = OrderDetailSerializer(many=True, read_only=True)
    calculated_total = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_code",
            "booking",
            "customer",
            "customer_name",
            "customer_phone",
            "guest_name",
            "guest_phone",
            "total_amount",
            "paid_amount",
            "payment_type",
            "payment_status",
            "source",
            "status",
            "completion_date",
            "created_at",
            "updated_at",
            "details",
            "calculated_total",
        ]
        read_only_fields = fields

    def get_calculated_total(self, obj):
        return str(compute_total(obj.details.all()))


class WalkInOrderSerializer(ServiceSelectionSerializer):
    guest_name = serializers.CharField(max_length=255)
    guest_phone_number = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    payment_type = serializers.CharField(max_length=32, required=False, default="Cash")
    payment_status = serializers.CharField(max_length=32, required=False, default="Unpaid")
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)

    def validate_guest_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("guest_name is required")
        return value.strip()

    def validate_guest_phone_number(self, value):
        if value and not is_valid_mobile(value):
            raise serializers.ValidationError("Enter a valid mobile number (09XXXXXXXXX).")
        return (value or "").strip()


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=32)


class OrderPaymentSerializer(serializers.Serializer):
    payment_status = serializers.CharField(max_length=32)
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)


class OrderEditLineSerializer(serializers.Serializer):
    service_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=0)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class OrderEditSerializer(serializers.Serializer):
    updatedDetails = OrderEditLineSerializer(many=True, allow_empty=True)
