from rest_framework import serializers

from apps.bookings.models import Booking, BookingDetail
from apps.catalog.serializers import ServiceSelectionSerializer
from apps.common.pricing import compute_total
from apps.customers.models import is_valid_mobile


class BookingDetailSerializer(serializers.ModelSerializer):
    service_name = serializers.CharField(source="service.name", read_only=True)
    service_type = serializers.CharField(source="service.service_type", read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = BookingDetail
        fields = ["id", "service", "service_name", "service_type", "quantity", "unit_price", "line_total"]
        read_only_fields = fields


class BookingSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    customer_phone = serializers.CharField(source="customer.phone", read_only=True)
    customer_email = serializers.CharField(source="customer.email", read_only=True)
    customer_address = serializers.CharField(source="customer.address", read_only=True)
    details = BookingDetailSerializer(many=True, read_only=True)
    total_amount = serializers.SerializerMethodField()
    order_id = serializers.SerializerMethodField()
    order_code = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "customer",
            "customer_name",
            "customer_phone",
            "customer_email",
            "customer_address",
            "pickup_date",
            "payment_type",
            "special_instruction",
            "status",
            "decided_at",
            "created_at",
            "details",
            "total_amount",
            "order_id",
            "order_code",
        ]
        read_only_fields = fields

    def get_total_amount(self, obj):
        return str(compute_total(obj.details.all()))

    def get_order_id(self, obj):
        order = getattr(obj, "order", None)
        return str(order.id) if order else None

    def get_order_code(self, obj):
        order = getattr(obj, "order", None)
        return order.order_code if order else None


class BookingCreateSerializer(ServiceSelectionSerializer):
    name = serializers.CharField(max_length=255)
    phone_number = serializers.CharField(max_length=50)
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    address = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    pickup_date = serializers.DateField(required=False, allow_null=True)
    payment_type = serializers.CharField(max_length=32, required=False, default="Cash")
    special_instruction = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_phone_number(self, value):
        if not is_valid_mobile(value):
            raise serializers.ValidationError("Enter a valid mobile number (09XXXXXXXXX).")
        return value.strip()
