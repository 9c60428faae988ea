from rest_framework import serializers

from apps.customers.models import Customer


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ["id", "name", "phone", "phone_normalized", "email", "address", "created_at", "updated_at"]
        read_only_fields = fields
