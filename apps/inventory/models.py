import uuid

from django.core.exceptions import ValidationError
from django.conf import settings
from django.db import models


class MovementType(models.TextChoices):
    INBOUND = "INBOUND", "Inbound"
    OUTBOUND = "OUTBOUND", "Outbound"
    ADJUSTMENT = "ADJUSTMENT", "Adjustment"


class InventoryItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=120, unique=True)
    # The add-on supply sold 1:1 from this item, if any.
    service = models.OneToOneField(
        "catalog.Service",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_item",
    )
    quantity = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    unit = models.CharField(max_length=32, default="pc")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class PackageInclude(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    bundle = models.ForeignKey("catalog.Service", on_delete=models.CASCADE, related_name="package_includes")
    inventory_item = models.ForeignKey(InventoryItem, on_delete=models.PROTECT, related_name="package_includes")
    quantity_used = models.DecimalField(max_digits=12, decimal_places=2, default=1)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["bundle", "inventory_item"], name="unique_package_include_item"),
        ]

    def clean(self):
        if self.quantity_used <= 0:
            raise ValidationError("quantity_used must be greater than 0")

    def __str__(self):
        return f"{self.bundle_id} -> {self.inventory_item_id} x{self.quantity_used}"


class InventoryMovement(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    item = models.ForeignKey(InventoryItem, on_delete=models.PROTECT, related_name="movements")
    movement_type = models.CharField(max_length=20, choices=MovementType.choices)
    quantity_delta = models.DecimalField(max_digits=12, decimal_places=2)
    reference_type = models.CharField(max_length=64)
    reference_id = models.CharField(max_length=64)
    note = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="inventory_movements",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["reference_type", "reference_id", "item"],
                name="unique_inventory_reference_item",
            )
        ]

    def clean(self):
        if self.quantity_delta == 0:
            raise ValidationError("quantity_delta cannot be zero")

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)
