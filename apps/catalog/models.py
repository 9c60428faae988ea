import uuid

from django.db import models


class ServiceType(models.TextChoices):
    MAIN_SERVICE = "main_service", "Main service"
    ADD_ON_SUPPLY = "add_on_supply", "Add-on supply"
    BUNDLE_PACKAGE = "bundle_package", "Bundle package"


class Service(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=120, unique=True, db_index=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    unit_type = models.CharField(max_length=32, default="load")
    service_type = models.CharField(max_length=20, choices=ServiceType.choices, default=ServiceType.MAIN_SERVICE)
    description = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["service_type", "name"]
        indexes = [
            models.Index(fields=["service_type", "is_active"], name="service_type_active_idx"),
        ]

    def save(self, *args, **kwargs):
        self.name = (self.name or "").strip()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name
