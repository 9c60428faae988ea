from django.contrib import admin

from apps.inventory.models import InventoryItem, InventoryMovement


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ("name", "service", "quantity", "unit", "updated_at")
    search_fields = ("name", "service__name")
    autocomplete_fields = ("service",)


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = (
        "item",
        "movement_type",
        "quantity_delta",
        "reference_type",
        "reference_id",
        "created_by",
        "created_at",
    )
    list_filter = ("movement_type", "reference_type")
    search_fields = ("item__name", "reference_type", "reference_id", "note")
    autocomplete_fields = ("item", "created_by")
