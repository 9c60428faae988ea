from django.contrib import admin

from apps.catalog.models import Service
from apps.inventory.models import PackageInclude


class PackageIncludeInline(admin.TabularInline):
    model = PackageInclude
    fk_name = "bundle"
    extra = 0
    autocomplete_fields = ("inventory_item",)


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("name", "service_type", "price", "unit_type", "is_active", "updated_at")
    list_filter = ("is_active", "service_type")
    search_fields = ("name", "description")
    inlines = [PackageIncludeInline]
