from django.contrib import admin

from apps.orders.models import Order, OrderCodeCounter, OrderDetail


class OrderDetailInline(admin.TabularInline):
    model = OrderDetail
    extra = 0
    autocomplete_fields = ("service",)


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_code", "source", "status", "payment_status", "total_amount", "paid_amount", "created_at")
    list_filter = ("status", "payment_status", "source")
    search_fields = ("order_code", "guest_name", "guest_phone", "customer__name", "customer__phone")
    readonly_fields = ("order_code", "booking", "completion_date", "created_by")
    inlines = [OrderDetailInline]

    # Orders are created by walk-in intake and booking acceptance only.
    def has_add_permission(self, request):
        return False


@admin.register(OrderCodeCounter)
class OrderCodeCounterAdmin(admin.ModelAdmin):
    list_display = ("day", "last_value")
    ordering = ("-day",)
