from django.contrib import admin

from apps.bookings.models import Booking, BookingDetail


class BookingDetailInline(admin.TabularInline):
    model = BookingDetail
    extra = 0
    autocomplete_fields = ("service",)


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("id", "customer", "pickup_date", "payment_type", "status", "created_at")
    list_filter = ("status", "payment_type")
    search_fields = ("customer__name", "customer__phone")
    autocomplete_fields = ("customer",)
    inlines = [BookingDetailInline]
