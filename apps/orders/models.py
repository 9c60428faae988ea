import uuid

from django.conf import settings
from django.db import models

from apps.common.pricing import compute_total, line_total


class OrderStatus(models.TextChoices):
    STAND_BY = "Stand By", "Stand By"
    PROCESSING = "Processing", "Processing"
    READY = "Ready", "Ready"
    COMPLETED = "Completed", "Completed"
    CANCELLED = "Cancelled", "Cancelled"


class PaymentStatus(models.TextChoices):
    UNPAID = "Unpaid", "Unpaid"
    PARTIAL = "Partial", "Partial"
    PAID = "Paid", "Paid"
    REFUNDED = "Refunded", "Refunded"


class OrderSource(models.TextChoices):
    BOOKING = "Booking", "Booking"
    WALK_IN = "Walk-in", "Walk-in"


class Order(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_code = models.CharField(max_length=32, unique=True)
    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="order",
    )
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="orders",
    )
    guest_name = models.CharField(max_length=255, blank=True)
    guest_phone = models.CharField(max_length=50, blank=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    payment_type = models.CharField(max_length=32, default="Cash")
    payment_status = models.CharField(max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.UNPAID)
    source = models.CharField(max_length=16, choices=OrderSource.choices)
    status = models.CharField(max_length=16, choices=OrderStatus.choices, default=OrderStatus.STAND_BY)
    completion_date = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
            models.Index(fields=["payment_status"], name="order_payment_status_idx"),
            models.Index(fields=["source", "created_at"], name="order_source_created_idx"),
        ]

    def __str__(self):
        return self.order_code

    @property
    def customer_name(self):
        return self.customer.name if self.customer_id else self.guest_name

    @property
    def customer_phone(self):
        return self.customer.phone if self.customer_id else self.guest_phone

    def recompute_total(self, save=True):
        self.total_amount = compute_total(self.details.all())
        if save:
            self.save(update_fields=["total_amount", "updated_at"])
        return self.total_amount


class OrderDetail(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="details")
    service = models.ForeignKey("catalog.Service", on_delete=models.PROTECT, related_name="order_lines")
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)

    @property
    def line_total(self):
        return line_total(self.quantity, self.unit_price)


class OrderCodeCounter(models.Model):
    """Last order-code sequence handed out for a local calendar day."""

    day = models.DateField(unique=True)
    last_value = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"{self.day}: {self.last_value}"
