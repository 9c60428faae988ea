import re
import uuid

from django.core.exceptions import ValidationError
from django.db import IntegrityError, models, transaction

PH_MOBILE_RE = re.compile(r"^09\d{9}$")


def normalize_phone(value):
    raw = str(value or "").strip()
    normalized = re.sub(r"\D+", "", raw)
    return normalized or raw


def is_valid_mobile(value):
    return bool(PH_MOBILE_RE.match(re.sub(r"\D+", "", str(value or ""))))


class Customer(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    phone = models.CharField(max_length=50)
    phone_normalized = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    address = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"], name="customer_name_idx"),
        ]

    def clean(self):
        if not self.phone:
            raise ValidationError("phone is required")
        normalized = normalize_phone(self.phone)
        if not normalized:
            raise ValidationError("phone must contain at least one digit")
        self.phone_normalized = normalized

    def save(self, *args, **kwargs):
        self.phone = str(self.phone or "").strip()
        self.name = str(self.name or "").strip()
        self.phone_normalized = normalize_phone(self.phone)
        self.full_clean()
        super().save(*args, **kwargs)

    @classmethod
    def find_or_create_by_phone(cls, phone, name="", email="", address=""):
        """Return the customer owning ``phone``, creating it on first contact.

        An existing customer is returned as stored: the booking form never
        overwrites name, email or address.
        """
        normalized = normalize_phone(phone)
        customer = cls.objects.filter(phone_normalized=normalized).first()
        if customer:
            return customer, False
        try:
            with transaction.atomic():
                customer = cls.objects.create(
                    phone=str(phone).strip(),
                    name=str(name or "").strip() or str(phone).strip(),
                    email=str(email or "").strip(),
                    address=str(address or "").strip(),
                )
        except IntegrityError:
            # Lost a race with a concurrent first booking for the same phone.
            return cls.objects.get(phone_normalized=normalized), False
        return customer, True

    def __str__(self):
        return f"{self.name} ({self.phone})"
