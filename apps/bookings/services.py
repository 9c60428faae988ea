import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from apps.audit.services import record_audit
from apps.bookings.models import Booking, BookingDetail, BookingStatus
from apps.catalog.services import selection_lines
from apps.common.exceptions import Conflict
from apps.common.pricing import compute_total
from apps.customers.models import Customer
from apps.orders.models import Order, OrderDetail, OrderSource, OrderStatus, PaymentStatus
from apps.orders.services import next_order_code

logger = logging.getLogger(__name__)


def booking_total(booking):
    return compute_total(booking.details.all())


def _locked_booking(booking_id):
    try:
        return Booking.objects.select_for_update().get(pk=booking_id)
    except (Booking.DoesNotExist, DjangoValidationError):
        raise NotFound("Booking not found.")


def create_booking(data):
    """Store a booking request from the public form as Pending.

    The customer is looked up by phone and created on first contact.
    """
    with transaction.atomic():
        customer, created = Customer.find_or_create_by_phone(
            data["phone_number"],
            name=data.get("name", ""),
            email=data.get("email", ""),
            address=data.get("address", ""),
        )
        lines = selection_lines(
            load=data.get("load"),
            promo=data.get("promo"),
            main_services=data.get("main_services"),
            supplies=data.get("supplies"),
        )
        booking = Booking.objects.create(
            customer=customer,
            pickup_date=data.get("pickup_date"),
            payment_type=data.get("payment_type") or "Cash",
            special_instruction=data.get("special_instruction") or "",
        )
        BookingDetail.objects.bulk_create(
            [
                BookingDetail(booking=booking, service=service, quantity=quantity, unit_price=service.price)
                for service, quantity in lines
            ]
        )
        record_audit(
            actor=None,
            action="booking.create",
            entity_type="booking",
            entity_id=booking.id,
            payload={"customer_id": str(customer.id), "new_customer": created, "lines": len(lines)},
        )

    logger.info("Booking %s received from %s", booking.id, customer.phone)
    return booking


def accept_booking(booking_id, actor=None):
    with transaction.atomic():
        booking = _locked_booking(booking_id)
        if booking.status == BookingStatus.DECLINED:
            raise ValidationError({"status": "Declined bookings cannot be accepted."})

        total = booking_total(booking)
        order_code = next_order_code()

        booking.status = BookingStatus.ACCEPTED
        booking.decided_at = timezone.now()
        booking.save(update_fields=["status", "decided_at", "updated_at"])

        if Order.objects.filter(booking=booking).exists():
            raise Conflict("An order already exists for this booking.")

        order = Order.objects.create(
            order_code=order_code,
            booking=booking,
            customer=booking.customer,
            total_amount=total,
            payment_type=booking.payment_type,
            payment_status=PaymentStatus.UNPAID,
            source=OrderSource.BOOKING,
            status=OrderStatus.STAND_BY,
            created_by=actor if getattr(actor, "is_authenticated", False) else None,
        )
        OrderDetail.objects.bulk_create(
            [
                OrderDetail(order=order, service_id=detail.service_id, quantity=detail.quantity, unit_price=detail.unit_price)
                for detail in booking.details.all()
            ]
        )
        record_audit(
            actor=actor,
            action="booking.accept",
            entity_type="booking",
            entity_id=booking.id,
            payload={"order_id": str(order.id), "order_code": order.order_code, "total_amount": str(total)},
        )

    logger.info("Booking %s accepted as order %s", booking.id, order.order_code)
    return order


def decline_booking(booking_id, actor=None):
    with transaction.atomic():
        booking = _locked_booking(booking_id)
        if booking.status != BookingStatus.PENDING:
            raise ValidationError({"status": f"Only Pending bookings can be declined; this one is {booking.status}."})

        booking.status = BookingStatus.DECLINED
        booking.decided_at = timezone.now()
        booking.save(update_fields=["status", "decided_at", "updated_at"])
        record_audit(
            actor=actor,
            action="booking.decline",
            entity_type="booking",
            entity_id=booking.id,
            payload={},
        )

    logger.info("Booking %s declined", booking.id)
    return booking
