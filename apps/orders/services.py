import logging
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from apps.audit.services import record_audit
from apps.catalog.models import Service
from apps.catalog.services import selection_lines
from apps.common.pricing import to_money
from apps.inventory.services import deduct_for_order
from apps.orders.models import Order, OrderCodeCounter, OrderDetail, OrderSource, OrderStatus, PaymentStatus

logger = logging.getLogger(__name__)

STATUS_RANK = {
    OrderStatus.STAND_BY: 0,
    OrderStatus.PROCESSING: 1,
    OrderStatus.READY: 2,
    OrderStatus.COMPLETED: 3,
}
TERMINAL_STATUSES = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}
UNSETTLED_PAYMENT_STATUSES = {PaymentStatus.UNPAID, PaymentStatus.PARTIAL}
PAYMENT_STATUS_ALIASES = {"partially paid": PaymentStatus.PARTIAL}
PARTIAL_PAYMENT_REQUIRED = "paid_amount is required and must be greater than 0 when payment_status is Partial"


# Order codes


def format_order_code(day, sequence, prefix="ORD"):
    return f"{prefix}{day:%m%d%y}{sequence:03d}"


def next_order_code(today=None):
    """Hand out the next code for ``today`` from the locked per-day counter.

    The first code of a day seeds the counter from the orders already
    created that day, so codes keep counting after a counter reset.
    """
    today = today or timezone.localdate()
    with transaction.atomic():
        counter, _ = OrderCodeCounter.objects.select_for_update().get_or_create(
            day=today,
            defaults={"last_value": Order.objects.filter(created_at__date=today).count()},
        )
        counter.last_value += 1
        counter.save(update_fields=["last_value"])
    return format_order_code(today, counter.last_value, settings.ORDER_CODE_PREFIX)


# Status and payment parsing


def parse_order_status(value):
    normalized = str(value or "").strip().lower()
    for choice in OrderStatus.values:
        if choice.lower() == normalized:
            return OrderStatus(choice)
    raise ValidationError({"status": f"Invalid status: {value}"})


def parse_payment_status(value, allowed=None):
    normalized = str(value or "").strip().lower()
    status = PAYMENT_STATUS_ALIASES.get(normalized)
    if status is None:
        status = next((PaymentStatus(choice) for choice in PaymentStatus.values if choice.lower() == normalized), None)
    allowed = allowed or (PaymentStatus.PAID, PaymentStatus.UNPAID, PaymentStatus.PARTIAL)
    if status not in allowed:
        raise ValidationError(
            {"payment_status": "Invalid payment_status. Use Paid, Unpaid, or Partial / Partially Paid."}
        )
    return status


def derive_payment_status_after_edit(previous_status, old_total, new_total, paid_amount):
    old_total, new_total, paid_amount = to_money(old_total), to_money(new_total), to_money(paid_amount)
    if previous_status == PaymentStatus.PAID and new_total > old_total:
        return PaymentStatus.PARTIAL
    if new_total <= paid_amount:
        return PaymentStatus.PAID
    if Decimal("0") < paid_amount < new_total:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


def _locked_order(order_id):
    try:
        return Order.objects.select_for_update().get(pk=order_id)
    except (Order.DoesNotExist, DjangoValidationError):
        raise NotFound("Order not found.")


# Lifecycle


def transition_order_status(order_id, requested_status, actor=None):
    target = parse_order_status(requested_status)

    with transaction.atomic():
        order = _locked_order(order_id)
        current = OrderStatus(order.status)

        if current in TERMINAL_STATUSES:
            raise ValidationError({"status": f"Order is already {current}; its status can no longer change."})
        if target == current:
            raise ValidationError({"status": f"Order is already {current}."})
        if target == OrderStatus.CANCELLED:
            if current != OrderStatus.STAND_BY:
                raise ValidationError({"status": "Only orders in Stand By can be cancelled."})
        elif STATUS_RANK[target] < STATUS_RANK[current]:
            raise ValidationError({"status": f"Cannot move an order back from {current} to {target}."})
        if target == OrderStatus.COMPLETED and order.payment_status in UNSETTLED_PAYMENT_STATUSES:
            raise ValidationError({"status": "Order must be fully paid before it can be completed."})

        update_fields = ["status", "updated_at"]
        if target == OrderStatus.PROCESSING:
            deduct_for_order(order, actor=actor)
        if target == OrderStatus.COMPLETED:
            order.completion_date = timezone.now()
            update_fields.append("completion_date")
        elif target == OrderStatus.CANCELLED and order.paid_amount != 0:
            order.payment_status = PaymentStatus.REFUNDED
            update_fields.append("payment_status")

        order.status = target
        order.save(update_fields=update_fields)
        record_audit(
            actor=actor,
            action="order.status",
            entity_type="order",
            entity_id=order.id,
            payload={"from": current, "to": target, "payment_status": order.payment_status},
        )

    logger.info("Order %s moved from %s to %s", order.order_code, current, target)
    return order


def update_order_payment(order_id, payment_status, paid_amount=None, actor=None):
    target = parse_payment_status(payment_status)

    with transaction.atomic():
        order = _locked_order(order_id)
        if order.status == OrderStatus.CANCELLED:
            raise ValidationError({"payment_status": "Cancelled orders cannot take payment updates."})
        if order.status == OrderStatus.COMPLETED and target != PaymentStatus.PAID:
            raise ValidationError({"payment_status": "Completed orders must stay fully paid."})

        total = to_money(order.total_amount)
        if target == PaymentStatus.PAID:
            paid = total
        elif target == PaymentStatus.UNPAID:
            paid = Decimal("0.00")
        else:
            paid = to_money(paid_amount) if paid_amount not in (None, "") else Decimal("0.00")
            if paid <= 0:
                raise ValidationError({"paid_amount": "paid_amount must be greater than 0 for partial payments."})
            if paid >= total:
                raise ValidationError({"paid_amount": "Partial payment must be less than the total amount."})

        previous = {"payment_status": order.payment_status, "paid_amount": str(order.paid_amount)}
        order.payment_status = target
        order.paid_amount = paid
        order.save(update_fields=["payment_status", "paid_amount", "updated_at"])
        record_audit(
            actor=actor,
            action="order.payment",
            entity_type="order",
            entity_id=order.id,
            payload={"before": previous, "after": {"payment_status": target, "paid_amount": str(paid)}},
        )

    logger.info("Order %s payment set to %s (%s)", order.order_code, target, paid)
    return order


# Editing


def edit_order(order_id, updated_details, actor=None):
    """Replace the order lines named in ``updated_details``; other lines stay.

    A quantity of 0 removes the line. The total is recomputed from the
    lines the order ends up with.
    """
    with transaction.atomic():
        order = _locked_order(order_id)
        if order.status != OrderStatus.STAND_BY:
            raise ValidationError({"status": "Can only edit orders in Stand By status."})

        service_ids = [item["service_id"] for item in updated_details]
        if len(set(service_ids)) != len(service_ids):
            raise ValidationError({"updatedDetails": "Each service may appear only once."})
        services = Service.objects.in_bulk(service_ids)
        missing = [str(service_id) for service_id in service_ids if service_id not in services]
        if missing:
            raise ValidationError({"updatedDetails": f"Unknown services: {', '.join(missing)}"})

        old_total = order.total_amount
        order.details.filter(service_id__in=service_ids).delete()
        OrderDetail.objects.bulk_create(
            [
                OrderDetail(
                    order=order,
                    service=services[item["service_id"]],
                    quantity=item["quantity"],
                    unit_price=to_money(item["unit_price"]),
                )
                for item in updated_details
                if item["quantity"] > 0
            ]
        )

        new_total = order.recompute_total(save=False)
        order.payment_status = derive_payment_status_after_edit(
            order.payment_status, old_total, new_total, order.paid_amount
        )
        order.save(update_fields=["total_amount", "payment_status", "updated_at"])
        record_audit(
            actor=actor,
            action="order.edit",
            entity_type="order",
            entity_id=order.id,
            payload={
                "old_total": str(old_total),
                "new_total": str(new_total),
                "payment_status": order.payment_status,
                "services": [str(service_id) for service_id in service_ids],
            },
        )

    logger.info("Order %s edited: total %s -> %s", order.order_code, old_total, new_total)
    return order


# Walk-in


def create_walk_in_order(data, actor=None):
    """Create a Stand By walk-in order from the counter form.

    ``data`` is validated walk-in input: guest details, the service
    selection, and the payment fields.
    """
    payment_status = parse_payment_status(data.get("payment_status") or PaymentStatus.UNPAID)
    paid_amount = to_money(data.get("paid_amount"))
    if payment_status == PaymentStatus.PARTIAL and paid_amount <= 0:
        raise ValidationError({"paid_amount": PARTIAL_PAYMENT_REQUIRED})
    if paid_amount < 0:
        raise ValidationError({"paid_amount": "paid_amount cannot be negative."})

    with transaction.atomic():
        lines = selection_lines(
            load=data.get("load"),
            promo=data.get("promo"),
            main_services=data.get("main_services"),
            supplies=data.get("supplies"),
        )
        order = Order.objects.create(
            order_code=next_order_code(),
            guest_name=data["guest_name"].strip(),
            guest_phone=(data.get("guest_phone_number") or "").strip(),
            payment_type=data.get("payment_type") or "Cash",
            source=OrderSource.WALK_IN,
            status=OrderStatus.STAND_BY,
            created_by=actor if getattr(actor, "is_authenticated", False) else None,
        )
        OrderDetail.objects.bulk_create(
            [
                OrderDetail(order=order, service=service, quantity=quantity, unit_price=service.price)
                for service, quantity in lines
            ]
        )
        total = order.recompute_total(save=False)

        if payment_status == PaymentStatus.PAID:
            paid_amount = total
        elif payment_status == PaymentStatus.UNPAID:
            paid_amount = Decimal("0.00")
        elif paid_amount >= total:
            raise ValidationError({"paid_amount": "Partial payment must be less than the total amount."})

        order.payment_status = payment_status
        order.paid_amount = paid_amount
        order.save(update_fields=["total_amount", "payment_status", "paid_amount", "updated_at"])
        record_audit(
            actor=actor,
            action="order.walk_in.create",
            entity_type="order",
            entity_id=order.id,
            payload={
                "order_code": order.order_code,
                "total_amount": str(total),
                "payment_status": payment_status,
                "paid_amount": str(paid_amount),
            },
        )

    logger.info("Walk-in order %s created for %s (total %s)", order.order_code, order.guest_name, total)
    return order
