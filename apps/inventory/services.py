import logging
from collections import defaultdict
from decimal import Decimal

from django.conf import settings
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from apps.catalog.models import ServiceType
from apps.inventory.models import InventoryItem, InventoryMovement, MovementType, PackageInclude

logger = logging.getLogger(__name__)

STOCK_POLICY_ALLOW_NEGATIVE = "allow_negative"
STOCK_POLICY_CLAMP = "clamp"
STOCK_POLICY_REJECT = "reject"

ORDER_PROCESSING_REFERENCE = "order_processing"


def required_draw_down(order):
    """Inventory quantity an order consumes, grouped per inventory item.

    Add-on supplies draw their line quantity from the item they map to.
    Bundles draw ``line quantity * quantity_used`` from every included item.
    """
    required = defaultdict(lambda: Decimal("0"))
    details = list(order.details.select_related("service", "service__inventory_item"))

    for detail in details:
        if detail.service.service_type != ServiceType.ADD_ON_SUPPLY:
            continue
        item = getattr(detail.service, "inventory_item", None)
        if item is None:
            continue
        required[item.id] += Decimal(detail.quantity)

    bundle_quantities = defaultdict(int)
    for detail in details:
        if detail.service.service_type == ServiceType.BUNDLE_PACKAGE:
            bundle_quantities[detail.service_id] += detail.quantity
    if bundle_quantities:
        includes = PackageInclude.objects.filter(bundle_id__in=bundle_quantities.keys())
        for include in includes:
            required[include.inventory_item_id] += bundle_quantities[include.bundle_id] * include.quantity_used

    return {item_id: quantity for item_id, quantity in required.items() if quantity > 0}


def deduct_for_order(order, actor=None, policy=None):
    """Subtract an order's draw-down from inventory. Must run inside a transaction."""
    policy = policy or settings.INVENTORY_STOCK_POLICY
    required = required_draw_down(order)
    if not required:
        return {}

    items = {
        item.id: item
        for item in InventoryItem.objects.select_for_update().filter(id__in=required.keys()).order_by("id")
    }

    if policy == STOCK_POLICY_REJECT:
        short = sorted(items[item_id].name for item_id, qty in required.items() if items[item_id].quantity < qty)
        if short:
            raise ValidationError({"inventory": f"Insufficient stock for: {', '.join(short)}"})

    deducted = {}
    for item_id, qty in required.items():
        item = items[item_id]
        amount = qty
        if policy == STOCK_POLICY_CLAMP:
            amount = min(qty, max(item.quantity, Decimal("0")))
        if amount <= 0:
            logger.warning("Inventory item %s is empty; order %s drew nothing", item.name, order.order_code)
            continue

        InventoryItem.objects.filter(pk=item_id).update(quantity=F("quantity") - amount, updated_at=timezone.now())
        InventoryMovement.objects.create(
            item=item,
            movement_type=MovementType.OUTBOUND,
            quantity_delta=-amount,
            reference_type=ORDER_PROCESSING_REFERENCE,
            reference_id=str(order.id),
            note=f"Order {order.order_code} processing",
            created_by=actor if getattr(actor, "is_authenticated", False) else None,
        )
        if item.quantity - amount < 0:
            logger.warning("Inventory item %s went negative (%s) for order %s", item.name, item.quantity - amount, order.order_code)
        deducted[item_id] = amount

    logger.info("Order %s drew %d inventory item(s)", order.order_code, len(deducted))
    return deducted


def adjust_item(item, *, quantity_delta, note, actor, reference_id):
    quantity_delta = Decimal(quantity_delta).quantize(Decimal("0.01"))
    if quantity_delta == 0:
        raise ValidationError({"quantity_delta": "quantity_delta cannot be zero."})
    movement = InventoryMovement.objects.create(
        item=item,
        movement_type=MovementType.ADJUSTMENT if quantity_delta < 0 else MovementType.INBOUND,
        quantity_delta=quantity_delta,
        reference_type="manual_adjustment",
        reference_id=reference_id,
        note=note,
        created_by=actor,
    )
    InventoryItem.objects.filter(pk=item.pk).update(quantity=F("quantity") + quantity_delta, updated_at=timezone.now())
    item.refresh_from_db(fields=["quantity", "updated_at"])
    return movement
