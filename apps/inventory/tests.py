from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import transaction
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.catalog.models import Service, ServiceType
from apps.inventory.models import InventoryItem, InventoryMovement, MovementType, PackageInclude
from apps.inventory.services import (
    ORDER_PROCESSING_REFERENCE,
    STOCK_POLICY_CLAMP,
    STOCK_POLICY_REJECT,
    deduct_for_order,
    required_draw_down,
)
from apps.orders.models import Order, OrderDetail, OrderSource

User = get_user_model()


class InventoryDrawDownTests(APITestCase):
    def setUp(self):
        self.wash = Service.objects.create(name="Wash", price=Decimal("65.00"))
        self.detergent = Service.objects.create(
            name="Detergent", price=Decimal("20.00"), service_type=ServiceType.ADD_ON_SUPPLY
        )
        self.bundle = Service.objects.create(
            name="Full Service Package", price=Decimal("180.00"), service_type=ServiceType.BUNDLE_PACKAGE
        )
        self.sachets = InventoryItem.objects.create(name="Detergent Sachet", service=self.detergent, quantity=Decimal("10"))
        self.softener = InventoryItem.objects.create(name="Softener Sachet", quantity=Decimal("10"))
        PackageInclude.objects.create(bundle=self.bundle, inventory_item=self.sachets, quantity_used=Decimal("1"))
        PackageInclude.objects.create(bundle=self.bundle, inventory_item=self.softener, quantity_used=Decimal("2"))

        self.order = Order.objects.create(order_code="ORD030524001", guest_name="Ana", source=OrderSource.WALK_IN)
        OrderDetail.objects.create(order=self.order, service=self.wash, quantity=2, unit_price=Decimal("65.00"))
        OrderDetail.objects.create(order=self.order, service=self.detergent, quantity=3, unit_price=Decimal("20.00"))
        OrderDetail.objects.create(order=self.order, service=self.bundle, quantity=2, unit_price=Decimal("180.00"))

    def test_required_draw_down_groups_supplies_and_bundle_contents(self):
        required = required_draw_down(self.order)
        self.assertEqual(required, {self.sachets.id: Decimal("5"), self.softener.id: Decimal("4")})

    def test_deduct_for_order_subtracts_and_logs_movements(self):
        with transaction.atomic():
            deduct_for_order(self.order)

        self.sachets.refresh_from_db()
        self.softener.refresh_from_db()
        self.assertEqual(self.sachets.quantity, Decimal("5.00"))
        self.assertEqual(self.softener.quantity, Decimal("6.00"))

        movement = InventoryMovement.objects.get(item=self.sachets)
        self.assertEqual(movement.movement_type, MovementType.OUTBOUND)
        self.assertEqual(movement.quantity_delta, Decimal("-5.00"))
        self.assertEqual(movement.reference_type, ORDER_PROCESSING_REFERENCE)
        self.assertEqual(movement.reference_id, str(self.order.id))

    def test_default_policy_allows_negative_stock(self):
        InventoryItem.objects.filter(pk=self.sachets.pk).update(quantity=Decimal("1"))
        with transaction.atomic():
            deduct_for_order(self.order)

        self.sachets.refresh_from_db()
        self.assertEqual(self.sachets.quantity, Decimal("-4.00"))

    def test_clamp_policy_stops_at_zero(self):
        InventoryItem.objects.filter(pk=self.sachets.pk).update(quantity=Decimal("1"))
        with transaction.atomic():
            deducted = deduct_for_order(self.order, policy=STOCK_POLICY_CLAMP)

        self.sachets.refresh_from_db()
        self.assertEqual(self.sachets.quantity, Decimal("0.00"))
        self.assertEqual(deducted[self.sachets.id], Decimal("1.00"))

    def test_reject_policy_raises_and_leaves_stock_untouched(self):
        InventoryItem.objects.filter(pk=self.softener.pk).update(quantity=Decimal("3"))
        with self.assertRaises(ValidationError) as ctx:
            with transaction.atomic():
                deduct_for_order(self.order, policy=STOCK_POLICY_REJECT)

        self.assertIn("Softener Sachet", str(ctx.exception.detail["inventory"]))
        self.sachets.refresh_from_db()
        self.assertEqual(self.sachets.quantity, Decimal("10.00"))
        self.assertFalse(InventoryMovement.objects.exists())


class InventoryApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="ADMIN")
        self.staff = User.objects.create_user(username="staff", password="staff123", role="STAFF")
        self.item = InventoryItem.objects.create(name="Detergent Sachet", quantity=Decimal("10"))
        self.other_item = InventoryItem.objects.create(name="Softener Sachet", quantity=Decimal("4"))

    def auth_as(self, username, password):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def test_inventory_adjustment_updates_quantity_and_is_audited(self):
        self.auth_as("admin", "admin123")
        response = self.client.post(
            f"/api/v1/inventory/items/{self.item.id}/adjust/",
            {"quantity_delta": "-2.50", "note": "Spilled"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["quantity"], "7.50")

        movement = InventoryMovement.objects.get(item=self.item)
        self.assertEqual(movement.movement_type, MovementType.ADJUSTMENT)
        self.assertEqual(movement.created_by, self.admin)
        self.assertTrue(AuditLog.objects.filter(action="inventory.adjustment.create", entity_id=str(movement.id)).exists())

    def test_zero_adjustment_is_rejected(self):
        self.auth_as("admin", "admin123")
        response = self.client.post(
            f"/api/v1/inventory/items/{self.item.id}/adjust/",
            {"quantity_delta": "0", "note": "Nothing"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["detail"], "quantity_delta cannot be zero.")

    def test_staff_can_view_but_not_adjust(self):
        self.auth_as("staff", "staff123")
        listed = self.client.get("/api/v1/inventory/items/")
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.data["count"], 2)

        response = self.client.post(
            f"/api/v1/inventory/items/{self.item.id}/adjust/",
            {"quantity_delta": "5", "note": "Restock"},
            format="json",
        )
        self.assertEqual(response.status_code, 403)

    def test_movements_can_be_filtered_by_item(self):
        InventoryMovement.objects.create(
            item=self.item,
            movement_type=MovementType.INBOUND,
            quantity_delta=Decimal("5.00"),
            reference_type="manual_adjustment",
            reference_id="adj-1",
            note="Restock",
            created_by=self.admin,
        )
        InventoryMovement.objects.create(
            item=self.other_item,
            movement_type=MovementType.INBOUND,
            quantity_delta=Decimal("1.00"),
            reference_type="manual_adjustment",
            reference_id="adj-2",
            note="Restock",
            created_by=self.admin,
        )

        self.auth_as("staff", "staff123")
        response = self.client.get(f"/api/v1/inventory/movements/?item={self.item.id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["count"], 1)
        row = response.data["results"][0]
        self.assertEqual(row["item_name"], "Detergent Sachet")
        self.assertEqual(row["created_by_username"], "admin")
