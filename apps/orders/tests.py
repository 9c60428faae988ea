from datetime import date, datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, override_settings
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.catalog.models import Service, ServiceType
from apps.customers.models import Customer
from apps.inventory.models import InventoryItem, InventoryMovement, PackageInclude
from apps.orders.models import Order, OrderCodeCounter, OrderDetail, OrderSource, OrderStatus, PaymentStatus
from apps.orders.services import derive_payment_status_after_edit, format_order_code, next_order_code

User = get_user_model()


class OrderHelpersTests(SimpleTestCase):
    def test_format_order_code(self):
        self.assertEqual(format_order_code(date(2024, 3, 5), 3), "ORD030524003")
        self.assertEqual(format_order_code(date(2024, 12, 31), 1, prefix="LDY"), "LDY123124001")

    def test_derive_payment_status_after_edit(self):
        cases = [
            (PaymentStatus.PARTIAL, "700", "500", "500", PaymentStatus.PAID),
            (PaymentStatus.PAID, "200", "300", "200", PaymentStatus.PARTIAL),
            (PaymentStatus.PAID, "300", "200", "300", PaymentStatus.PAID),
            (PaymentStatus.UNPAID, "200", "300", "100", PaymentStatus.PARTIAL),
            (PaymentStatus.UNPAID, "200", "300", "0", PaymentStatus.UNPAID),
        ]
        for previous, old_total, new_total, paid, expected in cases:
            with self.subTest(previous=previous, new_total=new_total, paid=paid):
                self.assertEqual(derive_payment_status_after_edit(previous, old_total, new_total, paid), expected)


class OrderCodeCounterTests(APITestCase):
    def test_next_code_continues_after_existing_orders_of_the_day(self):
        for code in ("ORD030524001", "ORD030524002"):
            Order.objects.create(order_code=code, guest_name="Ana", source=OrderSource.WALK_IN)
        Order.objects.update(created_at=timezone.make_aware(datetime(2024, 3, 5, 10, 0)))

        self.assertEqual(next_order_code(today=date(2024, 3, 5)), "ORD030524003")
        self.assertEqual(next_order_code(today=date(2024, 3, 5)), "ORD030524004")
        self.assertEqual(next_order_code(today=date(2024, 3, 6)), "ORD030624001")
        self.assertEqual(OrderCodeCounter.objects.get(day=date(2024, 3, 5)).last_value, 4)


class OrderApiTestCase(APITestCase):
    def setUp(self):
        self.staff = User.objects.create_user(username="staff", password="staff123", role="STAFF")
        self.wash = Service.objects.create(name="Wash", price=Decimal("100.00"))
        self.dry = Service.objects.create(name="Dry", price=Decimal("100.00"))
        self.detergent = Service.objects.create(
            name="Detergent", price=Decimal("20.00"), service_type=ServiceType.ADD_ON_SUPPLY
        )
        self.bundle = Service.objects.create(
            name="Full Service Package", price=Decimal("180.00"), service_type=ServiceType.BUNDLE_PACKAGE
        )
        self.sachets = InventoryItem.objects.create(name="Detergent Sachet", service=self.detergent, quantity=Decimal("10"))
        PackageInclude.objects.create(bundle=self.bundle, inventory_item=self.sachets, quantity_used=Decimal("1"))
        self.auth_as_staff()

    def auth_as_staff(self):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": "staff", "password": "staff123"},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def make_order(self, lines, status=OrderStatus.STAND_BY, payment_status=PaymentStatus.UNPAID, paid="0", **extra):
        order = Order.objects.create(
            order_code=f"ORD0101240{Order.objects.count() + 1:02d}",
            guest_name=extra.pop("guest_name", "Walk-in Guest"),
            source=extra.pop("source", OrderSource.WALK_IN),
            status=status,
            payment_status=payment_status,
            paid_amount=Decimal(paid),
            **extra,
        )
        for service, quantity, unit_price in lines:
            OrderDetail.objects.create(order=order, service=service, quantity=quantity, unit_price=Decimal(unit_price))
        order.recompute_total()
        return order

    def set_status(self, order, status):
        return self.client.patch(f"/api/v1/orders/{order.id}/status/", {"status": status}, format="json")


class WalkInOrderTests(OrderApiTestCase):
    def walk_in(self, **overrides):
        payload = {
            "guest_name": "Pedro Reyes",
            "guest_phone_number": "09171234567",
            "load": 2,
            "main_services": ["Wash", "Dry"],
            "supplies": [{"name": "Detergent", "quantity": 1}],
            "payment_type": "Cash",
        }
        payload.update(overrides)
        payload = {key: value for key, value in payload.items() if value is not None}
        return self.client.post("/api/v1/orders/create/", payload, format="json")

    def test_walk_in_order_is_priced_from_catalog(self):
        response = self.walk_in(payment_status="Paid")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["message"], "Walk-in order created successfully")

        order = Order.objects.get(id=response.data["orderId"])
        self.assertEqual(order.order_code, response.data["orderCode"])
        self.assertRegex(order.order_code, r"^ORD\d{9}$")
        self.assertEqual(order.source, OrderSource.WALK_IN)
        self.assertEqual(order.status, OrderStatus.STAND_BY)
        self.assertEqual(order.total_amount, Decimal("420.00"))
        self.assertEqual(order.paid_amount, Decimal("420.00"))
        self.assertEqual(order.payment_status, PaymentStatus.PAID)
        self.assertEqual(order.guest_phone, "09171234567")
        self.assertEqual(response.data["order"]["customer_name"], "Pedro Reyes")
        self.assertTrue(AuditLog.objects.for_entity("order", order.id).filter(action="order.walk_in.create").exists())

    def test_partial_payment_requires_positive_paid_amount(self):
        response = self.walk_in(payment_status="Partial", paid_amount="0")
        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.data["detail"].startswith("paid_amount is required"))
        self.assertFalse(Order.objects.exists())

    def test_partially_paid_alias_and_partial_must_stay_below_total(self):
        accepted = self.walk_in(
            payment_status="Partially Paid",
            paid_amount="100.00",
            promo="Full Service Package",
            main_services=None,
        )
        self.assertEqual(accepted.status_code, 201)
        order = Order.objects.get(id=accepted.data["orderId"])
        self.assertEqual(order.payment_status, PaymentStatus.PARTIAL)
        self.assertEqual(order.total_amount, Decimal("380.00"))

        too_much = self.walk_in(payment_status="Partial", paid_amount="420.00")
        self.assertEqual(too_much.status_code, 400)
        self.assertEqual(Order.objects.count(), 1)

    def test_unpaid_walk_in_ignores_paid_amount(self):
        response = self.walk_in(paid_amount="50.00")
        self.assertEqual(response.status_code, 201)
        order = Order.objects.get(id=response.data["orderId"])
        self.assertEqual(order.payment_status, PaymentStatus.UNPAID)
        self.assertEqual(order.paid_amount, Decimal("0.00"))

    def test_walk_in_validation_errors(self):
        self.assertEqual(self.walk_in(guest_name="").status_code, 400)
        self.assertEqual(self.walk_in(promo="Full Service Package").status_code, 400)
        self.assertEqual(self.walk_in(main_services=["Steam"]).status_code, 400)
        self.assertEqual(self.walk_in(guest_phone_number="555-1234").status_code, 400)
        self.assertEqual(self.walk_in(paid_amount="-5").status_code, 400)
        self.assertEqual(self.walk_in(payment_status="Refunded").status_code, 400)
        self.assertFalse(Order.objects.exists())


class OrderStatusTests(OrderApiTestCase):
    def test_processing_draws_supplies_and_bundle_contents(self):
        order = self.make_order([(self.detergent, 3, "20.00"), (self.bundle, 2, "180.00")])

        response = self.set_status(order, "Processing")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["order"]["status"], OrderStatus.PROCESSING)

        self.sachets.refresh_from_db()
        self.assertEqual(self.sachets.quantity, Decimal("5.00"))
        self.assertTrue(AuditLog.objects.for_entity("order", order.id).filter(action="order.status").exists())

    def test_status_is_case_insensitive_and_unknown_status_is_rejected(self):
        order = self.make_order([(self.wash, 1, "100.00")])
        self.assertEqual(self.set_status(order, "processing").status_code, 200)
        self.assertEqual(self.set_status(order, "Washing").status_code, 400)

    def test_completion_requires_full_payment(self):
        order = self.make_order([(self.wash, 1, "100.00")])

        rejected = self.set_status(order, "Completed")
        self.assertEqual(rejected.status_code, 400)
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.STAND_BY)

        Order.objects.filter(pk=order.pk).update(payment_status=PaymentStatus.PARTIAL, paid_amount=Decimal("50"))
        self.assertEqual(self.set_status(order, "Completed").status_code, 400)

        Order.objects.filter(pk=order.pk).update(payment_status=PaymentStatus.PAID, paid_amount=Decimal("100"))
        accepted = self.set_status(order, "Completed")
        self.assertEqual(accepted.status_code, 200)
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.COMPLETED)
        self.assertIsNotNone(order.completion_date)

    def test_ready_to_completed_is_guarded_too(self):
        order = self.make_order([(self.wash, 1, "100.00")], status=OrderStatus.READY)
        self.assertEqual(self.set_status(order, "Completed").status_code, 400)

    def test_cancel_only_from_stand_by(self):
        order = self.make_order([(self.wash, 1, "100.00")], status=OrderStatus.PROCESSING)
        response = self.set_status(order, "Cancelled")
        self.assertEqual(response.status_code, 400)
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.PROCESSING)

    def test_cancelling_paid_order_marks_it_refunded(self):
        order = self.make_order([(self.wash, 1, "100.00")], payment_status=PaymentStatus.PAID, paid="100.00")
        response = self.set_status(order, "Cancelled")
        self.assertEqual(response.status_code, 200)
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.CANCELLED)
        self.assertEqual(order.payment_status, PaymentStatus.REFUNDED)
        self.assertFalse(InventoryMovement.objects.exists())

    def test_cancelling_unpaid_order_keeps_payment_status(self):
        order = self.make_order([(self.wash, 1, "100.00")])
        self.assertEqual(self.set_status(order, "Cancelled").status_code, 200)
        order.refresh_from_db()
        self.assertEqual(order.payment_status, PaymentStatus.UNPAID)

    def test_backward_repeated_and_terminal_transitions_are_rejected(self):
        order = self.make_order([(self.detergent, 1, "20.00")], status=OrderStatus.READY)
        self.assertEqual(self.set_status(order, "Processing").status_code, 400)
        self.assertEqual(self.set_status(order, "Ready").status_code, 400)

        cancelled = self.make_order([(self.wash, 1, "100.00")], status=OrderStatus.CANCELLED)
        self.assertEqual(self.set_status(cancelled, "Stand By").status_code, 400)

    def test_only_entering_processing_draws_inventory(self):
        ready = self.make_order([(self.detergent, 4, "20.00")])
        self.assertEqual(self.set_status(ready, "Ready").status_code, 200)

        completed = self.make_order(
            [(self.detergent, 4, "20.00")], payment_status=PaymentStatus.PAID, paid="80.00"
        )
        self.assertEqual(self.set_status(completed, "Completed").status_code, 200)

        self.sachets.refresh_from_db()
        self.assertEqual(self.sachets.quantity, Decimal("10.00"))
        self.assertFalse(InventoryMovement.objects.exists())

    def test_processing_twice_does_not_draw_twice(self):
        order = self.make_order([(self.detergent, 2, "20.00")])
        self.assertEqual(self.set_status(order, "Processing").status_code, 200)
        self.assertEqual(self.set_status(order, "Processing").status_code, 400)
        self.sachets.refresh_from_db()
        self.assertEqual(self.sachets.quantity, Decimal("8.00"))

    @override_settings(INVENTORY_STOCK_POLICY="reject")
    def test_reject_policy_blocks_processing_when_stock_is_short(self):
        order = self.make_order([(self.detergent, 11, "20.00")])
        response = self.set_status(order, "Processing")
        self.assertEqual(response.status_code, 400)
        self.assertIn("Detergent Sachet", response.data["detail"])
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.STAND_BY)
        self.sachets.refresh_from_db()
        self.assertEqual(self.sachets.quantity, Decimal("10.00"))

    def test_missing_order_returns_404(self):
        response = self.client.patch(
            "/api/v1/orders/00000000-0000-0000-0000-000000000000/status/", {"status": "Ready"}, format="json"
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["code"], "not_found")


class OrderPaymentTests(OrderApiTestCase):
    def update_payment(self, order, **payload):
        return self.client.patch(f"/api/v1/orders/{order.id}/payment/", payload, format="json")

    def test_paid_and_unpaid_set_paid_amount(self):
        order = self.make_order([(self.wash, 2, "100.00")])

        paid = self.update_payment(order, payment_status="paid")
        self.assertEqual(paid.status_code, 200)
        self.assertEqual(paid.data["payment_status"], PaymentStatus.PAID)
        self.assertEqual(paid.data["paid_amount"], "200.00")

        unpaid = self.update_payment(order, payment_status="Unpaid")
        self.assertEqual(unpaid.data["paid_amount"], "0.00")

    def test_partial_payment_bounds(self):
        order = self.make_order([(self.wash, 2, "100.00")])
        self.assertEqual(self.update_payment(order, payment_status="Partial").status_code, 400)
        self.assertEqual(self.update_payment(order, payment_status="Partial", paid_amount="200.00").status_code, 400)

        response = self.update_payment(order, payment_status="Partially Paid", paid_amount="80.00")
        self.assertEqual(response.status_code, 200)
        order.refresh_from_db()
        self.assertEqual(order.payment_status, PaymentStatus.PARTIAL)
        self.assertEqual(order.paid_amount, Decimal("80.00"))

    def test_cancelled_orders_reject_payment_updates(self):
        order = self.make_order([(self.wash, 1, "100.00")], status=OrderStatus.CANCELLED)
        self.assertEqual(self.update_payment(order, payment_status="Paid").status_code, 400)

    def test_unknown_payment_status_is_rejected(self):
        order = self.make_order([(self.wash, 1, "100.00")])
        self.assertEqual(self.update_payment(order, payment_status="Refunded").status_code, 400)


class OrderEditTests(OrderApiTestCase):
    def edit(self, order, details):
        return self.client.put(f"/api/v1/orders/{order.id}/edit/", {"updatedDetails": details}, format="json")

    def test_edit_down_to_paid_amount_marks_order_paid(self):
        order = self.make_order(
            [(self.wash, 5, "100.00"), (self.dry, 2, "100.00")],
            payment_status=PaymentStatus.PARTIAL,
            paid="500.00",
        )
        response = self.edit(
            order,
            [
                {"service_id": str(self.wash.id), "quantity": 5, "unit_price": "100.00"},
                {"service_id": str(self.dry.id), "quantity": 0, "unit_price": "100.00"},
            ],
        )
        self.assertEqual(response.status_code, 200)
        order.refresh_from_db()
        self.assertEqual(order.total_amount, Decimal("500.00"))
        self.assertEqual(order.payment_status, PaymentStatus.PAID)
        self.assertFalse(order.details.filter(service=self.dry).exists())
        self.assertTrue(AuditLog.objects.for_entity("order", order.id).filter(action="order.edit").exists())

    def test_edit_keeps_lines_missing_from_payload_and_recomputes_total(self):
        order = self.make_order([(self.wash, 1, "100.00"), (self.detergent, 1, "20.00")])
        response = self.edit(order, [{"service_id": str(self.detergent.id), "quantity": 3, "unit_price": "15.00"}])
        self.assertEqual(response.status_code, 200)

        order.refresh_from_db()
        self.assertEqual(order.details.count(), 2)
        self.assertEqual(order.total_amount, Decimal("145.00"))
        self.assertEqual(order.total_amount, sum(detail.line_total for detail in order.details.all()))
        self.assertEqual(response.data["order"]["calculated_total"], "145.00")

    def test_raising_total_of_paid_order_makes_it_partial(self):
        order = self.make_order([(self.wash, 2, "100.00")], payment_status=PaymentStatus.PAID, paid="200.00")
        response = self.edit(order, [{"service_id": str(self.wash.id), "quantity": 3, "unit_price": "100.00"}])
        self.assertEqual(response.status_code, 200)
        order.refresh_from_db()
        self.assertEqual(order.payment_status, PaymentStatus.PARTIAL)
        self.assertEqual(order.total_amount, Decimal("300.00"))

    def test_edit_only_allowed_in_stand_by(self):
        order = self.make_order([(self.wash, 1, "100.00")], status=OrderStatus.PROCESSING)
        response = self.edit(order, [{"service_id": str(self.wash.id), "quantity": 2, "unit_price": "100.00"}])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["detail"], "Can only edit orders in Stand By status.")

    def test_edit_rejects_bad_lines(self):
        order = self.make_order([(self.wash, 1, "100.00")])
        negative = self.edit(order, [{"service_id": str(self.wash.id), "quantity": -1, "unit_price": "100.00"}])
        self.assertEqual(negative.status_code, 400)

        duplicate = self.edit(
            order,
            [
                {"service_id": str(self.wash.id), "quantity": 1, "unit_price": "100.00"},
                {"service_id": str(self.wash.id), "quantity": 2, "unit_price": "100.00"},
            ],
        )
        self.assertEqual(duplicate.status_code, 400)

        unknown = self.edit(
            order, [{"service_id": "00000000-0000-0000-0000-000000000000", "quantity": 1, "unit_price": "1.00"}]
        )
        self.assertEqual(unknown.status_code, 400)

        order.refresh_from_db()
        self.assertEqual(order.total_amount, Decimal("100.00"))


class OrderListTests(OrderApiTestCase):
    def test_list_filters_search_and_envelope(self):
        customer = Customer.objects.create(phone="09181234567", name="Jose Cruz")
        booked = self.make_order(
            [(self.wash, 1, "100.00")], source=OrderSource.BOOKING, customer=customer, guest_name=""
        )
        walk_in = self.make_order([(self.dry, 2, "100.00")], guest_name="Ana Reyes")
        self.make_order([(self.dry, 1, "100.00")], status=OrderStatus.COMPLETED, payment_status=PaymentStatus.PAID, paid="100")

        response = self.client.get("/api/v1/orders/?notStatus=Completed,Cancelled&limit=10")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["total"], 2)
        self.assertEqual(response.data["totalPages"], 1)

        by_source = self.client.get("/api/v1/orders/?source=walk-in&status=stand%20by")
        self.assertEqual([row["id"] for row in by_source.data["data"]], [str(walk_in.id)])

        by_customer = self.client.get("/api/v1/orders/?search=0918")
        row = by_customer.data["data"][0]
        self.assertEqual(row["id"], str(booked.id))
        self.assertEqual(row["customer_name"], "Jose Cruz")
        self.assertEqual(row["customer_phone"], "09181234567")
        self.assertEqual(row["details"][0]["service_name"], "Wash")

        paid = self.client.get("/api/v1/orders/?payment_status=paid")
        self.assertEqual(paid.data["total"], 1)

    def test_retrieve_returns_single_order(self):
        order = self.make_order([(self.wash, 2, "100.00")])
        response = self.client.get(f"/api/v1/orders/{order.id}/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["order_code"], order.order_code)
        self.assertEqual(response.data["calculated_total"], "200.00")
        self.assertEqual(response.data["details"][0]["line_total"], "200.00")

    def test_page_past_the_end_returns_empty_envelope(self):
        self.make_order([(self.wash, 1, "100.00")])
        self.make_order([(self.dry, 1, "100.00")])

        response = self.client.get("/api/v1/orders/?page=5&limit=10")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.data, {"page": 5, "limit": 10, "total": 2, "totalPages": 1, "data": []}
        )


class OrderAdminTests(OrderApiTestCase):
    @override_settings(
        STORAGES={
            "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
            "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
        }
    )
    def test_orders_cannot_be_added_from_admin(self):
        owner = User.objects.create_superuser(username="owner", email="owner@example.com", password="owner123")
        self.client.force_login(owner)

        self.assertEqual(self.client.get("/admin/orders/order/add/").status_code, 403)
        self.assertEqual(self.client.get("/admin/orders/order/").status_code, 200)
