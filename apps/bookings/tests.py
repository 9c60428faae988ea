from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.bookings.models import Booking, BookingDetail, BookingStatus
from apps.bookings.services import booking_total
from apps.catalog.models import Service, ServiceType
from apps.customers.models import Customer
from apps.orders.models import Order, OrderSource, OrderStatus, PaymentStatus

User = get_user_model()


class BookingFlowTests(APITestCase):
    def setUp(self):
        self.staff = User.objects.create_user(username="staff", password="staff123", role="STAFF")
        self.wash = Service.objects.create(name="Wash", price=Decimal("65.00"))
        self.dry = Service.objects.create(name="Dry", price=Decimal("65.00"))
        self.detergent = Service.objects.create(
            name="Detergent", price=Decimal("20.00"), service_type=ServiceType.ADD_ON_SUPPLY
        )
        self.bundle = Service.objects.create(
            name="Full Service Package", price=Decimal("180.00"), service_type=ServiceType.BUNDLE_PACKAGE
        )

    def auth_as_staff(self):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": "staff", "password": "staff123"},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def booking_payload(self, **overrides):
        payload = {
            "name": "Maria Santos",
            "phone_number": "09171234567",
            "email": "maria@example.com",
            "address": "Cebu City",
            "load": 2,
            "main_services": ["Wash", "Dry"],
            "supplies": [{"name": "Detergent", "quantity": 3}],
            "pickup_date": "2024-03-06",
            "payment_type": "GCash",
            "special_instruction": "Separate whites",
        }
        payload.update(overrides)
        return {key: value for key, value in payload.items() if value is not None}

    def make_booking(self):
        customer = Customer.objects.create(phone="09181234567", name="Jose Cruz")
        booking = Booking.objects.create(customer=customer, payment_type="Cash")
        BookingDetail.objects.create(booking=booking, service=self.wash, quantity=2, unit_price=Decimal("65.00"))
        BookingDetail.objects.create(booking=booking, service=self.detergent, quantity=1, unit_price=Decimal("20.00"))
        return booking

    def test_public_booking_creates_customer_and_priced_details(self):
        response = self.client.post("/api/v1/bookings/add/", self.booking_payload(), format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["message"], "Booking added successfully")

        booking = Booking.objects.get(id=response.data["bookingId"])
        self.assertEqual(booking.status, BookingStatus.PENDING)
        self.assertEqual(booking.customer.name, "Maria Santos")
        quantities = {detail.service.name: detail.quantity for detail in booking.details.all()}
        self.assertEqual(quantities, {"Wash": 2, "Dry": 2, "Detergent": 3})
        self.assertEqual(booking_total(booking), Decimal("320.00"))
        self.assertEqual(response.data["booking"]["total_amount"], "320.00")

    def test_repeat_booking_reuses_customer_without_updating_it(self):
        self.client.post("/api/v1/bookings/add/", self.booking_payload(), format="json")
        response = self.client.post(
            "/api/v1/bookings/add/",
            self.booking_payload(name="Another Name", address="Manila", main_services=None, promo="Full Service Package"),
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(Customer.objects.count(), 1)
        customer = Customer.objects.get()
        self.assertEqual(customer.name, "Maria Santos")
        self.assertEqual(customer.address, "Cebu City")

        booking = Booking.objects.get(id=response.data["bookingId"])
        bundle_line = booking.details.get(service=self.bundle)
        self.assertEqual(bundle_line.quantity, 2)
        self.assertEqual(bundle_line.unit_price, Decimal("180.00"))

    def test_supplies_with_zero_quantity_are_skipped(self):
        payload = self.booking_payload(supplies=[{"name": "Detergent", "quantity": 0}])
        response = self.client.post("/api/v1/bookings/add/", payload, format="json")
        self.assertEqual(response.status_code, 201)
        booking = Booking.objects.get(id=response.data["bookingId"])
        self.assertFalse(booking.details.filter(service=self.detergent).exists())

    def test_booking_rejects_unknown_services_and_bad_phone(self):
        unknown = self.client.post(
            "/api/v1/bookings/add/", self.booking_payload(main_services=["Wash", "Steam"]), format="json"
        )
        self.assertEqual(unknown.status_code, 400)
        self.assertIn("Steam", unknown.data["detail"])
        self.assertFalse(Booking.objects.exists())
        self.assertFalse(Customer.objects.exists())

        bad_phone = self.client.post("/api/v1/bookings/add/", self.booking_payload(phone_number="12345"), format="json")
        self.assertEqual(bad_phone.status_code, 400)
        self.assertIn("phone_number", bad_phone.data["fields"])

    def test_booking_requires_exactly_one_of_promo_or_main_services(self):
        both = self.client.post(
            "/api/v1/bookings/add/", self.booking_payload(promo="Full Service Package"), format="json"
        )
        self.assertEqual(both.status_code, 400)

        neither = self.client.post("/api/v1/bookings/add/", self.booking_payload(main_services=[]), format="json")
        self.assertEqual(neither.status_code, 400)

    def test_accept_creates_exactly_one_order_with_copied_lines(self):
        booking = self.make_booking()
        self.auth_as_staff()

        response = self.client.post(f"/api/v1/bookings/accept/{booking.id}/")
        self.assertEqual(response.status_code, 200)

        order = Order.objects.get(booking=booking)
        self.assertEqual(response.data["orderId"], str(order.id))
        self.assertEqual(response.data["orderCode"], order.order_code)
        self.assertEqual(order.source, OrderSource.BOOKING)
        self.assertEqual(order.status, OrderStatus.STAND_BY)
        self.assertEqual(order.payment_status, PaymentStatus.UNPAID)
        self.assertEqual(order.customer, booking.customer)
        self.assertEqual(order.total_amount, Decimal("150.00"))
        self.assertEqual(order.details.count(), 2)

        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.ACCEPTED)
        self.assertIsNotNone(booking.decided_at)
        self.assertTrue(AuditLog.objects.for_entity("booking", booking.id).filter(action="booking.accept").exists())

    def test_second_acceptance_conflicts_and_creates_nothing(self):
        booking = self.make_booking()
        self.auth_as_staff()
        self.client.post(f"/api/v1/bookings/accept/{booking.id}/")

        response = self.client.post(f"/api/v1/bookings/accept/{booking.id}/")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["code"], "conflict")
        self.assertEqual(Order.objects.filter(booking=booking).count(), 1)

    def test_accept_and_decline_missing_booking_return_404(self):
        self.auth_as_staff()
        missing = "00000000-0000-0000-0000-000000000000"
        self.assertEqual(self.client.post(f"/api/v1/bookings/accept/{missing}/").status_code, 404)
        self.assertEqual(self.client.post(f"/api/v1/bookings/decline/{missing}/").status_code, 404)

    def test_decline_is_terminal(self):
        booking = self.make_booking()
        self.auth_as_staff()

        declined = self.client.post(f"/api/v1/bookings/decline/{booking.id}/")
        self.assertEqual(declined.status_code, 200)
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.DECLINED)

        accept = self.client.post(f"/api/v1/bookings/accept/{booking.id}/")
        self.assertEqual(accept.status_code, 400)
        self.assertFalse(Order.objects.exists())

        again = self.client.post(f"/api/v1/bookings/decline/{booking.id}/")
        self.assertEqual(again.status_code, 400)

    def test_booking_actions_require_authentication(self):
        booking = self.make_booking()
        response = self.client.post(f"/api/v1/bookings/accept/{booking.id}/")
        self.assertEqual(response.status_code, 401)

    def test_booking_list_filters_and_paginates(self):
        pending = self.make_booking()
        other_customer = Customer.objects.create(phone="09191234567", name="Ana Reyes")
        declined = Booking.objects.create(customer=other_customer, status=BookingStatus.DECLINED)
        self.auth_as_staff()

        response = self.client.get("/api/v1/bookings/?status=pending&limit=5")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["page"], 1)
        self.assertEqual(response.data["limit"], 5)
        self.assertEqual(response.data["total"], 1)
        self.assertEqual(response.data["totalPages"], 1)
        row = response.data["data"][0]
        self.assertEqual(row["id"], str(pending.id))
        self.assertEqual(row["customer_name"], "Jose Cruz")
        self.assertEqual(row["total_amount"], "150.00")
        self.assertEqual(len(row["details"]), 2)

        excluded = self.client.get("/api/v1/bookings/?notStatus=Pending,Accepted")
        self.assertEqual([item["id"] for item in excluded.data["data"]], [str(declined.id)])

        searched = self.client.get("/api/v1/bookings/?search=ana")
        self.assertEqual(searched.data["total"], 1)

        invalid = self.client.get("/api/v1/bookings/?status=shipped")
        self.assertEqual(invalid.status_code, 400)
