from django.contrib.auth import get_user_model
from django.test import SimpleTestCase
from rest_framework.test import APITestCase

from apps.customers.models import Customer, is_valid_mobile, normalize_phone

User = get_user_model()


class PhoneHelpersTests(SimpleTestCase):
    def test_normalize_phone_keeps_digits_only(self):
        self.assertEqual(normalize_phone(" 0917-123 4567 "), "09171234567")

    def test_is_valid_mobile_accepts_local_mobile_numbers_only(self):
        self.assertTrue(is_valid_mobile("09171234567"))
        self.assertTrue(is_valid_mobile("0917 123 4567"))
        self.assertFalse(is_valid_mobile("9171234567"))
        self.assertFalse(is_valid_mobile("0917123456"))
        self.assertFalse(is_valid_mobile("+639171234567"))


class CustomerTests(APITestCase):
    def setUp(self):
        self.staff = User.objects.create_user(username="staff", password="staff123", role="STAFF")

    def auth_as_staff(self):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": "staff", "password": "staff123"},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def test_find_or_create_by_phone_never_overwrites_existing_customer(self):
        customer, created = Customer.find_or_create_by_phone(
            "09171234567", name="Maria Santos", email="maria@example.com", address="Cebu"
        )
        self.assertTrue(created)

        again, created_again = Customer.find_or_create_by_phone(
            "0917 123 4567", name="Someone Else", email="other@example.com", address="Davao"
        )
        self.assertFalse(created_again)
        self.assertEqual(again.id, customer.id)
        again.refresh_from_db()
        self.assertEqual(again.name, "Maria Santos")
        self.assertEqual(again.address, "Cebu")
        self.assertEqual(Customer.objects.count(), 1)

    def test_customer_list_requires_authentication(self):
        response = self.client.get("/api/v1/customers/")
        self.assertEqual(response.status_code, 401)

    def test_customer_list_filters_by_search_and_phone(self):
        Customer.objects.create(phone="09171234567", name="Maria Santos")
        Customer.objects.create(phone="09181234567", name="Jose Cruz")
        self.auth_as_staff()

        by_name = self.client.get("/api/v1/customers/?q=maria")
        self.assertEqual(by_name.status_code, 200)
        self.assertEqual([row["name"] for row in by_name.data["results"]], ["Maria Santos"])

        by_phone = self.client.get("/api/v1/customers/?phone=0918-123-4567")
        self.assertEqual([row["name"] for row in by_phone.data["results"]], ["Jose Cruz"])
