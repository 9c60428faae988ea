from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.catalog.models import Service, ServiceType
from apps.inventory.models import InventoryItem, PackageInclude
from apps.orders.models import Order, OrderDetail, OrderSource

User = get_user_model()


class ServiceCatalogTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="ADMIN")
        self.staff = User.objects.create_user(username="staff", password="staff123", role="STAFF")

    def auth_as(self, username, password):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def test_service_create_update_delete_are_audited(self):
        self.auth_as("admin", "admin123")
        created = self.client.post(
            "/api/v1/services/",
            {"name": "Wash", "price": "65.00", "service_type": ServiceType.MAIN_SERVICE},
            format="json",
        )
        self.assertEqual(created.status_code, 201)
        service_id = created.data["id"]
        self.assertEqual(created.data["unit_type"], "load")

        updated = self.client.patch(f"/api/v1/services/{service_id}/", {"price": "70.00"}, format="json")
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.data["price"], "70.00")

        deleted = self.client.delete(f"/api/v1/services/{service_id}/")
        self.assertEqual(deleted.status_code, 204)
        self.assertFalse(Service.objects.filter(id=service_id).exists())

        actions = set(AuditLog.objects.filter(entity_id=service_id).values_list("action", flat=True))
        self.assertEqual(actions, {"catalog.service.create", "catalog.service.update", "catalog.service.delete"})

    def test_service_referenced_by_orders_is_deactivated_instead_of_deleted(self):
        service = Service.objects.create(name="Dry", price=Decimal("65.00"))
        order = Order.objects.create(order_code="ORD010124001", guest_name="Ana", source=OrderSource.WALK_IN)
        OrderDetail.objects.create(order=order, service=service, quantity=1, unit_price=service.price)

        self.auth_as("admin", "admin123")
        response = self.client.delete(f"/api/v1/services/{service.id}/")
        self.assertEqual(response.status_code, 204)

        service.refresh_from_db()
        self.assertFalse(service.is_active)
        self.assertTrue(AuditLog.objects.filter(action="catalog.service.deactivate", entity_id=str(service.id)).exists())

    def test_staff_can_list_but_not_manage_services(self):
        Service.objects.create(name="Fold", price=Decimal("30.00"))
        self.auth_as("staff", "staff123")

        listed = self.client.get("/api/v1/services/?q=fol")
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.data["count"], 1)

        created = self.client.post("/api/v1/services/", {"name": "Iron", "price": "40.00"}, format="json")
        self.assertEqual(created.status_code, 403)
        self.assertEqual(created.data["code"], "permission_denied")

    def test_negative_price_is_rejected(self):
        self.auth_as("admin", "admin123")
        response = self.client.post("/api/v1/services/", {"name": "Iron", "price": "-1.00"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("price", response.data["fields"])

    def test_active_services_are_public_and_skip_retired_entries(self):
        Service.objects.create(name="Wash", price=Decimal("65.00"))
        Service.objects.create(name="Old Promo", price=Decimal("99.00"), is_active=False)

        response = self.client.get("/api/v1/services/active/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["name"] for row in response.data], ["Wash"])
        self.assertEqual(response.data[0]["unit_type"], "load")


class SeedServicesCommandTests(APITestCase):
    def test_seed_services_is_idempotent(self):
        call_command("seed_services", stdout=StringIO())
        call_command("seed_services", stdout=StringIO())

        self.assertEqual(Service.objects.count(), 6)
        self.assertEqual(InventoryItem.objects.count(), 2)
        bundle = Service.objects.get(name="Full Service Package")
        self.assertEqual(bundle.service_type, ServiceType.BUNDLE_PACKAGE)
        self.assertEqual(PackageInclude.objects.filter(bundle=bundle).count(), 2)
        self.assertEqual(InventoryItem.objects.get(name="Detergent Sachet").service.name, "Detergent")
