import importlib.util
import os
from unittest import mock

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError
from django.test import SimpleTestCase
from rest_framework.exceptions import NotFound, ValidationError

from apps.common.exceptions import Conflict, api_exception_handler
from apps.common.pricing import compute_total, line_total


class ExceptionEnvelopeTests(SimpleTestCase):
    def test_field_errors_surface_first_message_as_detail(self):
        response = api_exception_handler(ValidationError({"paid_amount": "paid_amount is required"}), {})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "invalid")
        self.assertEqual(response.data["detail"], "paid_amount is required")
        self.assertIn("paid_amount", response.data["fields"])

    def test_not_found_and_conflict_keep_their_status(self):
        not_found = api_exception_handler(NotFound("Order not found."), {})
        self.assertEqual(not_found.status_code, 404)
        self.assertEqual(not_found.data, {"code": "not_found", "detail": "Order not found.", "fields": {}})

        conflict = api_exception_handler(Conflict("An order already exists for this booking."), {})
        self.assertEqual(conflict.status_code, 409)
        self.assertEqual(conflict.data["code"], "conflict")

    def test_database_errors_become_transaction_errors(self):
        with self.assertLogs("apps.common.exceptions", level="ERROR"):
            response = api_exception_handler(DatabaseError("deadlock"), {"view": None})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data["code"], "transaction_error")
        self.assertEqual(response.data["detail"], "Database error. No changes were saved.")


class PricingTests(SimpleTestCase):
    def test_totals_are_quantised_to_cents(self):
        self.assertEqual(str(line_total(3, "19.999")), "60.00")
        self.assertEqual(str(compute_total([])), "0.00")
        self.assertEqual(
            str(compute_total([{"quantity": 2, "unit_price": "65.00"}, {"quantity": 1, "unit_price": "20.50"}])),
            "150.50",
        )


class SettingsDefaultsTests(SimpleTestCase):
    def load_settings(self, **environment):
        path = settings.BASE_DIR / "config" / "settings.py"
        with mock.patch.dict(os.environ, environment, clear=True), mock.patch("environ.Env.read_env"):
            module_spec = importlib.util.spec_from_file_location("config_settings_check", path)
            module = importlib.util.module_from_spec(module_spec)
            module_spec.loader.exec_module(module)
        return module

    def test_debug_is_off_unless_enabled(self):
        self.assertFalse(self.load_settings(DJANGO_SECRET_KEY="a-real-secret-key-for-this-deploy").DEBUG)
        self.assertTrue(self.load_settings(DJANGO_DEBUG="True").DEBUG)

    def test_unset_debug_with_placeholder_key_refuses_to_start(self):
        with self.assertRaises(ImproperlyConfigured):
            self.load_settings()
