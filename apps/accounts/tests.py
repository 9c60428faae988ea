from io import StringIO

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management import CommandError, call_command
from rest_framework.test import APITestCase

from apps.accounts.models import UserRole
from apps.common.permissions import resolve_role

User = get_user_model()


class AccountsTests(APITestCase):
    def test_jwt_login_valid_and_invalid(self):
        User.objects.create_user(username="staff", password="staff123")

        ok = self.client.post("/api/v1/auth/token/", {"username": "staff", "password": "staff123"}, format="json")
        self.assertEqual(ok.status_code, 200)
        self.assertIn("access", ok.data)
        self.assertIn("refresh", ok.data)

        bad = self.client.post("/api/v1/auth/token/", {"username": "staff", "password": "nope"}, format="json")
        self.assertEqual(bad.status_code, 401)

    def test_new_users_default_to_staff_and_groups_override_role(self):
        user = User.objects.create_user(username="clerk", password="clerk123")
        self.assertEqual(user.role, UserRole.STAFF)
        self.assertEqual(resolve_role(user), UserRole.STAFF)

        user.groups.add(Group.objects.create(name=UserRole.ADMIN))
        self.assertEqual(resolve_role(user), UserRole.ADMIN)

    def test_seed_roles_creates_groups_and_admin(self):
        call_command("seed_roles", "--admin-username", "owner", "--admin-password", "owner123", stdout=StringIO())
        call_command("seed_roles", stdout=StringIO())

        self.assertEqual(set(Group.objects.values_list("name", flat=True)), set(UserRole.values))
        owner = User.objects.get(username="owner")
        self.assertEqual(owner.role, UserRole.ADMIN)
        self.assertTrue(owner.groups.filter(name=UserRole.ADMIN).exists())

    def test_seed_roles_requires_password_with_username(self):
        with self.assertRaises(CommandError):
            call_command("seed_roles", "--admin-username", "owner", stdout=StringIO())
