from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand, CommandError

from apps.accounts.models import UserRole


class Command(BaseCommand):
    help = "Create default user role groups and, optionally, a first admin account"

    def add_arguments(self, parser):
        parser.add_argument("--admin-username", default="")
        parser.add_argument("--admin-password", default="")

    def handle(self, *args, **options):
        for role in UserRole.values:
            group, created = Group.objects.get_or_create(name=role)
            action = "created" if created else "exists"
            self.stdout.write(self.style.SUCCESS(f"{group.name}: {action}"))

        username = options["admin_username"].strip()
        if not username:
            return
        if not options["admin_password"]:
            raise CommandError("--admin-password is required together with --admin-username")

        User = get_user_model()
        user, created = User.objects.get_or_create(username=username, defaults={"role": UserRole.ADMIN})
        user.role = UserRole.ADMIN
        user.is_staff = True
        user.set_password(options["admin_password"])
        user.save()
        user.groups.add(Group.objects.get(name=UserRole.ADMIN))
        action = "created" if created else "updated"
        self.stdout.write(self.style.SUCCESS(f"admin {user.username}: {action}"))
