import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Service",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(db_index=True, max_length=120, unique=True)),
                ("price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("unit_type", models.CharField(default="load", max_length=32)),
                (
                    "service_type",
                    models.CharField(
                        choices=[
                            ("main_service", "Main service"),
                            ("add_on_supply", "Add-on supply"),
                            ("bundle_package", "Bundle package"),
                        ],
                        default="main_service",
                        max_length=20,
                    ),
                ),
                ("description", models.CharField(blank=True, max_length=255)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["service_type", "name"],
                "indexes": [models.Index(fields=["service_type", "is_active"], name="service_type_active_idx")],
            },
        ),
    ]
