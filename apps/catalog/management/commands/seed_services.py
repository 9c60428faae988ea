from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.catalog.models import Service, ServiceType
from apps.inventory.models import InventoryItem, PackageInclude

SERVICES = [
    ("Wash", "65.00", ServiceType.MAIN_SERVICE, "load", "Machine wash, up to 8 kg"),
    ("Dry", "65.00", ServiceType.MAIN_SERVICE, "load", "Machine dry, up to 8 kg"),
    ("Fold", "30.00", ServiceType.MAIN_SERVICE, "load", "Hand fold"),
    ("Detergent", "20.00", ServiceType.ADD_ON_SUPPLY, "sachet", ""),
    ("Fabric Conditioner", "15.00", ServiceType.ADD_ON_SUPPLY, "sachet", ""),
    ("Full Service Package", "180.00", ServiceType.BUNDLE_PACKAGE, "load", "Wash, dry and fold with supplies"),
]

# Inventory item name -> (add-on supply it backs, starting quantity, unit)
INVENTORY = {
    "Detergent Sachet": ("Detergent", "100", "sachet"),
    "Fabric Conditioner Sachet": ("Fabric Conditioner", "100", "sachet"),
}

BUNDLE_INCLUDES = {
    "Full Service Package": [("Detergent Sachet", "1"), ("Fabric Conditioner Sachet", "1")],
}


class Command(BaseCommand):
    help = "Seed a starter laundry catalog with its inventory items and bundle mappings."

    @transaction.atomic
    def handle(self, *args, **options):
        created_services = 0
        services = {}
        for name, price, service_type, unit_type, description in SERVICES:
            service, created = Service.objects.get_or_create(
                name=name,
                defaults={
                    "price": Decimal(price),
                    "service_type": service_type,
                    "unit_type": unit_type,
                    "description": description,
                },
            )
            services[name] = service
            created_services += int(created)

        created_items = 0
        items = {}
        for name, (service_name, quantity, unit) in INVENTORY.items():
            item, created = InventoryItem.objects.get_or_create(
                name=name,
                defaults={"service": services[service_name], "quantity": Decimal(quantity), "unit": unit},
            )
            items[name] = item
            created_items += int(created)

        created_includes = 0
        for bundle_name, includes in BUNDLE_INCLUDES.items():
            for item_name, quantity_used in includes:
                _, created = PackageInclude.objects.get_or_create(
                    bundle=services[bundle_name],
                    inventory_item=items[item_name],
                    defaults={"quantity_used": Decimal(quantity_used)},
                )
                created_includes += int(created)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed services completed. "
                f"services_created={created_services} items_created={created_items} includes_created={created_includes}"
            )
        )
