from rest_framework.exceptions import ValidationError

from apps.catalog.models import Service


def active_services_by_name(names):
    """Resolve catalog names to active services, keyed by name.

    Every requested name must match an active service; unknown or retired
    names fail the whole request instead of being dropped silently.
    """
    wanted = [str(name).strip() for name in names if str(name or "").strip()]
    if not wanted:
        return {}
    services = {service.name: service for service in Service.objects.filter(name__in=wanted, is_active=True)}
    missing = sorted({name for name in wanted if name not in services})
    if missing:
        raise ValidationError({"services": f"Unknown or inactive services: {', '.join(missing)}"})
    return services


def selection_lines(*, load=1, promo=None, main_services=None, supplies=None):
    """Turn a booking/walk-in service selection into ``[(service, quantity)]``.

    The promo bundle or the main services are charged per load; supplies
    carry their own quantity and are skipped when the quantity is 0.
    """
    load = int(load or 1)
    base_names = [promo] if promo else list(main_services or [])
    picked_supplies = [(supply["name"], int(supply.get("quantity") or 0)) for supply in supplies or []]
    picked_supplies = [(name, quantity) for name, quantity in picked_supplies if quantity > 0]

    services = active_services_by_name(base_names + [name for name, _ in picked_supplies])

    quantities = {}
    for name in base_names:
        service = services[str(name).strip()]
        quantities[service] = quantities.get(service, 0) + load
    for name, quantity in picked_supplies:
        service = services[str(name).strip()]
        quantities[service] = quantities.get(service, 0) + quantity
    return list(quantities.items())
