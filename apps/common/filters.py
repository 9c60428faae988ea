from django.utils.dateparse import parse_date
from rest_framework.exceptions import ValidationError


def clean_param(value):
    if value is None:
        return None
    return str(value).strip().strip("'\"").strip() or None


def split_csv(value):
    value = clean_param(value)
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def date_param(params, name):
    value = clean_param(params.get(name))
    if not value:
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError({name: "Use the YYYY-MM-DD format."})
    return parsed


def filter_created_range(queryset, params, field="created_at"):
    start = date_param(params, "from")
    end = date_param(params, "to")
    if start:
        queryset = queryset.filter(**{f"{field}__date__gte": start})
    if end:
        queryset = queryset.filter(**{f"{field}__date__lte": end})
    return queryset


def filter_status(queryset, params, choices, field="status"):
    """Apply ``status`` (exact, case-insensitive) or the ``notStatus`` exclusion list."""
    status = clean_param(params.get("status"))
    if status and status.lower() != "all":
        return queryset.filter(**{field: match_choice(status, choices, field)})
    excluded = [match_choice(value, choices, field) for value in split_csv(params.get("notStatus"))]
    if excluded:
        queryset = queryset.exclude(**{f"{field}__in": excluded})
    return queryset


def match_choice(value, choices, field="status"):
    for choice in choices.values:
        if choice.lower() == str(value).strip().lower():
            return choice
    raise ValidationError({field: f"Unknown {field}: {value}"})


def apply_ordering(queryset, params, field="created_at"):
    direction = (clean_param(params.get("order")) or "desc").lower()
    if direction == "asc":
        return queryset.order_by(field, "id")
    return queryset.order_by(f"-{field}", "-id")
