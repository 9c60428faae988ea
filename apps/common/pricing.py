from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")


def to_money(value):
    return Decimal(str(value if value is not None else 0)).quantize(CENTS, rounding=ROUND_HALF_UP)


def line_total(quantity, unit_price):
    return to_money(Decimal(str(quantity or 0)) * to_money(unit_price))


def compute_total(lines):
    """Sum ``quantity * unit_price`` over detail rows or plain mappings."""
    total = Decimal("0.00")
    for line in lines:
        if isinstance(line, dict):
            total += line_total(line.get("quantity"), line.get("unit_price"))
        else:
            total += line_total(line.quantity, line.unit_price)
    return to_money(total)
