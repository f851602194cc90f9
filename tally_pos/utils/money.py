# tally_pos/utils/money.py
from decimal import Decimal, ROUND_HALF_UP

ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    #str() first so floats like 0.1 don't drag binary noise into the amount
    return Decimal(str(value))


def format_currency(value) -> str:
    """Rupiah with dot thousands separator and no decimals, e.g. ``Rp 45.000``."""
    amount = to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    digits = f"{abs(amount):,}".replace(",", ".")
    return f"{sign}Rp {digits}"
