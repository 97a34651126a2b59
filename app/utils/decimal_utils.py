# app/utils/decimal_utils.py
from decimal import Decimal, ROUND_HALF_UP

TWOPLACES = Decimal("0.01")
THREEPLACES = Decimal("0.001")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if isinstance(value, Decimal):
        return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    return Decimal(str(value)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def to_weight(value) -> Decimal:
    if value is None:
        return Decimal("0.000")
    return Decimal(str(value)).quantize(THREEPLACES, rounding=ROUND_HALF_UP)


def round_rupee(value: Decimal) -> Decimal:
    """Round half-up to a whole rupee, kept as a 2dp Decimal."""
    return to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP).quantize(TWOPLACES)


def compute_round_off(raw_total) -> tuple[Decimal, Decimal]:
    # round first, then derive the off-by amount from the rounded figure
    raw_total = to_decimal(raw_total)
    grand_total = round_rupee(raw_total)
    round_off = (grand_total - raw_total).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    return grand_total, round_off


def compute_total(basic, discount, misc, fuel, cgst, sgst, igst) -> Decimal:
    return to_decimal(
        to_decimal(basic)
        - to_decimal(discount)
        + to_decimal(misc)
        + to_decimal(fuel)
        + to_decimal(cgst)
        + to_decimal(sgst)
        + to_decimal(igst)
    )
