from decimal import Decimal

from app.utils.decimal_utils import to_weight


def chargeable_weight(actual_weight, volumetric_weight) -> Decimal:
    """max(actual, volumetric); used for every bag, run and report total."""
    return max(to_weight(actual_weight), to_weight(volumetric_weight))
