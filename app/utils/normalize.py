def normalize_ref(value: str | None) -> str:
    """AWB, bag, run and club numbers are matched trimmed and upper-cased."""
    return (value or "").strip().upper()
