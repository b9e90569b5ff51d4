"""Validation helpers."""

def ensure(condition: bool, message: str) -> None:
    if not condition:
        raise ValueError(message)


def non_negative(value, name: str) -> float:
    """Coerce ``value`` to ``float`` and reject negatives."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    ensure(number >= 0, f"{name} must be >= 0, got {number}")
    return number
