"""
Validation utilities
"""
import re

_PRICE_JUNK = re.compile(r"[^0-9.]")


def normalize_price(value: str | None) -> str:
    """
    Keep only the numeric part of a price as typed by the user

    Prices are display strings, not amounts: nothing is rounded or converted.

    Example:
        >>> normalize_price("HK$1,200.50")
        "1200.50"
        >>> normalize_price("")
        "0"
    """
    if value is None:
        return "0"
    cleaned = _PRICE_JUNK.sub("", str(value))
    return cleaned or "0"


def format_price(currency: str | None, price: str | None) -> str:
    """Display price: currency tag followed by the numeric part, e.g. "$45.00"."""
    return f"{currency or '$'}{normalize_price(price)}"


def clean_optional_text(value: str | None) -> str | None:
    """Strip text; empty strings become None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None
