"""Display formatting for dashboard numbers and addresses.

Every formatter renders a missing value as ``-``.
"""

from __future__ import annotations

MISSING = "-"


def truncate_address(address: str, start: int = 6, end: int = 4) -> str:
    """Shorten an address to ``AbCdEf...wxyz`` form."""
    if len(address) <= start + end:
        return address
    return f"{address[:start]}...{address[-end:]}"


def format_number(value: float | None, decimals: int = 2) -> str:
    """Dollar amount with B/M/K suffixes."""
    if value is None:
        return MISSING
    magnitude = abs(value)
    if magnitude >= 1e9:
        return f"${value / 1e9:.{decimals}f}B"
    if magnitude >= 1e6:
        return f"${value / 1e6:.{decimals}f}M"
    if magnitude >= 1e3:
        return f"${value / 1e3:.{decimals}f}K"
    return f"${value:.{decimals}f}"


def format_price(price: float | None) -> str:
    """Price with precision scaled to its magnitude."""
    if price is None:
        return MISSING
    if price < 0.01:
        return f"${price:.6f}"
    if price < 1:
        return f"${price:.4f}"
    if price >= 1000:
        text = f"{price:,.2f}".rstrip("0").rstrip(".")
        return f"${text}"
    return f"${price:.2f}"


def format_percent(value: float | None) -> str:
    """Signed percentage with two decimals, e.g. ``+3.25%``."""
    if value is None:
        return MISSING
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.2f}%"


def format_amount(amount: float | None) -> str:
    """Token amount with thousands separators and no decimals."""
    if amount is None:
        return MISSING
    return f"{amount:,.0f}"


def format_compact_amount(value: float | None) -> str:
    """Compact amount: millions above 100k, thousands above 10k."""
    if value is None:
        return MISSING
    magnitude = abs(value)
    if magnitude >= 100_000:
        return f"{value / 1_000_000:.2f}M"
    if magnitude >= 10_000:
        return f"{value / 1_000:.2f}k"
    return format_amount(value)


def format_signed_amount(value: float | None) -> str:
    """Compact amount with an explicit sign for non-negative values."""
    if value is None:
        return MISSING
    sign = "+" if value >= 0 else ""
    return f"{sign}{format_compact_amount(value)}"
