"""Display formatting for amounts and percentages (CLI and dashboard)."""

from __future__ import annotations

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "CAD": "CA$", "AUD": "A$"}


def format_currency(amount: float, currency: str = "USD") -> str:
    """Format an amount like "$1,234.5" or "-$20"; at most two decimals."""
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    sign = "-" if amount < 0 else ""
    text = f"{abs(amount):,.2f}".rstrip("0").rstrip(".")
    return f"{sign}{symbol}{text}"


def format_percentage(value: float | None, decimals: int = 1) -> str:
    """Format a percentage; None (no spend) renders as "n/a"."""
    if value is None:
        return "n/a"
    return f"{value:.{decimals}f}%"
