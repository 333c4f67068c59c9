"""Display formatting for prices, values and percentages."""
from __future__ import annotations

from datetime import datetime


def format_currency(value: float) -> str:
    """``1234.5`` -> ``$1,234.50``."""
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_price(value: float) -> str:
    """Like :func:`format_currency`, with 6 decimals for sub-cent prices."""
    if value < 0.01:
        return f"${value:.6f}"
    return format_currency(value)


def format_percentage(value: float) -> str:
    # -0.0 renders as +0.00%
    return f"{'+' if value >= 0 else '-'}{abs(value):.2f}%"


def format_time(moment: datetime) -> str:
    return moment.strftime("%H:%M:%S")
