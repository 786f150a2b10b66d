"""Formatting utilities for currency and text display."""

from __future__ import annotations

import math
from typing import Union

CURRENCY_SYMBOL = "€"


def format_currency(amount: Union[float, int], include_sign: bool = True) -> str:
    """Format a euro amount with thousands separators.

    Args:
        amount: The amount to format
        include_sign: Whether to include the euro sign

    Returns:
        Formatted currency string (e.g., "€1,234.56" or "1,234.56");
        negative amounts put the minus before the sign ("-€42.00")

    Example:
        >>> format_currency(1234.56)
        '€1,234.56'
        >>> format_currency(-42, include_sign=False)
        '-42.00'
    """
    value = float(amount)
    formatted = f"{abs(value):,.2f}"
    prefix = "-" if value < 0 and formatted.strip("0.,") else ""
    return f"{prefix}{CURRENCY_SYMBOL if include_sign else ''}{formatted}"


def escape_currency_for_markdown(amount: float) -> str:
    """Format an amount for ``st.markdown`` without triggering LaTeX.

    Streamlit treats ``$`` as a math delimiter; the euro sign is safe but a
    leading ``-`` at the start of a line would render as a bullet.

    Example:
        >>> escape_currency_for_markdown(-5)
        '\\\\-€5.00'
    """
    formatted = format_currency(amount)
    return "\\" + formatted if formatted.startswith("-") else formatted


def format_percent(value: float, decimals: int = 0) -> str:
    """Format a percentage value such as ``42.5`` as ``"42%"``."""
    return f"{value:.{decimals}f}%"


def format_months(months: float) -> str:
    """Human readable months-to-target, ``"never"`` for an infinite horizon."""
    if math.isinf(months):
        return "never"
    months = int(months)
    if months == 0:
        return "reached"
    return f"{months} month" if months == 1 else f"{months} months"
