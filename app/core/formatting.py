"""Helpers for consistent user-facing number and date formatting (pt-BR)."""
from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

DISPLAY_DATE_FORMAT = "%d/%m/%Y"
DISPLAY_DATETIME_FORMAT = "%d/%m/%Y %H:%M"
_STRING_PARSE_PATTERNS: Iterable[str] = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
)


def _coerce_to_datetime(value: Any) -> datetime | None:
    """Attempt to normalise incoming date-like values to a datetime."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            if text.endswith("Z"):
                try:
                    return datetime.fromisoformat(text.replace("Z", "+00:00"))
                except ValueError:
                    pass
            for pattern in _STRING_PARSE_PATTERNS:
                try:
                    return datetime.strptime(text, pattern)
                except ValueError:
                    continue
        return None
    return None


def _coerce_to_decimal(value: Any) -> Decimal | None:
    if value in (None, ""):
        return Decimal("0")
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None


def format_display_date(value: Any) -> str:
    """Format a value as dd/mm/yyyy or return an empty string."""
    coerced = _coerce_to_datetime(value)
    if coerced is None:
        return "" if value in (None, "") else str(value)
    return coerced.strftime(DISPLAY_DATE_FORMAT)


def format_display_datetime(value: Any) -> str:
    """Format a value as dd/mm/yyyy hh:mm or return an empty string."""
    coerced = _coerce_to_datetime(value)
    if coerced is None:
        return "" if value in (None, "") else str(value)
    return coerced.strftime(DISPLAY_DATETIME_FORMAT)


def format_number(value: Any) -> str:
    """Two decimals with Brazilian separators: ``1.234,56``."""
    decimal_value = _coerce_to_decimal(value)
    if decimal_value is None:
        return str(value)
    decimal_value = decimal_value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = f"{decimal_value:,.2f}"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_currency(value: Any) -> str:
    """Format an amount in reais: ``R$ 1.234,56``."""
    formatted = format_number(value)
    if formatted.startswith("-"):
        return f"-R$ {formatted[1:]}"
    return f"R$ {formatted}"


def format_percentage(value: Any) -> str:
    decimal_value = _coerce_to_decimal(value)
    if decimal_value is None:
        return str(value)
    text = f"{decimal_value.normalize():f}"
    return f"{text.replace('.', ',')}%"


__all__ = [
    "format_currency",
    "format_display_date",
    "format_display_datetime",
    "format_number",
    "format_percentage",
]
