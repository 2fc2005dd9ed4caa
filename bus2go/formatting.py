"""Display helpers for currency, timestamps and history rows."""

from __future__ import annotations

from datetime import datetime

from .models import HistoryItem, Recharge, Trip

CURRENCY_SYMBOL = "₹"
DATETIME_FORMAT = "%Y-%m-%d %H:%M"


def format_currency(amount: float) -> str:
    """Format *amount* as ``₹1,234.50``; negative values keep a leading minus."""

    sign = "-" if amount < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(amount):,.2f}"


def format_signed_amount(amount: float) -> str:
    """Two-decimal amount with an explicit sign, e.g. ``+200.00`` or ``-15.00``."""

    sign = "-" if amount < 0 else "+"
    return f"{sign}{abs(amount):.2f}"


def format_signed_currency(amount: float) -> str:
    sign = "-" if amount < 0 else "+"
    return f"{sign}{CURRENCY_SYMBOL}{abs(amount):.2f}"


def format_datetime(value: datetime) -> str:
    return value.strftime(DATETIME_FORMAT)


def describe(item: HistoryItem) -> str:
    record = item.record
    if isinstance(record, Trip):
        return f"{record.origin} to {record.destination}"
    if isinstance(record, Recharge):
        return f"Recharge via {record.payment_method.value}"
    raise TypeError(f"Unsupported history record: {type(record).__name__}")


def holder_initial(name: str) -> str:
    stripped = name.strip()
    return stripped[0].upper() if stripped else ""
