"""Client-side form checks performed before any request is sent.

Every function returns ``None`` when the input is acceptable or the message to
show next to the form otherwise.
"""

from __future__ import annotations

import math
from typing import Optional

from .data_service import CARD_NUMBER_LENGTH

MIN_PASSWORD_LENGTH = 8


def validate_sign_in(email: str, password: str) -> Optional[str]:
    if not email.strip() or not password:
        return "Please fill in both fields."
    return None


def validate_sign_up(name: str, email: str, password: str) -> Optional[str]:
    if not name.strip() or not email.strip() or not password:
        return "Please fill in all fields."
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
    return None


def validate_admin_key(key: str) -> Optional[str]:
    if not key:
        return "Please enter an admin key."
    return None


def validate_card_number(card_number: str) -> Optional[str]:
    if len(card_number) != CARD_NUMBER_LENGTH:
        return f"Card number must be {CARD_NUMBER_LENGTH} characters."
    return None


def validate_recharge_amount(amount: float) -> Optional[str]:
    if not math.isfinite(amount) or amount <= 0:
        return "Enter an amount greater than zero."
    return None


def parse_custom_amount(text: str) -> int:
    """Digits-only custom amount; empty input counts as zero."""

    cleaned = text.strip()
    if not cleaned:
        return 0
    if not cleaned.isdigit():
        raise ValueError("Custom amount may only contain digits.")
    return int(cleaned)
