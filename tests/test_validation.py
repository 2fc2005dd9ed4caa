import pytest

from bus2go.validation import (
    parse_custom_amount,
    validate_admin_key,
    validate_card_number,
    validate_recharge_amount,
    validate_sign_in,
    validate_sign_up,
)


def test_sign_in_requires_both_fields() -> None:
    assert validate_sign_in("", "secret") == "Please fill in both fields."
    assert validate_sign_in("a@b.c", "") == "Please fill in both fields."
    assert validate_sign_in("a@b.c", "secret") is None


def test_sign_up_checks_fields_and_password_length() -> None:
    assert validate_sign_up("", "a@b.c", "password1") == "Please fill in all fields."
    assert validate_sign_up("Ann", "a@b.c", "short") == "Password must be at least 8 characters long."
    assert validate_sign_up("Ann", "a@b.c", "longenough") is None


def test_admin_key_and_card_number() -> None:
    assert validate_admin_key("") == "Please enter an admin key."
    assert validate_admin_key("x") is None
    assert validate_card_number("ABC") == "Card number must be 8 characters."
    assert validate_card_number("ABCD1234") is None


def test_recharge_amount_must_be_positive() -> None:
    assert validate_recharge_amount(0) == "Enter an amount greater than zero."
    assert validate_recharge_amount(-1) is not None
    assert validate_recharge_amount(1) is None


def test_custom_amount_parsing() -> None:
    assert parse_custom_amount("") == 0
    assert parse_custom_amount(" 300 ") == 300
    with pytest.raises(ValueError):
        parse_custom_amount("12.5")


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
def test_recharge_amount_must_be_finite(amount: float) -> None:
    assert validate_recharge_amount(amount) == "Enter an amount greater than zero."
