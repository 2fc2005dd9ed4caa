import asyncio
import random
from datetime import datetime, timezone

import pytest

from bus2go.data_service import MockDataService, is_valid_card_number
from bus2go.models import Card, PaymentMethod, Recharge


def _clock() -> datetime:
    return datetime(2024, 7, 30, 9, 0, tzinfo=timezone.utc)


def test_instances_do_not_share_state() -> None:
    first = MockDataService()
    second = MockDataService()

    asyncio.run(first.recharge(100, PaymentMethod.UPI))

    assert asyncio.run(first.fetch_card()).balance == pytest.approx(350.75)
    assert asyncio.run(second.fetch_card()).balance == pytest.approx(250.75)


def test_fetch_returns_copies() -> None:
    service = MockDataService()
    card = asyncio.run(service.fetch_card())
    card.balance = 0

    assert asyncio.run(service.fetch_card()).balance == pytest.approx(250.75)


def test_recharge_prepends_history_entry() -> None:
    service = MockDataService(clock=_clock)

    result = asyncio.run(service.recharge(50, PaymentMethod.NET_BANKING))
    recharges = asyncio.run(service.fetch_recharges())

    assert result.success
    assert result.new_balance == pytest.approx(300.75)
    assert recharges[0].amount == 50
    assert recharges[0].timestamp == _clock()
    assert len(recharges) == 4


def test_recharge_rejects_non_positive_amount() -> None:
    service = MockDataService()

    result = asyncio.run(service.recharge(0, PaymentMethod.UPI))

    assert not result.success
    assert result.new_balance == pytest.approx(250.75)


def test_sign_in_is_case_insensitive_on_email() -> None:
    service = MockDataService()

    result = asyncio.run(service.sign_in("John.Doe@Example.com", "password123"))

    assert result.success
    assert result.user.password is None


def test_link_card_uppercases_number() -> None:
    service = MockDataService()

    result = asyncio.run(service.link_card("abcd1234"))

    assert result.success
    assert result.card.card_number == "ABCD1234"
    assert result.card.balance == pytest.approx(250.75)


@pytest.mark.parametrize(
    "number, expected",
    [
        ("ABCD1234", True),
        ("abcd1234", True),
        ("ABCD123", False),
        ("ABCD12#4", False),
        ("ABCD123\n", False),
        ("", False),
    ],
)
def test_card_number_format(number: str, expected: bool) -> None:
    assert is_valid_card_number(number) is expected


def test_admin_stats_are_reproducible_with_seeded_rng() -> None:
    first = asyncio.run(MockDataService(clock=_clock, rng=random.Random(7)).fetch_admin_stats())
    second = asyncio.run(MockDataService(clock=_clock, rng=random.Random(7)).fetch_admin_stats())

    assert first == second
    assert all(200 <= point.value < 270 for point in first.daily_trips)
    assert [point.label for point in first.user_growth] == ["Apr", "May", "Jun", "Jul"]


def test_latency_is_applied(monkeypatch: pytest.MonkeyPatch) -> None:
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr("bus2go.data_service.asyncio.sleep", fake_sleep)
    service = MockDataService(latency=(0.5, 1.0))

    asyncio.run(service.fetch_routes())

    assert len(delays) == 1
    assert 0.5 <= delays[0] <= 1.0


@pytest.mark.parametrize("amount", [float("nan"), float("inf")])
def test_recharge_rejects_non_finite_amount(amount: float) -> None:
    service = MockDataService()

    result = asyncio.run(service.recharge(amount, PaymentMethod.UPI))

    assert not result.success
    assert asyncio.run(service.fetch_card()).balance == pytest.approx(250.75)
    assert len(asyncio.run(service.fetch_recharges())) == 3


def test_records_reject_non_finite_amounts() -> None:
    with pytest.raises(ValueError):
        Card("ABCD1234", float("nan"), "Ann")
    with pytest.raises(ValueError):
        Recharge("r9", float("inf"), _clock(), PaymentMethod.UPI)
