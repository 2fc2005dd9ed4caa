"""Data access layer for the BUS2go companion.

``DataService`` describes every operation the session manager consumes. The
bundled ``MockDataService`` keeps its records in memory and can simulate
network latency; a real backend only needs to implement the same coroutines.

Expected failures (bad credentials, duplicate email, malformed card number) are
reported through result objects. ``DataServiceError`` is reserved for transport
or otherwise unexpected failures.
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
import re
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Callable, Optional, Protocol, Sequence

from .models import (
    AdminStats,
    AuthResult,
    Card,
    LinkCardResult,
    PaymentMethod,
    Recharge,
    RechargeResult,
    RechargeStatus,
    Route,
    SeriesPoint,
    SyncResult,
    Trip,
    User,
)

logger = logging.getLogger(__name__)

CARD_NUMBER_LENGTH = 8
_CARD_NUMBER_PATTERN = re.compile(r"[A-Za-z0-9]+")
_WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


class DataServiceError(RuntimeError):
    """Raised when the backing store cannot be reached or misbehaves."""


class DataService(Protocol):
    async def fetch_card(self) -> Card: ...

    async def fetch_trips(self) -> list[Trip]: ...

    async def fetch_recharges(self) -> list[Recharge]: ...

    async def fetch_routes(self) -> list[Route]: ...

    async def recharge(self, amount: float, payment_method: PaymentMethod) -> RechargeResult: ...

    async def sign_in(self, email: str, password: str) -> AuthResult: ...

    async def sign_up(self, name: str, email: str, password: str) -> AuthResult: ...

    async def link_card(self, card_number: str) -> LinkCardResult: ...

    async def sync_with_cloud(self) -> SyncResult: ...

    async def fetch_admin_stats(self) -> AdminStats: ...


def _utc(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def default_card() -> Card:
    return Card(card_number="C4RD2GO8", balance=250.75, holder_name="John Doe")


def default_trips() -> list[Trip]:
    return [
        Trip("t1", "Central Station", "City Mall", _utc("2024-07-29T10:30:00Z"), 15.00),
        Trip("t2", "City Mall", "Tech Park", _utc("2024-07-29T17:45:00Z"), 20.50),
        Trip("t3", "Downtown", "Airport", _utc("2024-07-28T08:00:00Z"), 50.00),
        Trip("t4", "Suburbia", "Central Station", _utc("2024-07-27T09:12:00Z"), 25.00),
    ]


def default_recharges() -> list[Recharge]:
    return [
        Recharge("r1", 200, _utc("2024-07-25T14:00:00Z"), PaymentMethod.UPI),
        Recharge("r2", 500, _utc("2024-07-15T11:20:00Z"), PaymentMethod.CARD),
        Recharge("r3", 100, _utc("2024-06-30T18:55:00Z"), PaymentMethod.NET_BANKING),
    ]


def default_routes() -> list[Route]:
    return [
        Route("route1", "101A", "Central Station", "Tech Park",
              ("Market", "City Mall", "University"), 10),
        Route("route2", "205", "Airport", "Suburbia",
              ("Downtown", "Hospital", "Green Valley"), 15),
        Route("route3", "40B", "City Mall", "Downtown", ("Library", "Museum"), 8),
    ]


def default_users() -> list[User]:
    return [User("u1", "John Doe", "john.doe@example.com", "password123")]


def is_valid_card_number(card_number: str) -> bool:
    return (
        bool(card_number)
        and len(card_number) == CARD_NUMBER_LENGTH
        and _CARD_NUMBER_PATTERN.fullmatch(card_number) is not None
    )


class MockDataService:
    """In-memory implementation of :class:`DataService`.

    Each instance owns its own copy of the seed records, so tests and windows
    never share state. ``latency`` is a ``(min, max)`` range in seconds applied
    to every call; ``(0, 0)`` disables the delay entirely.
    """

    TOTAL_TRIPS_TODAY = 238
    REVENUE_TODAY = 5950.00

    def __init__(
        self,
        *,
        card: Optional[Card] = None,
        trips: Optional[Sequence[Trip]] = None,
        recharges: Optional[Sequence[Recharge]] = None,
        routes: Optional[Sequence[Route]] = None,
        users: Optional[Sequence[User]] = None,
        latency: tuple[float, float] = (0.0, 0.0),
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._card = replace(card) if card is not None else default_card()
        self._trips = list(trips) if trips is not None else default_trips()
        self._recharges = list(recharges) if recharges is not None else default_recharges()
        self._routes = list(routes) if routes is not None else default_routes()
        self._users = [replace(u) for u in users] if users is not None else default_users()
        self.latency = latency
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._rng = rng or random.Random()
        self._ids = count(1)

    @property
    def users(self) -> list[User]:
        return [user.public() for user in self._users]

    async def _simulate_delay(self) -> None:
        low, high = self.latency
        if high <= 0:
            return
        await asyncio.sleep(self._rng.uniform(low, high))

    # Collections ---------------------------------------------------------
    async def fetch_card(self) -> Card:
        await self._simulate_delay()
        return replace(self._card)

    async def fetch_trips(self) -> list[Trip]:
        await self._simulate_delay()
        return list(self._trips)

    async def fetch_recharges(self) -> list[Recharge]:
        await self._simulate_delay()
        return list(self._recharges)

    async def fetch_routes(self) -> list[Route]:
        await self._simulate_delay()
        return list(self._routes)

    # Actions -------------------------------------------------------------
    async def recharge(self, amount: float, payment_method: PaymentMethod) -> RechargeResult:
        await self._simulate_delay()
        if not math.isfinite(amount) or amount <= 0:
            return RechargeResult(success=False, new_balance=self._card.balance)
        self._card.balance = round(self._card.balance + amount, 2)
        entry = Recharge(
            recharge_id=f"r{int(self._clock().timestamp() * 1000)}-{next(self._ids)}",
            amount=amount,
            timestamp=self._clock(),
            payment_method=PaymentMethod.parse(payment_method),
            status=RechargeStatus.SUCCESS,
        )
        self._recharges.insert(0, entry)
        logger.debug("Stored recharge %s of %.2f", entry.recharge_id, amount)
        return RechargeResult(success=True, new_balance=self._card.balance)

    async def sign_in(self, email: str, password: str) -> AuthResult:
        await self._simulate_delay()
        wanted = email.lower()
        for user in self._users:
            if user.email.lower() == wanted and user.password == password:
                return AuthResult(success=True, user=user.public())
        return AuthResult(success=False, message="Invalid email or password.")

    async def sign_up(self, name: str, email: str, password: str) -> AuthResult:
        await self._simulate_delay()
        wanted = email.lower()
        if any(user.email.lower() == wanted for user in self._users):
            return AuthResult(success=False, message="Email already exists.")
        user = User(
            user_id=f"u{int(self._clock().timestamp() * 1000)}-{next(self._ids)}",
            name=name,
            email=email,
            password=password,
        )
        self._users.append(user)
        return AuthResult(success=True, user=user.public())

    async def link_card(self, card_number: str) -> LinkCardResult:
        await self._simulate_delay()
        if not is_valid_card_number(card_number):
            return LinkCardResult(success=False, message="Invalid card number format.")
        self._card.card_number = card_number.upper()
        return LinkCardResult(success=True, card=replace(self._card))

    async def sync_with_cloud(self) -> SyncResult:
        await self._simulate_delay()
        stamp = self._clock().astimezone().strftime("%Y-%m-%d %H:%M:%S")
        return SyncResult(success=True, last_synced=stamp)

    async def fetch_admin_stats(self) -> AdminStats:
        await self._simulate_delay()
        today = self._clock()
        daily_trips: list[SeriesPoint] = []
        daily_revenue: list[SeriesPoint] = []
        for offset in range(6, -1, -1):
            day = today - timedelta(days=offset)
            label = _WEEKDAY_NAMES[day.weekday()]
            trips = 200 + self._rng.randrange(70)
            daily_trips.append(SeriesPoint(label, trips))
            daily_revenue.append(
                SeriesPoint(label, round(trips * (20 + self._rng.random() * 10), 2))
            )

        growth_values = [50, 80, 150, len(self._users) + 150]
        user_growth = []
        for back, value in zip(range(3, -1, -1), growth_values):
            month_index = (today.month - 1 - back) % 12
            user_growth.append(SeriesPoint(_MONTH_NAMES[month_index], value))

        return AdminStats(
            total_users=len(self._users),
            total_trips_today=self.TOTAL_TRIPS_TODAY,
            revenue_today=self.REVENUE_TODAY,
            daily_trips=tuple(daily_trips),
            daily_revenue=tuple(daily_revenue),
            user_growth=tuple(user_growth),
        )
