"""Domain records shared by the data service, session manager and views."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class TripStatus(str, Enum):
    COMPLETED = "Completed"
    PENDING = "Pending"
    FAILED = "Failed"


class RechargeStatus(str, Enum):
    SUCCESS = "Success"
    PENDING = "Pending"
    FAILED = "Failed"


class PaymentMethod(str, Enum):
    UPI = "UPI"
    CARD = "Card"
    NET_BANKING = "Net Banking"

    @classmethod
    def parse(cls, value: Union[str, "PaymentMethod"]) -> "PaymentMethod":
        """Return the member matching *value*, raising ``ValueError`` otherwise."""

        if isinstance(value, cls):
            return value
        for member in cls:
            if member.value == value:
                return member
        raise ValueError(f"Unknown payment method: {value!r}")


class HistoryKind(str, Enum):
    TRIP = "Trip"
    RECHARGE = "Recharge"


@dataclass
class Card:
    """RFID fare card as displayed to the passenger."""

    card_number: str
    balance: float
    holder_name: str

    def __post_init__(self) -> None:
        if not math.isfinite(self.balance) or self.balance < 0:
            raise ValueError("Card balance must be a finite, non-negative amount.")


@dataclass
class User:
    user_id: str
    name: str
    email: str
    password: Optional[str] = field(default=None, repr=False)

    def public(self) -> "User":
        """Copy of the user without the credential secret."""
        return replace(self, password=None)


@dataclass(frozen=True)
class Trip:
    trip_id: str
    origin: str
    destination: str
    timestamp: datetime
    fare: float
    status: TripStatus = TripStatus.COMPLETED

    def __post_init__(self) -> None:
        if self.fare <= 0:
            raise ValueError("Trip fare must be positive.")


@dataclass(frozen=True)
class Recharge:
    recharge_id: str
    amount: float
    timestamp: datetime
    payment_method: PaymentMethod
    status: RechargeStatus = RechargeStatus.SUCCESS

    def __post_init__(self) -> None:
        if not math.isfinite(self.amount) or self.amount <= 0:
            raise ValueError("Recharge amount must be positive.")


@dataclass(frozen=True)
class Route:
    route_id: str
    route_number: str
    origin: str
    destination: str
    stops: tuple[str, ...]
    base_fare: float


@dataclass(frozen=True)
class SeriesPoint:
    label: str
    value: float


@dataclass(frozen=True)
class AdminStats:
    total_users: int
    total_trips_today: int
    revenue_today: float
    daily_trips: tuple[SeriesPoint, ...]
    daily_revenue: tuple[SeriesPoint, ...]
    user_growth: tuple[SeriesPoint, ...]


@dataclass(frozen=True)
class HistoryItem:
    """A trip or recharge tagged with its kind for the unified feed.

    ``sequence`` is the record's position in the list it was fetched from and
    serves as the last tie-breaker when ordering the feed.
    """

    kind: HistoryKind
    record: Union[Trip, Recharge]
    sequence: int = 0

    @classmethod
    def from_trip(cls, trip: Trip, sequence: int = 0) -> "HistoryItem":
        return cls(HistoryKind.TRIP, trip, sequence)

    @classmethod
    def from_recharge(cls, recharge: Recharge, sequence: int = 0) -> "HistoryItem":
        return cls(HistoryKind.RECHARGE, recharge, sequence)

    @property
    def timestamp(self) -> datetime:
        return self.record.timestamp

    @property
    def item_id(self) -> str:
        if isinstance(self.record, Trip):
            return self.record.trip_id
        return self.record.recharge_id

    @property
    def signed_amount(self) -> float:
        """Fare as a debit for trips, amount as a credit for recharges."""
        if isinstance(self.record, Trip):
            return -self.record.fare
        return self.record.amount

    @property
    def status(self) -> str:
        return self.record.status.value


# Facade results ----------------------------------------------------------
@dataclass(frozen=True)
class RechargeResult:
    success: bool
    new_balance: float


@dataclass(frozen=True)
class AuthResult:
    success: bool
    user: Optional[User] = None
    message: str = ""


@dataclass(frozen=True)
class LinkCardResult:
    success: bool
    card: Optional[Card] = None
    message: str = ""


@dataclass(frozen=True)
class SyncResult:
    success: bool
    last_synced: str = ""


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a session action; failures carry a displayable message."""

    success: bool
    message: str = ""

    @classmethod
    def ok(cls, message: str = "") -> "ActionResult":
        return cls(True, message)

    @classmethod
    def fail(cls, message: str) -> "ActionResult":
        return cls(False, message)
