"""Domain models for stations and payments."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


def format_amount(value: float) -> str:
    """Render a TND amount with 3-decimal precision (e.g. ``5.000``)."""
    return f"{value:.3f}"


@dataclass(frozen=True)
class Station:
    """Represents a charging station as reported by the backend."""

    id: str
    name: str
    city: str
    latitude: float
    longitude: float
    power_kw: float
    price_tnd_per_kwh: float
    capacity: int
    available: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Station":
        """
        Build a station from a backend record.

        Raises KeyError, TypeError or ValueError on malformed records.
        ``available`` may be missing or null, in which case it defaults to 0.
        It is not checked against ``capacity``.
        """
        available = data.get("available")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            city=str(data.get("city", "")),
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            power_kw=float(data["power_kw"]),
            price_tnd_per_kwh=float(data["price_tnd_per_kwh"]),
            capacity=int(data["capacity"]),
            available=int(available) if available is not None else 0,
        )

    @property
    def availability_label(self) -> str:
        return f"{self.available}/{self.capacity} available"


@dataclass(frozen=True)
class StationListSnapshot:
    """
    The full set of stations as of the latest successful poll.

    ``fresh`` is False only for the empty placeholder a directory starts with.
    """

    stations: tuple[Station, ...] = ()
    fresh: bool = False
    fetched_at: Optional[datetime] = None

    def get(self, station_id: str) -> Optional[Station]:
        for station in self.stations:
            if station.id == station_id:
                return station
        return None

    def __len__(self) -> int:
        return len(self.stations)


@dataclass(frozen=True)
class PaymentIntent:
    """Server-issued intent correlating a later confirmation to a charge."""

    client_secret: str
    amount_tnd: float

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PaymentIntent":
        return cls(
            client_secret=str(data["client_secret"]),
            amount_tnd=float(data["amount_tnd"]),
        )

    @property
    def amount_display(self) -> str:
        return format_amount(self.amount_tnd)


@dataclass
class CardInput:
    """
    Card details entered by the user.

    Only ever held in memory for the confirm step. The default values are
    demo card numbers accepted by the simulated backend.

    Expiry fields may hold the raw strings typed into a form; they are
    converted to numbers only when the payment is confirmed.
    """

    number: str = "4242 4242 4242 4242"
    exp_month: int | str = 12
    exp_year: int | str = 2030
    cvc: str = field(default="123")

    def __repr__(self) -> str:
        last4 = self.number.replace(" ", "")[-4:]
        return f"CardInput(number='**** {last4}', exp={self.exp_month!s:0>2}/{self.exp_year}, cvc='***')"

    __str__ = __repr__


class PaymentStatus(str, Enum):
    """Terminal payment outcome."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class PaymentResult:
    """Terminal outcome of a payment workflow."""

    status: PaymentStatus
    transaction_id: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PaymentResult":
        """Parse a confirmation response; unknown statuses raise ValueError."""
        transaction_id = data.get("transaction_id")
        message = data.get("message")
        return cls(
            status=PaymentStatus(data["status"]),
            transaction_id=str(transaction_id) if transaction_id is not None else None,
            message=str(message) if message is not None else None,
        )

    @classmethod
    def failed(cls, message: str) -> "PaymentResult":
        return cls(status=PaymentStatus.FAILED, message=message)

    @property
    def succeeded(self) -> bool:
        return self.status == PaymentStatus.SUCCEEDED

    @property
    def summary(self) -> str:
        if self.succeeded:
            return f"Payment succeeded • {self.transaction_id}"
        return f"Payment failed • {self.message or 'Try another card'}"
