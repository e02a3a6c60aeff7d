from .domain import (
    CardInput,
    PaymentIntent,
    PaymentResult,
    PaymentStatus,
    Station,
    StationListSnapshot,
    format_amount,
)

__all__ = [
    "CardInput",
    "PaymentIntent",
    "PaymentResult",
    "PaymentStatus",
    "Station",
    "StationListSnapshot",
    "format_amount",
]
