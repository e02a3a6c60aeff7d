"""Abstract transport to the ChargeTunis backend."""

from abc import ABC, abstractmethod

from ..models import PaymentIntent, PaymentResult, Station


class NetworkGateway(ABC):
    """
    Request/response transport consumed by the directory and the session.

    Each operation is a single exchange with no retry. Implementations must
    raise ``TransportFailure`` for any network error, non-2xx response or
    malformed body; a well-formed ``failed`` confirmation is returned, not
    raised.
    """

    @abstractmethod
    async def list_stations(self) -> list[Station]:
        """Return every station currently known to the backend."""

    @abstractmethod
    async def create_intent(
        self, station_id: str, kwh: float, price_tnd_per_kwh: float
    ) -> PaymentIntent:
        """Create a payment intent for charging ``kwh`` at ``station_id``."""

    @abstractmethod
    async def confirm_payment(
        self,
        client_secret: str,
        card_number: str,
        exp_month: int,
        exp_year: int,
        cvc: str,
    ) -> PaymentResult:
        """Confirm the intent identified by ``client_secret`` with card details."""

    async def aclose(self):
        """Release transport resources. Override if the gateway holds any."""
