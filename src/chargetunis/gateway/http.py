"""HTTP implementation of the network gateway."""

import logging
import time
from typing import Any, Optional

import httpx

from ..exceptions import TransportFailure
from ..logging_utils import log_gateway_call
from ..models import PaymentIntent, PaymentResult, Station
from .base import NetworkGateway

logger = logging.getLogger(__name__)


class HttpNetworkGateway(NetworkGateway):
    """
    Talks JSON over HTTP to the ChargeTunis backend.

    The base URL is injected once at construction. Every failure mode
    (connection error, non-2xx status, undecodable or incomplete body) is
    surfaced as a single ``TransportFailure``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        client_kwargs: dict[str, Any] = {
            "base_url": self.base_url,
            "headers": {"Accept": "application/json"},
        }
        # Leave httpx's own default timeout in place unless configured
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)

    async def list_stations(self) -> list[Station]:
        body = await self._request("list_stations", "GET", "/stations")
        records = body.get("stations")
        if records is None:
            records = []
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise self._malformed("list_stations", TypeError("expected a list of station objects"))
        try:
            stations = [Station.from_dict(record) for record in records]
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("list_stations", e) from e
        return stations

    async def create_intent(
        self, station_id: str, kwh: float, price_tnd_per_kwh: float
    ) -> PaymentIntent:
        body = await self._request(
            "create_intent",
            "POST",
            "/payments/intent",
            json={
                "station_id": station_id,
                "kwh": kwh,
                "price_tnd_per_kwh": price_tnd_per_kwh,
            },
        )
        try:
            return PaymentIntent.from_dict(body)
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("create_intent", e) from e

    async def confirm_payment(
        self,
        client_secret: str,
        card_number: str,
        exp_month: int,
        exp_year: int,
        cvc: str,
    ) -> PaymentResult:
        body = await self._request(
            "confirm_payment",
            "POST",
            "/payments/confirm",
            json={
                "client_secret": client_secret,
                "card_number": card_number,
                "exp_month": exp_month,
                "exp_year": exp_year,
                "cvc": cvc,
            },
        )
        try:
            return PaymentResult.from_dict(body)
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("confirm_payment", e) from e

    async def aclose(self):
        await self._client.aclose()

    async def _request(self, operation: str, method: str, path: str, **kwargs) -> dict[str, Any]:
        """Perform one exchange and return the decoded JSON object."""
        started_at = time.monotonic()
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log_gateway_call(
                logger,
                operation,
                "failed",
                duration_ms=self._elapsed_ms(started_at),
                error=str(e) or e.__class__.__name__,
            )
            raise TransportFailure(
                str(e) or f"Could not reach {self.base_url}", operation=operation
            ) from e

        duration_ms = self._elapsed_ms(started_at)

        if response.is_error:
            message = self._error_message(response)
            log_gateway_call(
                logger,
                operation,
                "failed",
                duration_ms=duration_ms,
                status_code=response.status_code,
                error=message,
            )
            raise TransportFailure(message, operation=operation, status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise self._malformed(operation, e) from e
        if not isinstance(body, dict):
            raise self._malformed(operation, TypeError("expected a JSON object"))

        log_gateway_call(
            logger,
            operation,
            "ok",
            duration_ms=duration_ms,
            status_code=response.status_code,
        )
        return body

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer the backend's own explanation over a bare status code."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("detail", "message"):
                if isinstance(body.get(key), str) and body[key]:
                    return body[key]
        return f"HTTP {response.status_code}"

    @staticmethod
    def _malformed(operation: str, error: Exception) -> TransportFailure:
        logger.warning(f"Malformed response for {operation}: {error!r}")
        return TransportFailure(f"Malformed response from server ({operation})", operation=operation)

    @staticmethod
    def _elapsed_ms(started_at: float) -> float:
        return round((time.monotonic() - started_at) * 1000, 2)
