"""Pytest configuration and fixtures."""

import asyncio

import pytest

from chargetunis.gateway import NetworkGateway
from chargetunis.models import PaymentIntent, PaymentResult, PaymentStatus, Station


class FakeGateway(NetworkGateway):
    """
    In-memory gateway with scripted responses.

    Each operation has a list of responses consumed in order; the last one
    is reused once the list runs down to it. A response may be a value, an
    exception to raise, or an asyncio.Future to await (letting tests decide
    when, and in which order, calls complete).
    """

    def __init__(self):
        self.responses: dict[str, list] = {
            "list_stations": [[]],
            "create_intent": [PaymentIntent(client_secret="pi_secret_1", amount_tnd=5.1)],
            "confirm_payment": [
                PaymentResult(status=PaymentStatus.SUCCEEDED, transaction_id="tx_1")
            ],
        }
        self.calls: list[tuple] = []
        self.closed = False

    def script(self, operation: str, *responses):
        self.responses[operation] = list(responses)

    def calls_to(self, operation: str) -> list[tuple]:
        return [args for name, args in self.calls if name == operation]

    async def _reply(self, operation: str, *args):
        self.calls.append((operation, args))
        queue = self.responses[operation]
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, asyncio.Future):
            item = await item
        if isinstance(item, Exception):
            raise item
        return item

    async def list_stations(self):
        return await self._reply("list_stations")

    async def create_intent(self, station_id, kwh, price_tnd_per_kwh):
        return await self._reply("create_intent", station_id, kwh, price_tnd_per_kwh)

    async def confirm_payment(self, client_secret, card_number, exp_month, exp_year, cvc):
        return await self._reply(
            "confirm_payment", client_secret, card_number, exp_month, exp_year, cvc
        )

    async def aclose(self):
        self.closed = True


@pytest.fixture
def gateway():
    """Provide a scripted in-memory gateway."""
    return FakeGateway()


@pytest.fixture
def station():
    """Sample station priced at 0.5 TND/kWh."""
    return Station(
        id="s1",
        name="Lac 2 Supercharger",
        city="Tunis",
        latitude=36.8432,
        longitude=10.2731,
        power_kw=150,
        price_tnd_per_kwh=0.5,
        capacity=4,
        available=2,
    )


@pytest.fixture
def other_station():
    """A second sample station."""
    return Station(
        id="s2",
        name="Sousse Corniche",
        city="Sousse",
        latitude=35.8333,
        longitude=10.6333,
        power_kw=50,
        price_tnd_per_kwh=0.42,
        capacity=2,
        available=0,
    )


@pytest.fixture
def sample_stations_payload():
    """Sample GET /stations response body."""
    return {
        "stations": [
            {
                "id": "s1",
                "name": "Lac 2 Supercharger",
                "city": "Tunis",
                "latitude": 36.8432,
                "longitude": 10.2731,
                "power_kw": 150,
                "price_tnd_per_kwh": 0.5,
                "capacity": 4,
                "available": 2,
            },
            {
                "id": "s2",
                "name": "Sousse Corniche",
                "city": "Sousse",
                "latitude": 35.8333,
                "longitude": 10.6333,
                "power_kw": 50,
                "price_tnd_per_kwh": 0.42,
                "capacity": 2,
            },
        ]
    }


@pytest.fixture
def future():
    """Factory for futures used to hold a gateway call open."""

    def make():
        return asyncio.get_running_loop().create_future()

    return make
