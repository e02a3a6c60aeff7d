"""Tests for the HTTP network gateway."""

import json

import httpx
import pytest

from chargetunis.exceptions import TransportFailure
from chargetunis.gateway import HttpNetworkGateway
from chargetunis.models import PaymentStatus


def make_gateway(handler):
    """Helper to build a gateway backed by an in-process transport."""
    return HttpNetworkGateway("http://backend.test/", transport=httpx.MockTransport(handler))


class TestListStations:
    """Test GET /stations."""

    @pytest.mark.asyncio
    async def test_parses_stations(self, sample_stations_payload):
        seen = []

        def handler(request: httpx.Request):
            seen.append((request.method, str(request.url)))
            return httpx.Response(200, json=sample_stations_payload)

        gateway = make_gateway(handler)
        stations = await gateway.list_stations()
        await gateway.aclose()

        assert seen == [("GET", "http://backend.test/stations")]
        assert [s.id for s in stations] == ["s1", "s2"]
        assert stations[1].available == 0

    @pytest.mark.asyncio
    async def test_missing_stations_key_is_empty(self):
        gateway = make_gateway(lambda request: httpx.Response(200, json={}))
        assert await gateway.list_stations() == []

    @pytest.mark.asyncio
    async def test_malformed_station_record(self):
        gateway = make_gateway(
            lambda request: httpx.Response(200, json={"stations": [{"id": "s1"}]})
        )
        with pytest.raises(TransportFailure) as exc_info:
            await gateway.list_stations()
        assert exc_info.value.operation == "list_stations"
        assert "Malformed response" in exc_info.value.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "stations",
        [[None], "abc", {"id": "s1", "name": "Lac 2"}, [["s1", "Lac 2"]]],
    )
    async def test_station_list_of_non_objects(self, stations):
        gateway = make_gateway(
            lambda request: httpx.Response(200, json={"stations": stations})
        )
        with pytest.raises(TransportFailure) as exc_info:
            await gateway.list_stations()
        assert exc_info.value.message == "Malformed response from server (list_stations)"

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        gateway = make_gateway(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(TransportFailure):
            await gateway.list_stations()

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request: httpx.Request):
            raise httpx.ConnectError("Connection refused", request=request)

        gateway = make_gateway(handler)
        with pytest.raises(TransportFailure) as exc_info:
            await gateway.list_stations()
        assert exc_info.value.message == "Connection refused"


class TestPayments:
    """Test the payment endpoints."""

    @pytest.mark.asyncio
    async def test_create_intent_request_body(self):
        bodies = []

        def handler(request: httpx.Request):
            bodies.append((request.url.path, json.loads(request.content)))
            return httpx.Response(200, json={"client_secret": "pi_1", "amount_tnd": 5.1})

        gateway = make_gateway(handler)
        intent = await gateway.create_intent("s1", 10, 0.5)

        assert bodies == [
            ("/payments/intent", {"station_id": "s1", "kwh": 10, "price_tnd_per_kwh": 0.5})
        ]
        assert intent.client_secret == "pi_1"
        assert intent.amount_tnd == 5.1

    @pytest.mark.asyncio
    async def test_confirm_payment_request_body(self):
        bodies = []

        def handler(request: httpx.Request):
            bodies.append((request.url.path, json.loads(request.content)))
            return httpx.Response(200, json={"status": "succeeded", "transaction_id": "tx_1"})

        gateway = make_gateway(handler)
        result = await gateway.confirm_payment("pi_1", "4242 4242 4242 4242", 12, 2030, "123")

        assert bodies == [
            (
                "/payments/confirm",
                {
                    "client_secret": "pi_1",
                    "card_number": "4242 4242 4242 4242",
                    "exp_month": 12,
                    "exp_year": 2030,
                    "cvc": "123",
                },
            )
        ]
        assert result.status == PaymentStatus.SUCCEEDED
        assert result.transaction_id == "tx_1"

    @pytest.mark.asyncio
    async def test_declined_payment_is_returned_not_raised(self):
        gateway = make_gateway(
            lambda request: httpx.Response(200, json={"status": "failed", "message": "Card declined"})
        )
        result = await gateway.confirm_payment("pi_1", "4000 0000 0000 0002", 12, 2030, "123")

        assert result.status == PaymentStatus.FAILED
        assert result.message == "Card declined"

    @pytest.mark.asyncio
    async def test_error_status_uses_detail(self):
        gateway = make_gateway(
            lambda request: httpx.Response(422, json={"detail": "kwh must be at least 1"})
        )
        with pytest.raises(TransportFailure) as exc_info:
            await gateway.create_intent("s1", 0, 0.5)

        assert exc_info.value.message == "kwh must be at least 1"
        assert exc_info.value.status_code == 422

    @pytest.mark.asyncio
    async def test_error_status_without_body(self):
        gateway = make_gateway(lambda request: httpx.Response(500, text="Internal Server Error"))
        with pytest.raises(TransportFailure) as exc_info:
            await gateway.create_intent("s1", 10, 0.5)
        assert exc_info.value.message == "HTTP 500"

    @pytest.mark.asyncio
    async def test_unknown_payment_status_is_malformed(self):
        gateway = make_gateway(lambda request: httpx.Response(200, json={"status": "pending"}))
        with pytest.raises(TransportFailure):
            await gateway.confirm_payment("pi_1", "4242 4242 4242 4242", 12, 2030, "123")

    @pytest.mark.asyncio
    async def test_non_object_body_is_malformed(self):
        gateway = make_gateway(lambda request: httpx.Response(200, json=["not", "an", "object"]))
        with pytest.raises(TransportFailure):
            await gateway.create_intent("s1", 10, 0.5)
