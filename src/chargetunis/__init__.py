"""
ChargeTunis - EV charging station finder and payment session client

Polls a ChargeTunis backend for station availability and drives the
simulated payment workflow for a selected station.
"""

__version__ = "0.1.0"

from .app import ChargeApp, MapSurface
from .directory import StationDirectory
from .gateway import HttpNetworkGateway, NetworkGateway
from .session import PaymentSession, SessionStep

__all__ = [
    "ChargeApp",
    "HttpNetworkGateway",
    "MapSurface",
    "NetworkGateway",
    "PaymentSession",
    "SessionStep",
    "StationDirectory",
]
