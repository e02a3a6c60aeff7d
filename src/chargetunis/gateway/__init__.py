from .base import NetworkGateway
from .http import HttpNetworkGateway

__all__ = ["HttpNetworkGateway", "NetworkGateway"]
