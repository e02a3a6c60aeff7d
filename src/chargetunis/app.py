"""Composition root wiring the directory, the session and their plugins."""

import logging
from typing import Callable, Optional, Protocol, Sequence

from prometheus_client import start_http_server

from .config import Settings
from .directory import StationDirectory
from .gateway import HttpNetworkGateway, NetworkGateway
from .logging_utils import log_error
from .models import Station
from .plugins import ChargePlugin, FluentdAuditPlugin, PrometheusMetricsPlugin
from .session import PaymentSession, SessionState

logger = logging.getLogger(__name__)

PluginFactory = Callable[[], list[ChargePlugin]]


class MapSurface(Protocol):
    """
    Anything able to show stations and report which one the user picked.

    ``render`` is called after every directory refresh with the current
    stations and a callback to invoke when the user selects one of them.
    """

    def render(self, stations: Sequence[Station], on_select: Callable[[Station], None]) -> None:
        ...


class ChargeApp:
    """
    Owns one StationDirectory and one PaymentSession sharing a gateway.

    Presentation code drives it: the map surface reports a selection,
    ``select_station`` opens the session for it, and ``finish_session``
    closes the session once a terminal result has been shown, optionally
    asking the directory for fresh availability.
    """

    def __init__(
        self,
        gateway: NetworkGateway,
        poll_interval: float = 5.0,
        plugin_factory: Optional[PluginFactory] = None,
        map_surface: Optional[MapSurface] = None,
        metrics_port: Optional[int] = None,
    ):
        self.gateway = gateway
        self.metrics_port = metrics_port
        self.plugins: list[ChargePlugin] = plugin_factory() if plugin_factory else []
        self.directory = StationDirectory(gateway, interval=poll_interval, plugins=self.plugins)
        self.session = PaymentSession(gateway, plugins=self.plugins)
        self.map_surface = map_surface
        self._unsubscribe: Optional[Callable[[], None]] = None
        if map_surface is not None:
            self._unsubscribe = self.directory.subscribe(self._render_map)

    @classmethod
    def from_settings(cls, settings: Settings, map_surface: Optional[MapSurface] = None) -> "ChargeApp":
        """Build the application from process configuration."""
        gateway = HttpNetworkGateway(settings.backend_url, timeout=settings.http_timeout_seconds)

        def create_plugins() -> list[ChargePlugin]:
            plugins: list[ChargePlugin] = []
            if settings.metrics_port:
                plugins.append(PrometheusMetricsPlugin())
            if settings.fluentd_enabled:
                plugins.append(
                    FluentdAuditPlugin(
                        tag_prefix=settings.fluentd_tag,
                        host=settings.fluentd_host,
                        port=settings.fluentd_port,
                    )
                )
            return plugins

        return cls(
            gateway,
            poll_interval=settings.poll_interval_seconds,
            plugin_factory=create_plugins,
            map_surface=map_surface,
            metrics_port=settings.metrics_port,
        )

    async def start(self):
        """Initialize plugins and begin polling for stations."""
        logger.info(
            "ChargeTunis starting",
            extra={
                "event_type": "system_startup",
                "event_data": {
                    "poll_interval": self.directory.interval,
                    "plugins": [plugin.__class__.__name__ for plugin in self.plugins],
                    "metrics_port": self.metrics_port,
                },
            },
        )
        if self.metrics_port:
            start_http_server(self.metrics_port)
        for plugin in self.plugins:
            try:
                await plugin.initialize(self)
            except Exception as e:
                log_error(
                    logger,
                    "plugin_initialize_error",
                    f"Failed to initialize plugin {plugin.__class__.__name__}: {e}",
                    exc_info=e,
                )
        self.directory.start()

    async def stop(self):
        """Stop polling, reset the session and release resources."""
        logger.info("ChargeTunis stopping")
        await self.directory.stop()
        self.session.close()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for plugin in self.plugins:
            try:
                await plugin.cleanup(self)
            except Exception as e:
                log_error(
                    logger,
                    "plugin_cleanup_error",
                    f"Error cleaning up plugin {plugin.__class__.__name__}: {e}",
                    exc_info=e,
                )
        await self.gateway.aclose()
        logger.info("ChargeTunis stopped")

    def select_station(self, station: Station | str) -> SessionState:
        """
        Open the payment session for a station object or a station ID.

        Raises KeyError if the ID is not in the current snapshot.
        """
        if isinstance(station, str):
            found = self.directory.snapshot.get(station)
            if found is None:
                raise KeyError(f"Unknown station: {station}")
            station = found
        return self.session.open(station)

    async def finish_session(self, refresh: bool = False) -> SessionState:
        """Close the session, optionally refreshing station availability."""
        state = self.session.close()
        if refresh:
            await self.directory.refresh()
        return state

    def _render_map(self, directory: StationDirectory):
        self.map_surface.render(directory.stations, self.select_station)
