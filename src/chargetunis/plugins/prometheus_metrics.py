"""Plugin for Prometheus metrics instrumentation."""

import time
from typing import Any, ClassVar

from prometheus_client import Counter, Gauge, Histogram

from ..models import PaymentIntent, PaymentResult
from .base import ChargePlugin, PluginContext, PluginHook


class PrometheusMetricsPlugin(ChargePlugin):
    """
    Exposes Prometheus metrics for station polling and payments.

    This plugin tracks:
    - Poll outcomes and the size of the latest snapshot
    - Available connectors per station
    - Gateway call latency per operation
    - Intents created and payments by terminal status

    Metrics are exposed via the standard prometheus_client registry.
    Use prometheus_client.start_http_server() or generate_latest() to expose /metrics.
    """

    # Class-level metrics (shared across all plugin instances)

    chargetunis_up = Gauge(
        "chargetunis_up",
        "1 if the ChargeTunis client is running, 0 otherwise",
    )

    chargetunis_polls_total = Counter(
        "chargetunis_polls_total",
        "Total station polls by outcome",
        labelnames=["outcome"],
    )

    chargetunis_last_poll_ts = Gauge(
        "chargetunis_last_poll_ts",
        "Unix timestamp of the last successful station poll",
    )

    chargetunis_stations = Gauge(
        "chargetunis_stations",
        "Number of stations in the latest snapshot",
    )

    chargetunis_station_available = Gauge(
        "chargetunis_station_available",
        "Available connectors reported for a station",
        labelnames=["station_id"],
    )

    # Station ids with a live chargetunis_station_available series
    _published_station_ids: ClassVar[set[str]] = set()

    chargetunis_gateway_call_seconds = Histogram(
        "chargetunis_gateway_call_seconds",
        "Gateway call duration in seconds",
        labelnames=["operation"],
    )

    chargetunis_intents_total = Counter(
        "chargetunis_intents_total",
        "Payment intent attempts by outcome",
        labelnames=["outcome"],
    )

    chargetunis_payments_total = Counter(
        "chargetunis_payments_total",
        "Confirmed payments by terminal status",
        labelnames=["status"],
    )

    def __init__(self):
        """Initialize the Prometheus metrics plugin."""
        super().__init__()
        # Track call start times for histogram, keyed by (component, call_id)
        self._call_start_times: dict[tuple[int, Any], float] = {}

    def hooks(self) -> dict[PluginHook, str]:
        """Register hooks for every remote call."""
        return {
            PluginHook.BEFORE_REFRESH: "before_list_stations",
            PluginHook.AFTER_REFRESH: "after_refresh",
            PluginHook.REFRESH_FAILED: "after_refresh_failed",
            PluginHook.BEFORE_CREATE_INTENT: "before_create_intent",
            PluginHook.AFTER_CREATE_INTENT: "after_create_intent",
            PluginHook.BEFORE_CONFIRM_PAYMENT: "before_confirm_payment",
            PluginHook.AFTER_CONFIRM_PAYMENT: "after_confirm_payment",
        }

    async def initialize(self, app):
        """Mark the client as up."""
        self.chargetunis_up.set(1)

    async def cleanup(self, app):
        """Mark the client as down."""
        self.chargetunis_up.set(0)

    # Helper methods

    @staticmethod
    def _call_key(context: PluginContext) -> tuple[int, Any]:
        return (id(context.component), context.event_data.get("call_id"))

    def _start(self, context: PluginContext):
        self._call_start_times[self._call_key(context)] = time.monotonic()

    def _observe(self, context: PluginContext, operation: str):
        """Record call duration for the call that fired the BEFORE hook."""
        started_at = self._call_start_times.pop(self._call_key(context), None)
        if started_at is None:
            return
        duration = time.monotonic() - started_at
        self.chargetunis_gateway_call_seconds.labels(operation=operation).observe(duration)

    # Hook handlers

    async def before_list_stations(self, context: PluginContext):
        self._start(context)

    async def after_refresh(self, context: PluginContext):
        """Track snapshot size and per-station availability."""
        self._observe(context, "list_stations")
        self.chargetunis_polls_total.labels(outcome="ok").inc()
        self.chargetunis_last_poll_ts.set(time.time())

        snapshot = context.result
        self.chargetunis_stations.set(len(snapshot.stations))
        current_ids = {station.id for station in snapshot.stations}
        for station_id in self._published_station_ids - current_ids:
            self.chargetunis_station_available.remove(station_id)
        for station in snapshot.stations:
            self.chargetunis_station_available.labels(station_id=station.id).set(
                station.available
            )
        self._published_station_ids.clear()
        self._published_station_ids.update(current_ids)

    async def after_refresh_failed(self, context: PluginContext):
        self._observe(context, "list_stations")
        self.chargetunis_polls_total.labels(outcome="failed").inc()

    async def before_create_intent(self, context: PluginContext):
        self._start(context)

    async def after_create_intent(self, context: PluginContext):
        self._observe(context, "create_intent")
        outcome = "ok" if isinstance(context.result, PaymentIntent) else "failed"
        self.chargetunis_intents_total.labels(outcome=outcome).inc()

    async def before_confirm_payment(self, context: PluginContext):
        self._start(context)

    async def after_confirm_payment(self, context: PluginContext):
        self._observe(context, "confirm_payment")
        result: PaymentResult = context.result
        self.chargetunis_payments_total.labels(status=result.status.value).inc()
