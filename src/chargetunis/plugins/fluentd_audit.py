"""Plugin for structured audit logging to Fluentd."""

import asyncio
from typing import Any

from fluent import sender

from ..models import PaymentIntent, PaymentResult
from .base import ChargePlugin, PluginContext, PluginHook


class FluentdAuditPlugin(ChargePlugin):
    """
    Sends structured audit logs of station polls and payments to Fluentd.

    Card details never reach this plugin: hook payloads carry only the
    station, the energy quantity and amounts.

    Example log entry (tag ``chargetunis.payment.result``):
    {
        "type": "payment",
        "station": "s1",
        "kwh": 10,
        "status": "succeeded",
        "transaction_id": "tx_1"
    }
    """

    def __init__(
        self,
        tag_prefix: str = "chargetunis",
        host: str = "localhost",
        port: int = 24224,
        timeout: float = 3.0,
        buffer_overflow_handler: Any = None,
        nanosecond_precision: bool = False,
    ):
        """
        Initialize the Fluentd audit plugin.

        Args:
            tag_prefix: Prefix for Fluentd tags (default: "chargetunis")
                       Tags will be: chargetunis.payment.intent, etc.
            host: Fluentd server hostname (default: "localhost")
            port: Fluentd server port (default: 24224)
            timeout: Connection timeout in seconds (default: 3.0)
            buffer_overflow_handler: Handler for buffer overflow (default: None)
            nanosecond_precision: Use nanosecond precision timestamps (default: False)
        """
        super().__init__()
        self.tag_prefix = tag_prefix
        self.host = host
        self.port = port
        self.timeout = timeout
        self.buffer_overflow_handler = buffer_overflow_handler
        self.nanosecond_precision = nanosecond_precision
        self.sender = None

    def hooks(self) -> dict[PluginHook, str]:
        return {
            PluginHook.AFTER_REFRESH: "log_refresh",
            PluginHook.REFRESH_FAILED: "log_refresh_failed",
            PluginHook.AFTER_CREATE_INTENT: "log_create_intent",
            PluginHook.AFTER_CONFIRM_PAYMENT: "log_confirm_payment",
        }

    async def initialize(self, app):
        """Create the Fluentd sender when the application starts."""
        try:
            self.sender = sender.FluentSender(
                self.tag_prefix,
                host=self.host,
                port=self.port,
                timeout=self.timeout,
                buffer_overflow_handler=self.buffer_overflow_handler,
                nanosecond_precision=self.nanosecond_precision,
            )
        except Exception as e:
            self.logger.error(f"Failed to initialize Fluentd sender: {e}", exc_info=True)
            self.sender = None

    async def cleanup(self, app):
        """Close the Fluentd sender when the application stops."""
        if self.sender:
            try:
                await asyncio.to_thread(self.sender.close)
            except Exception as e:
                self.logger.error(f"Error closing Fluentd sender: {e}", exc_info=True)
            self.sender = None

    async def _send_event(self, tag: str, data: dict):
        """
        Send an event to Fluentd without blocking the event loop.

        Args:
            tag: Event tag (e.g., "stations.refresh", "payment.result")
            data: Event data dictionary
        """
        if not self.sender:
            return

        try:
            await asyncio.to_thread(self.sender.emit, tag, data)
        except Exception as e:
            self.logger.error(f"Failed to send event to Fluentd (tag={tag}): {e}")

    def _payment_event_data(self, context: PluginContext) -> dict:
        data = {
            "type": "payment",
            "station": context.event_data.get("station_id"),
            "kwh": context.event_data.get("kwh"),
        }
        if context.event_data.get("stale"):
            data["stale"] = True
        return data

    async def log_refresh(self, context: PluginContext):
        await self._send_event(
            "stations.refresh",
            {
                "type": "stations",
                "outcome": "ok",
                "count": context.event_data.get("station_count"),
            },
        )

    async def log_refresh_failed(self, context: PluginContext):
        await self._send_event(
            "stations.refresh",
            {
                "type": "stations",
                "outcome": "failed",
                "error": context.event_data.get("error"),
            },
        )

    async def log_create_intent(self, context: PluginContext):
        """Log intent creation (amount on success, message on failure)."""
        data = self._payment_event_data(context)
        result = context.result
        if isinstance(result, PaymentIntent):
            data["outcome"] = "ok"
            data["amount_tnd"] = result.amount_tnd
        elif isinstance(result, PaymentResult):
            data["outcome"] = "failed"
            data["message"] = result.message
        await self._send_event("payment.intent", data)

    async def log_confirm_payment(self, context: PluginContext):
        """Log the terminal payment outcome."""
        data = self._payment_event_data(context)
        result: PaymentResult = context.result
        data["amount_tnd"] = context.event_data.get("amount_tnd")
        data["status"] = result.status.value
        if result.transaction_id:
            data["transaction_id"] = result.transaction_id
        if result.message:
            data["message"] = result.message
        await self._send_event("payment.result", data)
