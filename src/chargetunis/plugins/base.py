"""Base plugin infrastructure for the station directory and payment session."""

import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..logging_utils import log_error

logger = logging.getLogger(__name__)


class PluginHook(str, Enum):
    """
    Available plugin hooks in the directory and session lifecycles.

    Hooks are called at specific points around remote calls:
    - BEFORE_*: Called before the gateway call is issued
    - AFTER_*: Called after the call settles and state has been updated
    """

    # Station directory hooks
    BEFORE_REFRESH = "before_refresh"
    AFTER_REFRESH = "after_refresh"
    REFRESH_FAILED = "refresh_failed"

    # Payment session hooks
    BEFORE_CREATE_INTENT = "before_create_intent"
    AFTER_CREATE_INTENT = "after_create_intent"
    BEFORE_CONFIRM_PAYMENT = "before_confirm_payment"
    AFTER_CONFIRM_PAYMENT = "after_confirm_payment"


@dataclass
class PluginContext:
    """
    Context provided to plugin hooks.

    Contains:
    - component: The StationDirectory or PaymentSession firing the hook
    - event_data: Plain data describing the call (never card details). Its
      ``call_id`` is shared by the BEFORE and AFTER hooks of one call
    - result: The outcome of the call (only available in AFTER hooks)
    """

    component: Any
    event_data: dict[str, Any]
    result: Any = None


class ChargePlugin(ABC):
    """
    Base class for directory and session plugins.

    To create a plugin:
    1. Subclass ChargePlugin
    2. Implement the `hooks()` method to register your hook handlers
    3. Implement async methods for each hook you want to handle

    Example:
        class MyPlugin(ChargePlugin):
            def hooks(self) -> dict[PluginHook, str]:
                return {PluginHook.AFTER_CONFIRM_PAYMENT: "on_payment"}

            async def on_payment(self, context: PluginContext):
                logger.info(f"Payment finished: {context.result.status}")
    """

    def __init__(self):
        """Initialize the plugin."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def hooks(self) -> dict[PluginHook, str]:
        """
        Return a mapping of hooks to handler method names.

        Returns:
            Dictionary mapping PluginHook enum values to method names on this class.
        """

    async def initialize(self, app: Any):
        """
        Called once when the application starts.

        Override this to open connections or publish initial state.
        """
        _ = app

    async def cleanup(self, app: Any):
        """
        Called once when the application stops.

        Override this to release resources.
        """
        _ = app


class PluginHost:
    """Mixin that dispatches lifecycle hooks to registered plugins."""

    plugins: list[ChargePlugin]

    def _register_plugins(self, plugins: list[ChargePlugin] | None):
        """Register all plugins and build hook mapping."""
        self.plugins = list(plugins or [])
        self._call_ids = itertools.count(1)
        self._plugin_hooks: dict[PluginHook, list[tuple[ChargePlugin, str]]] = {}
        for plugin in self.plugins:
            try:
                for hook, method_name in plugin.hooks().items():
                    self._plugin_hooks.setdefault(hook, []).append((plugin, method_name))
            except Exception as e:
                log_error(
                    logger,
                    "plugin_registration_error",
                    f"Failed to register plugin {plugin.__class__.__name__}: {e}",
                    plugin=plugin.__class__.__name__,
                    exc_info=e,
                )

    async def _execute_plugin_hooks(
        self,
        hook: PluginHook,
        event_data: dict[str, Any],
        result: Any = None,
    ):
        """
        Execute all registered plugin hooks for a given lifecycle point.

        Plugin errors are logged and never interrupt the caller.
        """
        if hook not in self._plugin_hooks:
            return

        context = PluginContext(component=self, event_data=event_data, result=result)

        for plugin, method_name in self._plugin_hooks[hook]:
            try:
                method = getattr(plugin, method_name)
                await method(context)
            except Exception as e:
                log_error(
                    logger,
                    "plugin_execution_error",
                    f"Plugin {plugin.__class__.__name__}.{method_name} failed: {e}",
                    plugin=plugin.__class__.__name__,
                    hook=hook.value,
                    exc_info=e,
                )

    def _next_call_id(self) -> int:
        """Identify one remote call across its BEFORE and AFTER hooks."""
        return next(self._call_ids)
