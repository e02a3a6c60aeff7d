"""Plugin framework for extending directory and session behavior."""

from .base import ChargePlugin, PluginContext, PluginHook, PluginHost
from .fluentd_audit import FluentdAuditPlugin
from .prometheus_metrics import PrometheusMetricsPlugin

__all__ = [
    "ChargePlugin",
    "FluentdAuditPlugin",
    "PluginContext",
    "PluginHook",
    "PluginHost",
    "PrometheusMetricsPlugin",
]
