"""
Serializer Configuration

Settings for logging, observability and output formatting, loadable from
environment variables.
"""

import os
from dataclasses import dataclass
from typing import Optional

from bpmn_context.core.observability import LogLevel, ObservabilityConfig

ENV_PREFIX = "BPMN_CONTEXT_"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(ENV_PREFIX + name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SerializerConfig:
    """Complete serializer configuration."""

    # Observability
    log_level: str = LogLevel.INFO.value
    json_logs: bool = False
    enable_tracing: bool = False
    enable_metrics: bool = True

    # Output
    indent: Optional[int] = None

    @classmethod
    def from_env(cls) -> "SerializerConfig":
        """Create config from ``BPMN_CONTEXT_*`` environment variables.

        Returns:
            SerializerConfig instance
        """
        indent = os.getenv(ENV_PREFIX + "INDENT")
        try:
            indent_value = int(indent) if indent else None
        except ValueError:
            indent_value = None

        log_level = os.getenv(ENV_PREFIX + "LOG_LEVEL", LogLevel.INFO.value).upper()
        if log_level not in LogLevel.__members__:
            log_level = LogLevel.INFO.value

        return cls(
            log_level=log_level,
            json_logs=_env_flag("JSON_LOGS", False),
            enable_tracing=_env_flag("TRACING", False),
            enable_metrics=_env_flag("METRICS", True),
            indent=indent_value,
        )

    def observability_config(self, service_name: str = "bpmn-context") -> ObservabilityConfig:
        return ObservabilityConfig(
            service_name=service_name,
            log_level=self.log_level,
            json_logs=self.json_logs,
            trace_stages=self.enable_tracing,
            collect_metrics=self.enable_metrics,
        )
