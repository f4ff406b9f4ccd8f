"""
Core infrastructure module for the context serializer.

Provides logging, stage tracing and entity metrics.
"""

from .observability import (
    ENTITY_COUNTER,
    STAGE_HISTOGRAM,
    InterceptHandler,
    LogLevel,
    ObservabilityConfig,
    ObservabilityManager,
    StageTimer,
    count_entities,
    pipeline_span,
)

__all__ = [
    "ENTITY_COUNTER",
    "STAGE_HISTOGRAM",
    "InterceptHandler",
    "LogLevel",
    "ObservabilityConfig",
    "ObservabilityManager",
    "StageTimer",
    "count_entities",
    "pipeline_span",
]
