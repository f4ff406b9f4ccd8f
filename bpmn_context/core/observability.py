"""
Observability Infrastructure

Logging, stage tracing and entity metrics for the context pipeline.

Pipeline modules log through the standard ``logging`` module and stay silent
about configuration; once the ObservabilityManager is initialized (the CLI
does this) those records are routed into loguru sinks, each pipeline run is
traced as OpenTelemetry spans and the stages feed two instruments:

- ``context_entities_total``: flattened entities, by entity list
- ``context_stage_duration_ms``: wall time per stage (reference index,
  scope flattening, type resolution)

Without a manager every helper here degrades to a debug log line.
"""

import contextlib
import logging
import sys
import time
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Union

from loguru import logger
from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

ENTITY_COUNTER = "context_entities_total"
STAGE_HISTOGRAM = "context_stage_duration_ms"


class LogLevel(str, Enum):
    """Log level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ObservabilityConfig:
    """Where pipeline logs, stage spans and entity metrics go."""

    def __init__(
        self,
        service_name: str = "bpmn-context",
        log_level: Union[str, LogLevel] = LogLevel.INFO,
        json_logs: bool = False,
        trace_stages: bool = False,
        print_spans: bool = False,
        collect_metrics: bool = True,
    ):
        """
        Args:
            service_name: OpenTelemetry resource name
            log_level: Minimum level of the loguru sink
            json_logs: Serialize log records as JSON lines
            trace_stages: Open a span per pipeline run
            print_spans: Print finished spans to stdout (needs trace_stages)
            collect_metrics: Record entity counts and stage durations
        """
        self.service_name = service_name
        self.log_level = log_level if isinstance(log_level, str) else log_level.value
        self.json_logs = json_logs
        self.trace_stages = trace_stages
        self.print_spans = print_spans
        self.collect_metrics = collect_metrics


class InterceptHandler(logging.Handler):
    """Route standard library log records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: Union[str, int] = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


class ObservabilityManager:
    """Process-wide sinks and instruments for the context pipeline."""

    _instance: Optional["ObservabilityManager"] = None

    def __init__(self, config: ObservabilityConfig):
        self.config = config
        self.tracer: Optional[trace.Tracer] = None
        self.entity_counter = None
        self.stage_histogram = None

        self._configure_sinks()
        if config.trace_stages:
            self._configure_tracer()
        if config.collect_metrics:
            self._configure_instruments()

        logger.info(
            f"Observability ready: service={config.service_name}, level={config.log_level}, "
            f"tracing={config.trace_stages}, metrics={config.collect_metrics}"
        )

    def _configure_sinks(self) -> None:
        """Replace loguru's default sink and hand stdlib logging over to it."""
        logger.remove()

        if self.config.json_logs:
            logger.add(sys.stderr, level=self.config.log_level, serialize=True, colorize=False)
        else:
            logger.add(
                sys.stderr,
                format=(
                    "<level>{level: <8}</level> | "
                    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
                ),
                level=self.config.log_level,
                colorize=True,
                diagnose=False,
            )

        logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    def _resource(self) -> Resource:
        return Resource(attributes={SERVICE_NAME: self.config.service_name})

    def _configure_tracer(self) -> None:
        provider = TracerProvider(resource=self._resource())
        if self.config.print_spans:
            provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(provider)
        self.tracer = provider.get_tracer(__name__)

    def _configure_instruments(self) -> None:
        # Read on demand, nothing is exported
        self.metric_reader = InMemoryMetricReader()
        provider = MeterProvider(resource=self._resource(), metric_readers=[self.metric_reader])
        metrics.set_meter_provider(provider)
        # The process-wide provider can only be set once
        meter = provider.get_meter(__name__)

        self.entity_counter = meter.create_counter(
            ENTITY_COUNTER, description="Flattened entities by entity list", unit="1"
        )
        self.stage_histogram = meter.create_histogram(
            STAGE_HISTOGRAM, description="Pipeline stage wall time", unit="ms"
        )

    @classmethod
    def initialize(cls, config: Optional[ObservabilityConfig] = None) -> "ObservabilityManager":
        """Configure once; later calls return the existing manager."""
        if cls._instance is None:
            cls._instance = cls(config or ObservabilityConfig())
        return cls._instance

    @classmethod
    def get_instance(cls) -> Optional["ObservabilityManager"]:
        """The manager, or None while the pipeline runs unobserved."""
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Forget the manager so the next initialize() reconfigures sinks."""
        cls._instance = None


@contextlib.contextmanager
def pipeline_span(name: str, definition_id: Optional[str] = None) -> Iterator[Any]:
    """
    Span around one pipeline run over a definition.

    Yields the OpenTelemetry span, or None when stages are not traced.
    """
    manager = ObservabilityManager.get_instance()
    if manager is None or manager.tracer is None:
        yield None
        return

    with manager.tracer.start_as_current_span(name) as current:
        current.set_attribute("definition.id", definition_id or "")
        yield current


def count_entities(entity_list: str, count: int, definition_id: Optional[str] = None) -> None:
    """Add the size of one flattened entity list to the entity counter."""
    manager = ObservabilityManager.get_instance()
    if manager is not None and manager.entity_counter is not None:
        attributes: Dict[str, str] = {"entity_list": entity_list}
        if definition_id:
            attributes["definition.id"] = definition_id
        manager.entity_counter.add(count, attributes=attributes)

    logger.debug(f"{entity_list}: {count}")


class StageTimer:
    """
    Times one pipeline stage and records it in the stage histogram.

    Usage:
        with StageTimer("scope_flattening") as timer:
            ...
        timer.elapsed_ms
    """

    def __init__(self, stage: str):
        self.stage = stage
        self.elapsed_ms: float = 0.0
        self._started: float = 0.0

    def __enter__(self) -> "StageTimer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000

        manager = ObservabilityManager.get_instance()
        if manager is not None and manager.stage_histogram is not None:
            manager.stage_histogram.record(self.elapsed_ms, attributes={"stage": self.stage})

        logger.debug(f"Stage {self.stage} took {self.elapsed_ms:.2f}ms")


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
