"""
BPMN Context: flatten parsed BPMN documents into a queryable model

Normalizes a bpmn-moddle style element tree and reference list into flat
entity lists scoped by their container, extracts behavioural detail
(event definitions, loop characteristics, I/O specifications, data
associations) and binds each entity to a behaviour implementation by type.
"""

# Pipeline and facade
from bpmn_context.context import (
    ContextApi,
    SerializerConfig,
    build_context,
    deserialize,
    map_moddle_context,
    resolve_types,
)

# Errors
from bpmn_context.errors import ContextError, DeserializationError, UnknownTypeError

# Models
from bpmn_context.models import MappedContext, ModdleContext, ReferenceRecord

# Stages
from bpmn_context.stages import TypeResolver

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Pipeline
    "ContextApi",
    "SerializerConfig",
    "build_context",
    "deserialize",
    "map_moddle_context",
    "resolve_types",
    "TypeResolver",
    # Models
    "MappedContext",
    "ModdleContext",
    "ReferenceRecord",
    # Errors
    "ContextError",
    "DeserializationError",
    "UnknownTypeError",
]
