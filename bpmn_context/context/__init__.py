"""
Context pipeline and query facade.

Maps a parsed document into a flat model, resolves behaviour types and
exposes the result through ContextApi.
"""

from bpmn_context.context.api import ContextApi, build_context, deserialize
from bpmn_context.context.config import SerializerConfig
from bpmn_context.context.orchestrator import iter_entities, map_moddle_context, resolve_types

__all__ = [
    # Configuration
    "SerializerConfig",
    # Pipeline
    "map_moddle_context",
    "resolve_types",
    "iter_entities",
    # Facade
    "ContextApi",
    "build_context",
    "deserialize",
]
