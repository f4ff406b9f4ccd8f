"""
Pipeline stages of the context serializer.

Reference indexing, scope flattening, behaviour extraction, data association
resolution and type resolution.
"""

from .behaviour_extraction import (
    map_definition,
    map_resource,
    prepare_behaviour,
    prepare_flow_behaviour,
    unwrap_body,
)
from .data_associations import (
    element_ref,
    prepare_io_specification,
    resolve_data_input,
    resolve_data_output,
)
from .reference_index import FlowEdge, ReferenceIndex, build_reference_index
from .scope_flattener import ExtendContext, FlattenedScope, ScopeFlattener
from .type_resolution import TypeResolver

__all__ = [
    # Reference index
    "FlowEdge",
    "ReferenceIndex",
    "build_reference_index",
    # Flattening
    "ExtendContext",
    "FlattenedScope",
    "ScopeFlattener",
    # Behaviour extraction
    "map_definition",
    "map_resource",
    "prepare_behaviour",
    "prepare_flow_behaviour",
    "unwrap_body",
    # Data associations
    "element_ref",
    "prepare_io_specification",
    "resolve_data_input",
    "resolve_data_output",
    # Type resolution
    "TypeResolver",
]
