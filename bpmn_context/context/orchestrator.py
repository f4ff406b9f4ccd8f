"""
Context Pipeline

Runs the stages in order: reference index, scope flattening (which drives
behaviour extraction and association resolution per element), then the type
resolution pass over every flattened entity.
"""

import logging
from typing import Any, Callable, Iterator, Mapping, Optional, Union

from bpmn_context.core.observability import StageTimer, count_entities, pipeline_span
from bpmn_context.errors import UnknownTypeError
from bpmn_context.models.context import Activity, Definition, MappedContext, ScopeRef
from bpmn_context.models.moddle import ModdleContext, get_type
from bpmn_context.stages.reference_index import build_reference_index
from bpmn_context.stages.scope_flattener import ExtendFn, ScopeFlattener

logger = logging.getLogger(__name__)

TypeResolverFn = Callable[[Any], Any]

ENTITY_LISTS = (
    "processes",
    "activities",
    "data_objects",
    "message_flows",
    "sequence_flows",
    "scripts",
)


def map_moddle_context(
    moddle_context: Union[ModdleContext, Mapping[str, Any]],
    extend: Optional[ExtendFn] = None,
) -> MappedContext:
    """
    Flatten a parsed document into a pre-resolution context model.

    Args:
        moddle_context: Parser output, or a bpmn-moddle style mapping of it
        extend: Optional callback invoked with every flattened element

    Returns:
        MappedContext without behaviour bindings
    """
    if not isinstance(moddle_context, ModdleContext):
        moddle_context = ModdleContext.from_dict(moddle_context)

    root = moddle_context.root_element
    definition = Definition(
        id=root.get("id"),
        type=get_type(root),
        name=root.get("name"),
        target_namespace=root.get("targetNamespace"),
        exporter=root.get("exporter"),
        exporter_version=root.get("exporterVersion"),
    )

    with pipeline_span("map_moddle_context", definition.id):
        with StageTimer("reference_index"):
            index = build_reference_index(
                moddle_context.references, moddle_context.elements_by_id
            )

        with StageTimer("scope_flattening"):
            flattener = ScopeFlattener(index, moddle_context.root_elements, extend)
            scope = flattener.flatten(
                ScopeRef(id=definition.id, type=definition.type), moddle_context.root_elements
            )

    mapped = MappedContext(
        id=definition.id,
        type=definition.type,
        name=definition.name,
        definition=definition,
        activities=scope.activities,
        data_objects=scope.data_objects,
        message_flows=scope.message_flows,
        processes=scope.processes,
        sequence_flows=scope.sequence_flows,
        scripts=scope.scripts,
    )

    logger.info(
        f"Mapped definition {definition.id}: {len(mapped.processes)} processes, "
        f"{len(mapped.activities)} activities, {len(mapped.sequence_flows)} sequence flows, "
        f"{len(mapped.message_flows)} message flows, {len(mapped.data_objects)} data objects"
    )
    for entity_list in ENTITY_LISTS:
        count_entities(entity_list, len(getattr(mapped, entity_list)), definition.id)

    return mapped


def iter_entities(mapped: MappedContext) -> Iterator[Any]:
    """Top-level entities in resolution order, definition first."""
    yield mapped.definition
    yield from mapped.processes
    yield from mapped.activities
    yield from mapped.data_objects
    yield from mapped.message_flows
    yield from mapped.sequence_flows


def resolve_types(mapped: MappedContext, type_resolver: TypeResolverFn) -> MappedContext:
    """
    Bind a behaviour to every entity of a mapped context.

    Resolution is all or nothing: when one entity fails, the bindings already
    attached to the others are cleared again before the error propagates.

    Args:
        mapped: Flattened context
        type_resolver: Callable binding one entity, usually a TypeResolver

    Returns:
        The same context, resolved

    Raises:
        UnknownTypeError: On the first entity whose type has no behaviour
    """
    with pipeline_span("resolve_types", mapped.id), StageTimer("type_resolution"):
        try:
            for entity in iter_entities(mapped):
                type_resolver(entity)
        except UnknownTypeError as e:
            logger.error(f"Type resolution failed for definition {mapped.id}: {e}")
            for entity in iter_entities(mapped):
                _unbind(entity)
            raise

    return mapped


def _unbind(entity: Any) -> None:
    entity.binding = None
    if isinstance(entity, Activity):
        entity.service_binding = None

    behaviour = getattr(entity, "behaviour", None)
    if behaviour is None:
        return

    nested = list(behaviour.event_definitions or [])
    nested.extend(
        d for d in (behaviour.loop_characteristics, behaviour.io_specification) if d is not None
    )
    for definition in nested:
        _unbind(definition)
