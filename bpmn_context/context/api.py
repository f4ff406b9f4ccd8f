"""
Context API

Read-only query facade over a flattened, type-resolved document, plus the
serialize/deserialize round trip.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from bpmn_context.context.orchestrator import (
    TypeResolverFn,
    map_moddle_context,
    resolve_types,
)
from bpmn_context.errors import DeserializationError
from bpmn_context.models.context import (
    Activity,
    DataObject,
    MappedContext,
    MessageFlow,
    Process,
    Script,
    SequenceFlow,
)
from bpmn_context.models.moddle import ModdleContext
from bpmn_context.stages.scope_flattener import ExtendFn

logger = logging.getLogger(__name__)

ERROR_TYPE = "bpmn:Error"


class ContextApi:
    """Query facade over a resolved context model."""

    def __init__(self, mapped: MappedContext):
        self._mapped = mapped
        self.definition = mapped.definition
        self.id = mapped.definition.id
        self.type = mapped.definition.type
        self.name = mapped.definition.name

    @property
    def mapped(self) -> MappedContext:
        return self._mapped

    # ------------------------------------------------------------------
    # Processes
    # ------------------------------------------------------------------

    def get_processes(self) -> List[Process]:
        return self._mapped.processes

    def get_process_by_id(self, process_id: str) -> Optional[Process]:
        return _find_by_id(self._mapped.processes, process_id)

    def get_executable_processes(self) -> List[Process]:
        """Processes whose behaviour declares ``isExecutable``."""
        return [p for p in self._mapped.processes if p.behaviour.get("isExecutable")]

    # ------------------------------------------------------------------
    # Activities
    # ------------------------------------------------------------------

    def get_activities(self, scope_id: Optional[str] = None) -> List[Activity]:
        """All activities, or those declared directly inside ``scope_id``."""
        if not scope_id:
            return self._mapped.activities
        return [a for a in self._mapped.activities if a.parent.id == scope_id]

    def get_activity_by_id(self, activity_id: str) -> Optional[Activity]:
        return _find_by_id(self._mapped.activities, activity_id)

    def get_errors(self) -> List[Activity]:
        return [a for a in self._mapped.activities if a.type == ERROR_TYPE]

    def get_error_by_id(self, error_id: str) -> Optional[Activity]:
        return self.get_activity_by_id(error_id)

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    def get_sequence_flows(self, scope_id: Optional[str] = None) -> List[SequenceFlow]:
        if not scope_id:
            return self._mapped.sequence_flows
        return [f for f in self._mapped.sequence_flows if f.parent.id == scope_id]

    def get_sequence_flow_by_id(self, flow_id: str) -> Optional[SequenceFlow]:
        return _find_by_id(self._mapped.sequence_flows, flow_id)

    def get_inbound_sequence_flows(self, activity_id: str) -> List[SequenceFlow]:
        return [f for f in self._mapped.sequence_flows if f.target_id == activity_id]

    def get_outbound_sequence_flows(self, activity_id: str) -> List[SequenceFlow]:
        return [f for f in self._mapped.sequence_flows if f.source_id == activity_id]

    def get_message_flows(self, scope_id: Optional[str] = None) -> List[MessageFlow]:
        """All message flows, or those whose source lies in process ``scope_id``."""
        if not scope_id:
            return self._mapped.message_flows
        return [f for f in self._mapped.message_flows if f.source.process_id == scope_id]

    # ------------------------------------------------------------------
    # Data objects and scripts
    # ------------------------------------------------------------------

    def get_data_objects(self) -> List[DataObject]:
        return self._mapped.data_objects

    def get_data_object_by_id(self, data_object_id: str) -> Optional[DataObject]:
        return _find_by_id(self._mapped.data_objects, data_object_id)

    def get_scripts(self, element_type: Optional[str] = None) -> List[Script]:
        """All scripts, or those owned by elements of ``element_type``."""
        if not element_type:
            return self._mapped.scripts
        return [s for s in self._mapped.scripts if s.parent.type == element_type]

    def get_scripts_by_element_id(self, element_id: str) -> List[Script]:
        return [s for s in self._mapped.scripts if s.parent.id == element_id]

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Structural snapshot, behaviour bindings excluded."""
        return self._mapped.model_dump(mode="json", by_alias=True)

    def serialize(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)


def _find_by_id(entities, entity_id):
    for entity in entities:
        if entity.id == entity_id:
            return entity
    return None


def build_context(
    moddle_context: Union[ModdleContext, Mapping[str, Any]],
    type_resolver: TypeResolverFn,
    extend: Optional[ExtendFn] = None,
) -> ContextApi:
    """
    Map and resolve a parsed document.

    Args:
        moddle_context: Parser output
        type_resolver: Callable binding one entity, usually a TypeResolver
        extend: Optional callback invoked with every flattened element

    Returns:
        ContextApi

    Raises:
        UnknownTypeError: If an element type has no registered behaviour
    """
    mapped = map_moddle_context(moddle_context, extend)
    return ContextApi(resolve_types(mapped, type_resolver))


def deserialize(
    serialized: Union[str, bytes, Mapping[str, Any]], type_resolver: TypeResolverFn
) -> ContextApi:
    """
    Rebuild a context from a serialized snapshot and bind fresh behaviours.

    Args:
        serialized: JSON text or an already parsed snapshot
        type_resolver: Callable binding one entity

    Returns:
        ContextApi

    Raises:
        DeserializationError: If the snapshot is not valid
        UnknownTypeError: If an element type has no registered behaviour
    """
    try:
        if isinstance(serialized, (str, bytes)):
            mapped = MappedContext.model_validate_json(serialized)
        else:
            mapped = MappedContext.model_validate(serialized)
    except ValidationError as e:
        logger.error(f"Invalid serialized context: {e.error_count()} errors")
        raise DeserializationError(f"Invalid serialized context: {e}") from e

    return ContextApi(resolve_types(mapped, type_resolver))
