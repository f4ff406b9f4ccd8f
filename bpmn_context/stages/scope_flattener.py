"""
Scope Flattener

Walks the nested element tree of a document and produces flat, ordered entity
lists. Every entity is tagged with its immediate lexical scope as a plain
``{id, type}`` value, never a handle back into the container.

Handles:
- processes and sub-processes, recursing into their flow elements
- sequence and message flows, with source/target ids from the reference index
- data objects with their reference points
- boundary events with a reference to the activity they are attached to
- scripts found on script tasks and flow conditions, plus scripts added by an
  optional extend callback
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from bpmn_context.models.context import (
    Activity,
    DataObject,
    DataObjectReference,
    MessageFlow,
    MessageFlowEndpoint,
    Process,
    ScopeRef,
    Script,
    SequenceFlow,
)
from bpmn_context.models.moddle import Element, get_type, own_fields
from bpmn_context.stages.behaviour_extraction import (
    prepare_behaviour,
    prepare_flow_behaviour,
    prepare_raw_behaviour,
)
from bpmn_context.stages.data_associations import element_ref
from bpmn_context.stages.reference_index import ReferenceIndex

logger = logging.getLogger(__name__)

PROCESS = "bpmn:Process"
SUB_PROCESS = "bpmn:SubProcess"
COLLABORATION = "bpmn:Collaboration"
MESSAGE_FLOW = "bpmn:MessageFlow"
SEQUENCE_FLOW = "bpmn:SequenceFlow"
DATA_OBJECT = "bpmn:DataObject"
BOUNDARY_EVENT = "bpmn:BoundaryEvent"
SCRIPT_TASK = "bpmn:ScriptTask"

# Reference-only kinds without identity of their own in the flat model
SKIPPED_TYPES = frozenset({"bpmn:DataObjectReference", "bpmn:Message"})

FORMAL_EXPRESSION_TYPES = frozenset({"bpmn:FormalExpression", "bpmn:tFormalExpression"})


@dataclass
class FlattenedScope:
    """Entity lists accumulated while walking one scope."""

    processes: List[Process] = field(default_factory=list)
    activities: List[Activity] = field(default_factory=list)
    data_objects: List[DataObject] = field(default_factory=list)
    sequence_flows: List[SequenceFlow] = field(default_factory=list)
    message_flows: List[MessageFlow] = field(default_factory=list)
    scripts: List[Script] = field(default_factory=list)

    def merge_nested(self, nested: "FlattenedScope") -> None:
        """
        Merge the result of a nested scope.

        Processes and message flows are only emitted at their own nesting
        level, so they are not carried up.
        """
        self.activities.extend(nested.activities)
        self.sequence_flows.extend(nested.sequence_flows)
        self.data_objects.extend(nested.data_objects)
        self.scripts.extend(nested.scripts)


class ExtendContext:
    """Handle passed to the extend callback for one element."""

    def __init__(self, element: Mapping[str, Any], result: FlattenedScope):
        self._owner = ScopeRef(id=element.get("id"), type=get_type(element))
        self._result = result

    def add_script(self, name: str, script: Mapping[str, Any]) -> Script:
        """Register a script owned by the current element."""
        registered = Script(name=name, parent=self._owner, script=_compact(script))
        self._result.scripts.append(registered)
        return registered


ExtendFn = Callable[[Mapping[str, Any], ExtendContext], None]


def _compact(values: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


class ScopeFlattener:
    """Flattens the element tree below a definition."""

    def __init__(
        self,
        index: ReferenceIndex,
        root_elements: Optional[List[Element]] = None,
        extend: Optional[ExtendFn] = None,
    ):
        """
        Initialize flattener.

        Args:
            index: Reference index built from the document's reference records
            root_elements: Top-level elements, searched to find the process
                owning a message flow endpoint
            extend: Optional callback invoked with every flattened element
        """
        self.index = index
        self.root_elements = root_elements or []
        self.extend = extend

    def flatten(
        self, parent: ScopeRef, elements: Optional[Iterable[Element]]
    ) -> FlattenedScope:
        """
        Flatten the children of one scope.

        Args:
            parent: Scope the elements are declared directly inside
            elements: Child elements, None yields an empty result

        Returns:
            FlattenedScope
        """
        result = FlattenedScope()
        if not elements:
            return result

        for element in elements:
            self._flatten_element(parent, element, result)

        return result

    def _flatten_element(
        self, parent: ScopeRef, element: Element, result: FlattenedScope
    ) -> None:
        element_type = get_type(element)

        if element_type in SKIPPED_TYPES:
            return

        if element_type == COLLABORATION:
            nested = self.flatten(parent, element.get("messageFlows"))
            result.message_flows.extend(nested.message_flows)
            return

        scope = ScopeRef(id=parent.id, type=parent.type)

        if element_type == MESSAGE_FLOW:
            result.message_flows.append(self._message_flow(scope, element))
        elif element_type == DATA_OBJECT:
            result.data_objects.append(self._data_object(scope, element))
        elif element_type == SEQUENCE_FLOW:
            result.sequence_flows.append(self._sequence_flow(scope, element, result))
        elif element_type in (PROCESS, SUB_PROCESS):
            self._container(scope, element, result)
            return
        elif element_type == BOUNDARY_EVENT:
            attached_to = element_ref(element.get("attachedToRef"))
            result.activities.append(
                self._activity(scope, element, extra={"attachedTo": attached_to})
            )
        else:
            result.activities.append(self._activity(scope, element))
            if element_type == SCRIPT_TASK:
                self._add_script(result, element, {
                    "type": element_type,
                    "scriptFormat": element.get("scriptFormat"),
                    "body": element.get("script"),
                    "resource": element.get("resource"),
                })

        self._extend(element, result)

    def _container(self, scope: ScopeRef, element: Element, result: FlattenedScope) -> None:
        element_id = element.get("id")
        element_type = get_type(element)

        fields = dict(
            id=element_id,
            type=element_type,
            name=element.get("name"),
            parent=scope,
            behaviour=prepare_behaviour(element, self.index),
        )
        if element_type == PROCESS:
            result.processes.append(Process(**fields))
        else:
            result.activities.append(Activity(**fields))

        self._extend(element, result)

        nested = self.flatten(
            ScopeRef(id=element_id, type=element_type), element.get("flowElements")
        )
        result.merge_nested(nested)

        logger.debug(
            f"Flattened scope {element_id}: {len(nested.activities)} activities, "
            f"{len(nested.sequence_flows)} sequence flows, {len(nested.data_objects)} data objects"
        )

    def _activity(
        self, scope: ScopeRef, element: Element, extra: Optional[Dict[str, Any]] = None
    ) -> Activity:
        return Activity(
            id=element.get("id"),
            type=get_type(element),
            name=element.get("name"),
            parent=scope,
            behaviour=prepare_behaviour(element, self.index, extra),
        )

    def _sequence_flow(
        self, scope: ScopeRef, element: Element, result: FlattenedScope
    ) -> SequenceFlow:
        edge = self.index.get_flow_edge(element.get("id"))

        condition = element.get("conditionExpression")
        if (
            isinstance(condition, Mapping)
            and get_type(condition) in FORMAL_EXPRESSION_TYPES
            and condition.get("language")
        ):
            self._add_script(result, element, {
                "type": get_type(condition),
                "scriptFormat": condition.get("language"),
                "body": condition.get("body"),
                "resource": condition.get("resource"),
            })

        return SequenceFlow(
            id=element.get("id"),
            name=element.get("name"),
            type=get_type(element),
            parent=scope,
            is_default=edge.is_default,
            source_id=edge.source_id,
            target_id=edge.target_id,
            behaviour=prepare_flow_behaviour(element),
        )

    def _message_flow(self, scope: ScopeRef, element: Element) -> MessageFlow:
        edge = self.index.get_flow_edge(element.get("id"))

        return MessageFlow(
            id=element.get("id"),
            name=element.get("name"),
            type=get_type(element),
            parent=scope,
            source=MessageFlowEndpoint(
                process_id=self.find_process_id(edge.source_id), id=edge.source_id
            ),
            target=MessageFlowEndpoint(
                process_id=self.find_process_id(edge.target_id), id=edge.target_id
            ),
            behaviour=prepare_raw_behaviour(element),
        )

    def _data_object(self, scope: ScopeRef, element: Element) -> DataObject:
        element_id = element.get("id")
        references = [
            DataObjectReference(
                id=record.element_id,
                type=get_type(record.element),
                behaviour=own_fields(record.element),
            )
            for record in self.index.data_object_refs
            if record.id == element_id
        ]

        return DataObject(
            id=element_id,
            name=element.get("name"),
            type=get_type(element),
            parent=scope,
            references=references,
            behaviour=prepare_raw_behaviour(element),
        )

    def find_process_id(self, element_id: Optional[str]) -> Optional[str]:
        """
        Id of the top-level process declaring ``element_id`` among its direct
        flow elements. Elements nested in sub-processes are not found.
        """
        if element_id is None:
            return None
        for root_element in self.root_elements:
            if get_type(root_element) != PROCESS:
                continue
            for child in root_element.get("flowElements") or []:
                if child.get("id") == element_id:
                    return root_element.get("id")
        return None

    def _add_script(
        self, result: FlattenedScope, element: Element, script: Mapping[str, Any]
    ) -> None:
        owner = ScopeRef(id=element.get("id"), type=get_type(element))
        result.scripts.append(Script(name=element.get("id"), parent=owner, script=_compact(script)))

    def _extend(self, element: Element, result: FlattenedScope) -> None:
        if self.extend is not None:
            self.extend(element, ExtendContext(element, result))
