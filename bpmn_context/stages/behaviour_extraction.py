"""
Behaviour Field Extractor

Builds the behaviour bundle of a flattened element: a copy of the element's
own fields where the nested behavioural objects (event definitions, loop
characteristics, I/O specification, resources) are replaced by their
normalized form. Literal expression bodies are pulled out of their wrapper
objects so consumers get plain strings.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from bpmn_context.models.context import Behaviour, BehaviourDefinition, Resource
from bpmn_context.models.moddle import REF_KEY_PATTERN, get_type, own_fields
from bpmn_context.stages.data_associations import element_ref, prepare_io_specification
from bpmn_context.stages.reference_index import ReferenceIndex

logger = logging.getLogger(__name__)

CONDITIONAL_EVENT_DEFINITION = "bpmn:ConditionalEventDefinition"
INPUT_OUTPUT_SPECIFICATION = "bpmn:InputOutputSpecification"
MULTI_INSTANCE_LOOP_CHARACTERISTICS = "bpmn:MultiInstanceLoopCharacteristics"
TIMER_EVENT_DEFINITION = "bpmn:TimerEventDefinition"

TIMER_FIELDS = ("timeDuration", "timeCycle", "timeDate")


def unwrap_body(wrapper: Any) -> Optional[str]:
    """Literal body of an expression wrapper such as ``bpmn:FormalExpression``."""
    if not isinstance(wrapper, Mapping):
        return None
    return wrapper.get("body")


def spread_ref(reference: Any) -> Optional[Dict[str, Any]]:
    ref = element_ref(reference)
    return ref.model_dump() if ref is not None else None


def map_definition(
    definition: Optional[Mapping[str, Any]], index: ReferenceIndex
) -> Optional[BehaviourDefinition]:
    """
    Normalize a nested behavioural definition.

    Args:
        definition: Raw event definition, loop characteristics or I/O specification
        index: Reference index, needed to resolve I/O specification associations

    Returns:
        BehaviourDefinition, None for a missing definition
    """
    if not definition:
        return None

    definition_type = get_type(definition)

    if definition_type == INPUT_OUTPUT_SPECIFICATION:
        fields = prepare_io_specification(definition, index)
    else:
        fields = own_fields(definition)
        for key, value in definition.items():
            if REF_KEY_PATTERN.match(key):
                fields[key] = spread_ref(value)

        if definition_type == CONDITIONAL_EVENT_DEFINITION:
            fields["expression"] = unwrap_body(definition.get("condition"))
        elif definition_type == MULTI_INSTANCE_LOOP_CHARACTERISTICS:
            fields["loopCardinality"] = unwrap_body(definition.get("loopCardinality"))
            fields["completionCondition"] = unwrap_body(definition.get("completionCondition"))
        elif definition_type == TIMER_EVENT_DEFINITION:
            for key in TIMER_FIELDS:
                fields[key] = unwrap_body(definition.get(key))

    return BehaviourDefinition(type=definition_type, behaviour=Behaviour.model_validate(fields))


def map_resource(resource: Optional[Mapping[str, Any]]) -> Optional[Resource]:
    if not resource:
        return None

    assignment = resource.get("resourceAssignmentExpression") or {}

    return Resource(
        type=get_type(resource),
        expression=unwrap_body(assignment.get("expression")),
        behaviour=own_fields(resource),
    )


def _map_all(items, mapper) -> Optional[List[Any]]:
    if items is None:
        return None
    mapped = (mapper(item) for item in items)
    return [item for item in mapped if item is not None]


def prepare_behaviour(
    element: Mapping[str, Any],
    index: ReferenceIndex,
    extra: Optional[Dict[str, Any]] = None,
) -> Behaviour:
    """
    Behaviour bundle of an activity or process element.

    Args:
        element: Raw element
        index: Reference index
        extra: Computed fields (e.g. ``attachedTo``), overridden by the element's own fields

    Returns:
        Behaviour
    """
    fields: Dict[str, Any] = dict(extra or {})
    fields.update(own_fields(element))
    fields.update(
        eventDefinitions=_map_all(
            element.get("eventDefinitions"), lambda ed: map_definition(ed, index)
        ),
        loopCharacteristics=map_definition(element.get("loopCharacteristics"), index),
        ioSpecification=map_definition(element.get("ioSpecification"), index),
        resources=_map_all(element.get("resources"), map_resource),
    )
    return Behaviour.model_validate(fields)


def prepare_flow_behaviour(element: Mapping[str, Any]) -> Behaviour:
    """
    Behaviour bundle of a sequence flow.

    The condition body surfaces as ``expression`` only when the condition
    expression carries a type discriminant and a body; untyped conditions
    are left as raw fields.
    """
    fields = own_fields(element)
    condition = element.get("conditionExpression")
    if isinstance(condition, Mapping) and get_type(condition):
        body = unwrap_body(condition)
        if body is not None:
            fields["expression"] = body
    return Behaviour.model_validate(fields)


def prepare_raw_behaviour(element: Mapping[str, Any]) -> Behaviour:
    """Behaviour bundle holding the element's own fields only."""
    return Behaviour.model_validate(own_fields(element))
