"""
Flattened Context Model

Pydantic models for the normalized, queryable representation of a BPMN
document. Every top-level entity carries a non-owning ``parent`` scope
reference and a ``behaviour`` bundle. Behaviour bindings chosen by the type
resolver live in excluded fields, so serialization never includes them and a
deserialized model has to be resolved again before use.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ScopeRef(BaseModel):
    """Lexical container of an entity (definition, process or sub-process)."""

    id: Optional[str] = Field(None, description="Container id")
    type: Optional[str] = Field(None, description="Container type")


class ElementRef(BaseModel):
    """Lightweight reference descriptor standing in for a full element."""

    id: Optional[str] = Field(None, description="Referenced element id")
    type: Optional[str] = Field(None, description="Referenced element type")
    name: Optional[str] = Field(None, description="Referenced element name")


class Bindable(BaseModel):
    """Base for anything the type resolver attaches a behaviour to."""

    binding: Optional[Any] = Field(
        None, exclude=True, description="Behaviour implementation selected by type"
    )


class ReferenceLink(BaseModel):
    """A reference record reduced to identifiers."""

    id: Optional[str] = Field(None, description="Referenced id")
    property: str = Field(..., description="Reference role, e.g. bpmn:sourceRef")
    element: Optional[ElementRef] = Field(None, description="Referencing element")


class AssociationEnd(ReferenceLink):
    """One side of a data association."""

    data_object: Optional[ReferenceLink] = Field(
        None, description="Data object reference bound on this side"
    )


class Association(BaseModel):
    """Source/target pairing between a data object reference and a parameter."""

    source: Optional[AssociationEnd] = None
    target: Optional[AssociationEnd] = None


class DataParameterBehaviour(BaseModel):
    association: Association = Field(default_factory=Association)


class DataParameter(BaseModel):
    """Data input or output declared by an I/O specification."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    type: Optional[str] = None
    name: Optional[str] = None
    behaviour: DataParameterBehaviour = Field(default_factory=DataParameterBehaviour)


class Resource(BaseModel):
    """Resource assignment of an activity."""

    type: Optional[str] = Field(None, description="Resource role type")
    expression: Optional[str] = Field(None, description="Unwrapped assignment expression")
    behaviour: Dict[str, Any] = Field(default_factory=dict, description="Raw resource fields")


class Behaviour(BaseModel):
    """
    Behaviour field bundle.

    Raw element fields are kept as extra attributes under their original
    names; the nested behavioural objects below are typed so they survive a
    serialize/deserialize round trip.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    event_definitions: Optional[List["BehaviourDefinition"]] = Field(
        None, alias="eventDefinitions"
    )
    loop_characteristics: Optional["BehaviourDefinition"] = Field(
        None, alias="loopCharacteristics"
    )
    io_specification: Optional["BehaviourDefinition"] = Field(None, alias="ioSpecification")
    resources: Optional[List[Resource]] = None
    attached_to: Optional[ElementRef] = Field(None, alias="attachedTo")
    data_inputs: Optional[List[DataParameter]] = Field(None, alias="dataInputs")
    data_outputs: Optional[List[DataParameter]] = Field(None, alias="dataOutputs")

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a raw field or typed member by its document name."""
        extra = self.__pydantic_extra__ or {}
        if key in extra:
            return extra[key]
        field_name = _ALIAS_TO_FIELD.get(key, key)
        if field_name in type(self).model_fields:
            value = getattr(self, field_name)
            return default if value is None else value
        return default


class BehaviourDefinition(Bindable):
    """Nested behavioural object: event definition, loop characteristics, I/O specification."""

    type: Optional[str] = Field(None, description="Namespaced definition type")
    behaviour: Behaviour = Field(default_factory=Behaviour)


class Definition(Bindable):
    """Root entity, one per document."""

    id: Optional[str] = None
    type: Optional[str] = None
    name: Optional[str] = None
    target_namespace: Optional[str] = None
    exporter: Optional[str] = None
    exporter_version: Optional[str] = None


class Entity(Bindable):
    """Flattened element tagged with its immediate scope."""

    id: Optional[str] = None
    type: Optional[str] = None
    name: Optional[str] = None
    parent: ScopeRef = Field(default_factory=ScopeRef)
    behaviour: Behaviour = Field(default_factory=Behaviour)


class Process(Entity):
    """Top-level process."""


class Activity(Entity):
    """Task, event, gateway, sub-process or other flow element."""

    service_binding: Optional[Any] = Field(
        None, exclude=True, description="Service implementation behaviour"
    )


class SequenceFlow(Entity):
    source_id: Optional[str] = None
    target_id: Optional[str] = None
    is_default: Optional[bool] = None


class MessageFlowEndpoint(BaseModel):
    process_id: Optional[str] = Field(None, description="Top-level process containing the element")
    id: Optional[str] = Field(None, description="Element id")


class MessageFlow(Entity):
    source: MessageFlowEndpoint = Field(default_factory=MessageFlowEndpoint)
    target: MessageFlowEndpoint = Field(default_factory=MessageFlowEndpoint)


class DataObjectReference(BaseModel):
    """A reference point of a data object somewhere in the tree."""

    id: Optional[str] = None
    type: Optional[str] = None
    behaviour: Dict[str, Any] = Field(default_factory=dict)


class DataObject(Entity):
    references: List[DataObjectReference] = Field(default_factory=list)


class Script(BaseModel):
    """Script found on an element, registered by name."""

    name: str = Field(..., description="Script name, the owning element id by default")
    parent: ScopeRef = Field(..., description="Element owning the script")
    script: Dict[str, Any] = Field(default_factory=dict, description="Script format, body, resource")


class MappedContext(BaseModel):
    """
    Flattened model of one document.

    Also the structural snapshot written by serialization; a model read back
    from a snapshot carries no behaviour bindings until it is resolved again.
    """

    id: Optional[str] = None
    type: Optional[str] = None
    name: Optional[str] = None
    definition: Definition
    activities: List[Activity] = Field(default_factory=list)
    data_objects: List[DataObject] = Field(default_factory=list)
    message_flows: List[MessageFlow] = Field(default_factory=list)
    processes: List[Process] = Field(default_factory=list)
    sequence_flows: List[SequenceFlow] = Field(default_factory=list)
    scripts: List[Script] = Field(default_factory=list)


Behaviour.model_rebuild()

_ALIAS_TO_FIELD = {
    field.alias: name for name, field in Behaviour.model_fields.items() if field.alias
}
