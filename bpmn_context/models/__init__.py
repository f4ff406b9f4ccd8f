"""Input contract and flattened context models."""

from .context import (
    Activity,
    Association,
    AssociationEnd,
    Behaviour,
    BehaviourDefinition,
    DataObject,
    DataObjectReference,
    DataParameter,
    Definition,
    ElementRef,
    MessageFlow,
    MessageFlowEndpoint,
    Process,
    ReferenceLink,
    Resource,
    ScopeRef,
    Script,
    SequenceFlow,
    MappedContext,
)
from .moddle import ModdleContext, ReferenceRecord, own_fields

__all__ = [
    "Activity",
    "Association",
    "AssociationEnd",
    "Behaviour",
    "BehaviourDefinition",
    "DataObject",
    "DataObjectReference",
    "DataParameter",
    "Definition",
    "ElementRef",
    "MessageFlow",
    "MessageFlowEndpoint",
    "ModdleContext",
    "Process",
    "ReferenceLink",
    "ReferenceRecord",
    "Resource",
    "ScopeRef",
    "Script",
    "SequenceFlow",
    "MappedContext",
    "own_fields",
]
