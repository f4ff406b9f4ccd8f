"""
Type Resolver

Binds every flattened entity to a behaviour implementation chosen by type.

Lookup is two-tiered: the namespaced type (``bpmn:Task``) is looked up in the
registry first; on a miss the first namespace prefix is stripped and the rest
(``Task``) is looked up in the caller's flat ``types`` table. Both tables are
frozen once the resolver is constructed, so one resolver can be shared across
pipeline runs.
"""

import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

from bpmn_context.errors import UnknownTypeError

logger = logging.getLogger(__name__)

SERVICE_TYPES = frozenset({"bpmn:SendTask", "bpmn:ServiceTask"})

RegistryExtender = Callable[[Dict[str, Any]], None]


def _as_mapping(types: Any) -> Dict[str, Any]:
    if isinstance(types, Mapping):
        return dict(types)
    # module or namespace object exposing behaviours as attributes
    return {name: getattr(types, name) for name in dir(types) if not name.startswith("_")}


class TypeResolver:
    """
    Registry of type name to behaviour implementation.

    The caller's ``types`` table must provide ``Definition``, ``Dummy``,
    ``BpmnError`` and ``ServiceImplementation`` besides the unprefixed element
    types (``Task``, ``SequenceFlow``, ...).
    """

    def __init__(self, types: Any, extender: Optional[RegistryExtender] = None):
        """
        Initialize resolver.

        Args:
            types: Mapping (or namespace) of unprefixed type name to behaviour
            extender: Called once with the mutable registry to add or
                override namespaced mappings
        """
        flat_types = _as_mapping(types)

        registry: Dict[str, Any] = {}
        for type_name, behaviour_name in (
            ("bpmn:DataObjectReference", "Dummy"),
            ("bpmn:Definitions", "Definition"),
            ("bpmn:Error", "BpmnError"),
        ):
            if flat_types.get(behaviour_name) is not None:
                registry[type_name] = flat_types[behaviour_name]

        if extender is not None:
            extender(registry)

        self.registry = MappingProxyType(registry)
        self.types = MappingProxyType(flat_types)
        self.service_implementation = flat_types.get("ServiceImplementation")

        logger.debug(
            f"Type resolver ready: {len(self.registry)} registered, {len(self.types)} flat types"
        )

    def get_behaviour(self, type_name: Optional[str]) -> Any:
        """
        Behaviour registered for a type.

        Raises:
            UnknownTypeError: If neither tier knows the type
        """
        behaviour = self.registry.get(type_name) if type_name else None
        if behaviour is None and type_name:
            _, separator, unprefixed = type_name.partition(":")
            if separator:
                behaviour = self.types.get(unprefixed)

        if behaviour is None:
            raise UnknownTypeError(type_name)

        return behaviour

    def resolve(self, entity: Any) -> Any:
        """
        Attach a behaviour binding to an entity and its nested behavioural
        objects (loop characteristics, event definitions, I/O specification).

        Args:
            entity: Flattened entity or nested BehaviourDefinition

        Returns:
            The behaviour bound to the entity itself
        """
        entity_type = entity.type
        entity.binding = self.get_behaviour(entity_type)

        behaviour = getattr(entity, "behaviour", None)
        if behaviour is None:
            return entity.binding

        if entity_type in SERVICE_TYPES and behaviour.get("implementation"):
            entity.service_binding = self.service_implementation

        if behaviour.loop_characteristics is not None:
            self.resolve(behaviour.loop_characteristics)

        for event_definition in behaviour.event_definitions or []:
            self.resolve(event_definition)

        if behaviour.io_specification is not None:
            self.resolve(behaviour.io_specification)

        return entity.binding

    __call__ = resolve
