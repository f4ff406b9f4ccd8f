"""
Parser Input Contract

Describes what the external document parser hands to the pipeline: an
id-indexed element map, a flat list of reference records and the root
``bpmn:Definitions`` element. Elements are plain mappings shaped like
bpmn-moddle output: ``$type`` carries the namespaced element type, attributes
are regular keys, nested elements live in lists such as ``rootElements`` or
``flowElements`` and resolved reference properties hold the referenced element.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

Element = Dict[str, Any]

TYPE_KEY = "$type"

# Reference properties are not part of an element's own field copy
REF_KEY_PATTERN = re.compile(r"^(?!\$).+?Ref$")
REF_LIST_KEY_PATTERN = re.compile(r"^(?!\$).+?Refs$")
REFERENCE_PROPERTIES = frozenset({"default", "incoming", "outgoing"})

# Internal keys other than $type are dropped
INTERNAL_KEY_PREFIX = "$"


def get_type(element: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Namespaced type of a raw element, e.g. ``bpmn:Task``."""
    if element is None:
        return None
    return element.get(TYPE_KEY)


def is_reference_property(key: str) -> bool:
    """Whether a raw element key holds a reference to another element."""
    return (
        key in REFERENCE_PROPERTIES
        or bool(REF_KEY_PATTERN.match(key))
        or bool(REF_LIST_KEY_PATTERN.match(key))
    )


def own_fields(element: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Value copy of an element's own fields.

    Internal ``$``-prefixed keys (except ``$type``) and reference properties
    are left out at every nesting level, mirroring what a moddle element
    exposes as enumerable. Some resolved references carry plain names
    (``bpmn:LinkEventDefinition.target``, ``bpmn:Process.supports``); an
    element reached again along the path being copied is written as an
    ``{id, type, name}`` descriptor, so the copy is always a finite tree.

    Args:
        element: Raw parser element

    Returns:
        New dict, empty for a missing element
    """
    if not element:
        return {}
    return _copy_fields(element, frozenset())


def _copy_fields(element: Mapping[str, Any], path: FrozenSet[int]) -> Dict[str, Any]:
    path = path | {id(element)}
    return {
        key: _copy_value(value, path)
        for key, value in element.items()
        if (key == TYPE_KEY or not key.startswith(INTERNAL_KEY_PREFIX))
        and not is_reference_property(key)
    }


def _copy_value(value: Any, path: FrozenSet[int]) -> Any:
    if isinstance(value, Mapping):
        if id(value) in path:
            return {"id": value.get("id"), "type": get_type(value), "name": value.get("name")}
        return _copy_fields(value, path)
    if isinstance(value, (list, tuple)):
        return [_copy_value(item, path) for item in value]
    return value


@dataclass
class ReferenceRecord:
    """
    A parser fact: ``element`` references the element with id ``id`` via
    ``property`` (e.g. ``bpmn:sourceRef``).
    """

    property: str
    id: Optional[str] = None
    element: Optional[Element] = None

    @property
    def element_id(self) -> Optional[str]:
        """Id of the referencing element, None when unresolved."""
        if not self.element:
            return None
        return self.element.get("id")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReferenceRecord":
        return cls(
            property=data.get("property", ""),
            id=data.get("id"),
            element=data.get("element"),
        )


@dataclass
class ModdleContext:
    """Everything the pipeline consumes from the document parser."""

    root_element: Element
    elements_by_id: Dict[str, Element] = field(default_factory=dict)
    references: List[ReferenceRecord] = field(default_factory=list)

    @property
    def root_elements(self) -> List[Element]:
        return self.root_element.get("rootElements") or []

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModdleContext":
        """
        Build from a bpmn-moddle style mapping.

        Accepts ``elementsById``, ``references`` and either ``rootElement`` or
        ``rootHandler.element``.

        Raises:
            ValueError: If no root element is present
        """
        root = data.get("rootElement")
        if root is None:
            root = (data.get("rootHandler") or {}).get("element")
        if root is None:
            raise ValueError("Moddle context has no root element")

        references = [
            ref if isinstance(ref, ReferenceRecord) else ReferenceRecord.from_dict(ref)
            for ref in data.get("references") or []
        ]

        return cls(
            root_element=root,
            elements_by_id=dict(data.get("elementsById") or {}),
            references=references,
        )
