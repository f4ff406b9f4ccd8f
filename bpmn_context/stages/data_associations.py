"""
Data Association Resolver

Pairs the data inputs and outputs of an I/O specification with the data
association records collected by the reference index.

Inputs consume from a data object (object -> input), outputs produce to one
(output -> object), so the data object reference is embedded on the source
side of an input association and on the target side of an output association.
Every lookup that finds nothing resolves to None.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from bpmn_context.models.context import (
    Association,
    AssociationEnd,
    DataParameter,
    DataParameterBehaviour,
    ElementRef,
    ReferenceLink,
)
from bpmn_context.models.moddle import ReferenceRecord, get_type, own_fields
from bpmn_context.stages.reference_index import SOURCE_REF, TARGET_REF, ReferenceIndex


def element_ref(element: Optional[Mapping[str, Any]]) -> Optional[ElementRef]:
    """Lightweight ``{id, type, name}`` descriptor of a raw element."""
    if not isinstance(element, Mapping):
        return None
    return ElementRef(id=element.get("id"), type=get_type(element), name=element.get("name"))


def _find(
    records: Iterable[ReferenceRecord],
    prop: str,
    *,
    ref_id: Optional[str] = None,
    element_id: Optional[str] = None,
) -> Optional[ReferenceRecord]:
    for record in records:
        if record.property != prop or not record.element:
            continue
        if ref_id is not None and record.id != ref_id:
            continue
        if element_id is not None and record.element_id != element_id:
            continue
        return record
    return None


def find_data_object_ref(index: ReferenceIndex, reference_id: Optional[str]) -> Optional[ReferenceLink]:
    """Data object reference record whose referencing element has ``reference_id``."""
    if reference_id is None:
        return None
    for record in index.data_object_refs:
        if record.element_id == reference_id:
            return _link(record)
    return None


def _link(record: ReferenceRecord) -> ReferenceLink:
    return ReferenceLink(id=record.id, property=record.property, element=element_ref(record.element))


def _association_end(
    record: Optional[ReferenceRecord], data_object: Optional[ReferenceLink] = None
) -> Optional[AssociationEnd]:
    if record is None:
        return None
    return AssociationEnd(
        id=record.id,
        property=record.property,
        element=element_ref(record.element),
        data_object=data_object,
    )


def resolve_data_input(index: ReferenceIndex, data_input_id: Optional[str]) -> Association:
    """
    Resolve the association feeding a data input.

    The target record names the data input; the source record shares the
    target's association element and names the data object reference.
    """
    records = index.data_input_associations
    target = _find(records, TARGET_REF, ref_id=data_input_id) if data_input_id else None
    source = target and _find(records, SOURCE_REF, element_id=target.element_id)

    return Association(
        source=_association_end(source, source and find_data_object_ref(index, source.id)),
        target=_association_end(target),
    )


def resolve_data_output(index: ReferenceIndex, data_output_id: Optional[str]) -> Association:
    """Resolve the association produced by a data output, roles swapped."""
    records = index.data_output_associations
    source = _find(records, SOURCE_REF, ref_id=data_output_id) if data_output_id else None
    target = source and _find(records, TARGET_REF, element_id=source.element_id)

    return Association(
        source=_association_end(source),
        target=_association_end(target, target and find_data_object_ref(index, target.id)),
    )


def prepare_io_specification(
    io_specification: Mapping[str, Any], index: ReferenceIndex
) -> Dict[str, Any]:
    """
    Behaviour fields of an I/O specification.

    Returns:
        Mapping with ``dataInputs`` and ``dataOutputs`` lists, None when the
        specification declares none
    """
    data_inputs = io_specification.get("dataInputs")
    data_outputs = io_specification.get("dataOutputs")

    return {
        "dataInputs": _parameters(data_inputs, index, resolve_data_input),
        "dataOutputs": _parameters(data_outputs, index, resolve_data_output),
    }


def _parameters(definitions, index: ReferenceIndex, resolve) -> Optional[List[DataParameter]]:
    if definitions is None:
        return None

    parameters = []
    for definition in definitions:
        fields = own_fields(definition)
        fields.update(
            type=get_type(definition),
            behaviour=DataParameterBehaviour(association=resolve(index, definition.get("id"))),
        )
        parameters.append(DataParameter.model_validate(fields))
    return parameters
