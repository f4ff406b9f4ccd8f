"""
Reference Index Builder

Folds the parser's flat reference record list into lookup structures used by
the rest of the pipeline:

- flow edge fragments keyed by flow id, accumulated across records
- data object reference records
- data input / data output association records, kept raw and unpaired
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from bpmn_context.models.moddle import Element, ReferenceRecord, get_type

logger = logging.getLogger(__name__)

SOURCE_REF = "bpmn:sourceRef"
TARGET_REF = "bpmn:targetRef"
DEFAULT_REF = "bpmn:default"
DATA_OBJECT_REF = "bpmn:dataObjectRef"

DATA_INPUT_ASSOCIATION = "bpmn:DataInputAssociation"
DATA_OUTPUT_ASSOCIATION = "bpmn:DataOutputAssociation"


@dataclass
class FlowEdge:
    """Partially assembled source/target/default data for one flow."""

    id: Optional[str] = None
    type: Optional[str] = None
    source_id: Optional[str] = None
    target_id: Optional[str] = None
    is_default: Optional[bool] = None
    element: Optional[Element] = field(default=None, repr=False, compare=False)


@dataclass
class ReferenceIndex:
    """Lookup structures built from reference records."""

    flow_edges: Dict[str, FlowEdge] = field(default_factory=dict)
    data_object_refs: List[ReferenceRecord] = field(default_factory=list)
    data_input_associations: List[ReferenceRecord] = field(default_factory=list)
    data_output_associations: List[ReferenceRecord] = field(default_factory=list)

    def get_flow_edge(self, flow_id: Optional[str]) -> FlowEdge:
        """Edge fragment for a flow id, empty when no record mentioned it."""
        if flow_id is None:
            return FlowEdge()
        return self.flow_edges.get(flow_id) or FlowEdge(id=flow_id)

    def upsert_flow_edge(self, flow_id: str) -> FlowEdge:
        edge = self.flow_edges.get(flow_id)
        if edge is None:
            edge = self.flow_edges[flow_id] = FlowEdge(id=flow_id)
        return edge


def build_reference_index(
    references: Iterable[ReferenceRecord],
    elements_by_id: Optional[Mapping[str, Element]] = None,
) -> ReferenceIndex:
    """
    Build the reference index.

    Source and target records are keyed on the referencing flow's id while
    default records come from the gateway and are keyed on the referenced
    flow id, so every edge fragment ends up under the flow's own id.

    Args:
        references: Reference records from the document parser
        elements_by_id: Parser element map; a flow edge keeps the indexed
            flow element, falling back to the record's own element

    Returns:
        ReferenceIndex
    """
    index = ReferenceIndex()
    elements_by_id = elements_by_id or {}
    skipped = 0

    for record in references:
        element = record.element
        if not element:
            skipped += 1
            continue

        element_id = element.get("id")

        if record.property == SOURCE_REF and element_id is not None:
            edge = index.upsert_flow_edge(element_id)
            edge.element = elements_by_id.get(element_id) or element
            edge.type = get_type(edge.element)
            edge.source_id = record.id
        elif record.property == TARGET_REF and element_id is not None:
            edge = index.upsert_flow_edge(element_id)
            edge.target_id = record.id
        elif record.property == DEFAULT_REF:
            if record.id is not None:
                index.upsert_flow_edge(record.id).is_default = True
        elif record.property == DATA_OBJECT_REF:
            index.data_object_refs.append(record)

        element_type = get_type(element)
        if element_type == DATA_INPUT_ASSOCIATION:
            index.data_input_associations.append(record)
        elif element_type == DATA_OUTPUT_ASSOCIATION:
            index.data_output_associations.append(record)

    if skipped:
        logger.debug(f"Skipped {skipped} unresolved reference records")

    logger.debug(
        f"Reference index: {len(index.flow_edges)} flow edges, "
        f"{len(index.data_object_refs)} data object refs, "
        f"{len(index.data_input_associations)} input / "
        f"{len(index.data_output_associations)} output association records"
    )

    return index
