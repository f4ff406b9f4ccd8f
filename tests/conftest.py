"""Pytest configuration for bpmn-context tests."""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add the project root to the path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from bpmn_context.models.moddle import ModdleContext, ReferenceRecord
from bpmn_context.stages.type_resolution import TypeResolver


# ===========================
# Element builders
# ===========================


def element(type_name: str, element_id: str, **attrs: Any) -> Dict[str, Any]:
    """Raw moddle-like element."""
    return {"$type": type_name, "id": element_id, **attrs}


def expression(body: Optional[str], type_name: Optional[str] = "bpmn:FormalExpression", **attrs):
    wrapper = {"body": body, **attrs}
    if type_name:
        wrapper["$type"] = type_name
    return wrapper


def ref(source: Dict[str, Any], prop: str, target_id: str) -> ReferenceRecord:
    """Reference record: ``source`` references ``target_id`` via ``prop``."""
    return ReferenceRecord(property=prop, id=target_id, element=source)


def flow_refs(flow: Dict[str, Any], source_id: str, target_id: str) -> List[ReferenceRecord]:
    return [ref(flow, "bpmn:sourceRef", source_id), ref(flow, "bpmn:targetRef", target_id)]


def definitions(*root_elements: Dict[str, Any], **attrs: Any) -> Dict[str, Any]:
    return {
        "$type": "bpmn:Definitions",
        "id": attrs.pop("id", "Def_1"),
        "rootElements": list(root_elements),
        **attrs,
    }


def index_elements(root: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    by_id = {}
    seen = set()

    def walk(node):
        if isinstance(node, (dict, list)):
            if id(node) in seen:
                return
            seen.add(id(node))
        if isinstance(node, dict):
            if node.get("id") and node.get("$type"):
                by_id.setdefault(node["id"], node)
            for key, value in node.items():
                if key in ("sourceRef", "targetRef", "attachedToRef", "outgoing", "incoming"):
                    continue
                walk(value)
        elif isinstance(node, list):
            for item in node:
                walk(item)

    walk(root)
    return by_id


def moddle_context(root: Dict[str, Any], references: List[ReferenceRecord]) -> ModdleContext:
    return ModdleContext(
        root_element=root, elements_by_id=index_elements(root), references=references
    )


# ===========================
# Behaviour types
# ===========================

BEHAVIOUR_TYPE_NAMES = [
    "Definition",
    "Dummy",
    "BpmnError",
    "ServiceImplementation",
    "Process",
    "StartEvent",
    "EndEvent",
    "ExclusiveGateway",
    "IntermediateCatchEvent",
    "BoundaryEvent",
    "Task",
    "UserTask",
    "SendTask",
    "ServiceTask",
    "ReceiveTask",
    "ScriptTask",
    "SubProcess",
    "SequenceFlow",
    "MessageFlow",
    "DataObject",
    "TimerEventDefinition",
    "ConditionalEventDefinition",
    "ErrorEventDefinition",
    "MultiInstanceLoopCharacteristics",
    "InputOutputSpecification",
]


@pytest.fixture
def behaviour_types():
    """Placeholder behaviour classes keyed by unprefixed type name."""
    return {name: type(name, (), {}) for name in BEHAVIOUR_TYPE_NAMES}


@pytest.fixture
def type_resolver(behaviour_types):
    return TypeResolver(behaviour_types)


# ===========================
# Documents
# ===========================


def build_order_document() -> ModdleContext:
    """
    Two processes talking over message flows.

    main-process (executable):
        start -> decision -(default)-> send-order -> end
                          -(condition)-> review -> sub -(script)-> end
        review has an I/O specification, timer-boundary is attached to it,
        sub is a multi-instance sub-process holding sub-task and script-task.
    supplier-process (not executable):
        receive-order, a second reference point of data-object
    """
    start = element("bpmn:StartEvent", "start", name="Order received")
    decision = element("bpmn:ExclusiveGateway", "decision", name="Approved?")
    send_order = element(
        "bpmn:SendTask", "send-order", name="Send order", implementation="${environment.services.send}"
    )
    service_task = element("bpmn:ServiceTask", "service-task", name="No implementation")

    data_input = element("bpmn:DataInput", "input_1", name="order")
    data_output = element("bpmn:DataOutput", "output_1", name="verdict")
    input_association = element("bpmn:DataInputAssociation", "dia-1")
    output_association = element("bpmn:DataOutputAssociation", "doa-1")
    review = element(
        "bpmn:UserTask",
        "review",
        name="Review order",
        ioSpecification=element(
            "bpmn:InputOutputSpecification",
            "io-review",
            dataInputs=[data_input],
            dataOutputs=[data_output],
        ),
        dataInputAssociations=[input_association],
        dataOutputAssociations=[output_association],
        resources=[
            {
                "$type": "bpmn:HumanPerformer",
                "resourceAssignmentExpression": {
                    "$type": "bpmn:ResourceAssignmentExpression",
                    "expression": expression("clerk"),
                },
            }
        ],
    )
    timer_boundary = element(
        "bpmn:BoundaryEvent",
        "timer-boundary",
        attachedToRef=review,
        cancelActivity=True,
        eventDefinitions=[
            element("bpmn:TimerEventDefinition", "timer-def", timeDuration=expression("PT1M"))
        ],
    )
    error = element("bpmn:Error", "Error_1", name="Payment failed", errorCode="E1")
    error_boundary = element(
        "bpmn:BoundaryEvent",
        "error-boundary",
        attachedToRef=send_order,
        eventDefinitions=[element("bpmn:ErrorEventDefinition", "error-def", errorRef=error)],
    )
    cond_event = element(
        "bpmn:IntermediateCatchEvent",
        "cond-event",
        eventDefinitions=[
            element(
                "bpmn:ConditionalEventDefinition",
                "cond-def",
                condition=expression("${environment.variables.ready}"),
            )
        ],
    )

    sub_task = element("bpmn:Task", "sub-task")
    script_task = element(
        "bpmn:ScriptTask", "script-task", scriptFormat="javascript", script="next();"
    )
    sub_flow = element("bpmn:SequenceFlow", "sub-flow")
    sub = element(
        "bpmn:SubProcess",
        "sub",
        name="Pack items",
        loopCharacteristics=element(
            "bpmn:MultiInstanceLoopCharacteristics",
            "loop-sub",
            isSequential=True,
            loopCardinality=expression("3"),
            completionCondition=expression("${environment.variables.done}"),
        ),
        flowElements=[sub_task, script_task, sub_flow],
    )
    end = element("bpmn:EndEvent", "end")

    data_object = element("bpmn:DataObject", "data-object", name="Order")
    data_ref_1 = element("bpmn:DataObjectReference", "data-ref-1", dataObjectRef=data_object)
    data_ref_3 = element("bpmn:DataObjectReference", "data-ref-3")

    flow_1 = element("bpmn:SequenceFlow", "flow-1", sourceRef=start, targetRef=decision)
    start["outgoing"] = [flow_1]
    decision["incoming"] = [flow_1]
    decision["default"] = "flow-default"
    flow_default = element("bpmn:SequenceFlow", "flow-default", name="Default")
    flow_cond = element(
        "bpmn:SequenceFlow",
        "flow-cond",
        conditionExpression=expression("${environment.variables.take}", "bpmn:tFormalExpression"),
    )
    flow_untyped = element(
        "bpmn:SequenceFlow", "flow-untyped", conditionExpression=expression("${x}", None)
    )
    flow_js = element(
        "bpmn:SequenceFlow",
        "flow-js",
        conditionExpression=expression("next(null, true);", language="javascript"),
    )
    flow_end = element("bpmn:SequenceFlow", "flow-end")

    main_process = element(
        "bpmn:Process",
        "main-process",
        name="Main",
        isExecutable=True,
        flowElements=[
            start,
            decision,
            send_order,
            service_task,
            review,
            timer_boundary,
            error_boundary,
            cond_event,
            sub,
            end,
            data_object,
            data_ref_1,
            data_ref_3,
            flow_1,
            flow_default,
            flow_cond,
            flow_untyped,
            flow_js,
            flow_end,
        ],
    )

    receive_order = element("bpmn:ReceiveTask", "receive-order")
    data_ref_2 = element("bpmn:DataObjectReference", "data-ref-2", dataObjectRef=data_object)
    supplier_process = element(
        "bpmn:Process",
        "supplier-process",
        isExecutable=False,
        flowElements=[receive_order, data_ref_2],
    )

    message_flow = element("bpmn:MessageFlow", "message-flow", name="Order")
    nested_message_flow = element("bpmn:MessageFlow", "nested-message-flow")
    collaboration = element(
        "bpmn:Collaboration",
        "collaboration",
        messageFlows=[message_flow, nested_message_flow],
    )

    root = definitions(
        element("bpmn:Message", "Message_1", name="Order"),
        error,
        collaboration,
        main_process,
        supplier_process,
        name="Orders",
        targetNamespace="http://bpmn.io/schema/bpmn",
        exporter="Camunda Modeler",
        exporterVersion="5.0.0",
    )

    references = [
        *flow_refs(flow_1, "start", "decision"),
        *flow_refs(flow_default, "decision", "send-order"),
        *flow_refs(flow_cond, "decision", "review"),
        *flow_refs(flow_untyped, "review", "sub"),
        *flow_refs(flow_js, "sub", "end"),
        *flow_refs(flow_end, "send-order", "end"),
        *flow_refs(sub_flow, "sub-task", "script-task"),
        ref(decision, "bpmn:default", "flow-default"),
        *flow_refs(message_flow, "send-order", "receive-order"),
        *flow_refs(nested_message_flow, "sub-task", "receive-order"),
        ref(data_ref_1, "bpmn:dataObjectRef", "data-object"),
        ref(data_ref_2, "bpmn:dataObjectRef", "data-object"),
        ref(input_association, "bpmn:sourceRef", "data-ref-1"),
        ref(input_association, "bpmn:targetRef", "input_1"),
        ref(output_association, "bpmn:sourceRef", "output_1"),
        ref(output_association, "bpmn:targetRef", "data-ref-3"),
        ref(timer_boundary, "bpmn:attachedToRef", "review"),
        ReferenceRecord(property="bpmn:sourceRef", id="ghost", element=None),
    ]

    return moddle_context(root, references)


@pytest.fixture
def order_document() -> ModdleContext:
    return build_order_document()


@pytest.fixture
def minimal_document():
    """Single process with one conditional sequence flow."""

    def _build(condition: Optional[Dict[str, Any]]) -> ModdleContext:
        attrs = {"conditionExpression": condition} if condition is not None else {}
        flow = element("bpmn:SequenceFlow", "to-end", name="verified", **attrs)
        process = element(
            "bpmn:Process",
            "no-typens",
            flowElements=[
                element("bpmn:ExclusiveGateway", "decision"),
                element("bpmn:EndEvent", "to-end-event"),
                flow,
            ],
        )
        root = definitions(process, id="Def_0")
        return moddle_context(root, flow_refs(flow, "decision", "to-end-event"))

    return _build
