"""Plan compiler: turns a node/edge graph into phase-ordered batches of nodes."""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from ..tasks.catalog import get_task_definition
from .graph import Graph, NodeInstance, find_input_edge, load_node

logger = logging.getLogger(__name__)


class PlanErrorKind(str, Enum):
    NO_ENTRY_POINT = "NO_ENTRY_POINT"
    MULTIPLE_ENTRY_POINTS = "MULTIPLE_ENTRY_POINTS"
    INVALID_INPUTS = "INVALID_INPUTS"


@dataclass
class MissingInputs:
    node_id: str
    inputs: list[str]


class PlanValidationError(Exception):
    def __init__(self, kind: PlanErrorKind, invalid_elements: list[MissingInputs] | None = None):
        self.kind = kind
        self.invalid_elements = invalid_elements or []
        super().__init__(f"Workflow plan invalid: {kind.value}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "invalid_elements": [
                {"node_id": m.node_id, "inputs": list(m.inputs)} for m in self.invalid_elements
            ],
        }


@dataclass
class PlanPhase:
    number: int
    nodes: list[NodeInstance] = field(default_factory=list)


@dataclass
class ExecutionPlan:
    phases: list[PlanPhase] = field(default_factory=list)

    def iter_nodes(self) -> Iterator[tuple[int, NodeInstance]]:
        for phase in self.phases:
            for node in phase.nodes:
                yield phase.number, node

    def phase_of(self, node_id: str) -> int | None:
        for number, node in self.iter_nodes():
            if node.id == node_id:
                return number
        return None

    def to_list(self) -> list[dict[str, Any]]:
        return [
            {"phase": p.number, "nodes": [n.to_dict() for n in p.nodes]}
            for p in self.phases
        ]

    @classmethod
    def from_list(cls, raw: list[dict[str, Any]]) -> "ExecutionPlan":
        return cls(phases=[
            PlanPhase(number=p["phase"], nodes=[load_node(n) for n in p["nodes"]])
            for p in raw
        ])


def get_invalid_inputs(node: NodeInstance, graph: Graph, planned: set[str]) -> list[str]:
    """Names of the node's inputs that cannot be resolved given the planned set."""
    invalid: list[str] = []
    for param in get_task_definition(node.task_type).inputs:
        if node.static_value(param.name) is not None:
            continue
        edge = find_input_edge(graph.edges, node.id, param.name)
        source_planned = edge is not None and edge.source in planned
        if param.required and source_planned:
            continue
        if not param.required and (edge is None or source_planned):
            continue
        invalid.append(param.name)
    return invalid


def _find_entry_point(graph: Graph) -> NodeInstance:
    entry_points = [
        n for n in graph.nodes if get_task_definition(n.task_type).is_entry_point
    ]
    if not entry_points:
        raise PlanValidationError(PlanErrorKind.NO_ENTRY_POINT)
    if len(entry_points) > 1:
        raise PlanValidationError(
            PlanErrorKind.MULTIPLE_ENTRY_POINTS,
            [MissingInputs(node_id=n.id, inputs=[]) for n in entry_points],
        )
    return entry_points[0]


def compile_plan(graph: Graph) -> ExecutionPlan:
    """Build the execution plan, or raise PlanValidationError.

    Phase 1 holds the entry point. Each later phase holds every node whose
    inputs are all resolvable from strictly earlier phases. A node is only
    reported as invalid once every node feeding it has been planned; nodes
    that can never be planned (downstream of an invalid node, or inside a
    cycle) are reported after the loop. All problems are collected before
    raising.
    """
    entry_point = _find_entry_point(graph)

    errors: list[MissingInputs] = []
    flagged: set[str] = set()
    planned: set[str] = set()

    invalid = get_invalid_inputs(entry_point, graph, planned)
    if invalid:
        errors.append(MissingInputs(node_id=entry_point.id, inputs=invalid))
    plan = ExecutionPlan(phases=[PlanPhase(number=1, nodes=[entry_point])])
    planned.add(entry_point.id)

    total = len(graph.nodes)
    number = 2
    while number <= total and len(planned) + len(flagged) < total:
        next_phase = PlanPhase(number=number)
        for node in graph.nodes:
            if node.id in planned or node.id in flagged:
                continue
            invalid = get_invalid_inputs(node, graph, planned)
            if not invalid:
                next_phase.nodes.append(node)
                continue
            incomers = graph.get_incomers(node.id)
            if all(incomer.id in planned for incomer in incomers):
                errors.append(MissingInputs(node_id=node.id, inputs=invalid))
                flagged.add(node.id)
        if not next_phase.nodes:
            break
        planned.update(n.id for n in next_phase.nodes)
        plan.phases.append(next_phase)
        number += 1

    for node in graph.nodes:
        if node.id in planned or node.id in flagged:
            continue
        errors.append(MissingInputs(node_id=node.id, inputs=get_invalid_inputs(node, graph, planned)))

    if errors:
        logger.info("Plan compilation failed for %d node(s)", len(errors))
        raise PlanValidationError(PlanErrorKind.INVALID_INPUTS, errors)
    return plan
