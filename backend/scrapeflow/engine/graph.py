"""Graph data structures for the plan compiler and execution runtime."""
from dataclasses import dataclass, field
from typing import Any

from ..models.schemas import (
    DEFINITION_VERSION, FlowDefinitionSchema, FlowEdgeSchema, FlowNodeData, FlowNodeSchema,
)
from ..tasks.base import TaskType


@dataclass
class Edge:
    source: str
    source_handle: str   # output name on the source node
    target: str
    target_handle: str   # input name on the target node
    id: str = ""


@dataclass
class NodeInstance:
    id: str
    task_type: TaskType
    inputs: dict[str, str] = field(default_factory=dict)  # static values set in the editor
    position: dict[str, float] = field(default_factory=dict)

    def static_value(self, name: str) -> str | None:
        value = self.inputs.get(name)
        return value if value else None

    def to_dict(self) -> dict[str, Any]:
        return _node_to_schema(self).model_dump(mode="json")


@dataclass
class Graph:
    nodes: list[NodeInstance] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    def get_incomers(self, node_id: str) -> list[NodeInstance]:
        """Nodes present in the graph with an edge into node_id."""
        sources = {e.source for e in self.edges if e.target == node_id}
        return [n for n in self.nodes if n.id in sources]


def find_input_edge(edges: list[Edge], node_id: str, input_name: str) -> Edge | None:
    """The edge feeding one input. If several target it, the last one wins."""
    found = None
    for edge in edges:
        if edge.target == node_id and edge.target_handle == input_name:
            found = edge
    return found


def _node_to_schema(node: NodeInstance) -> FlowNodeSchema:
    return FlowNodeSchema(
        id=node.id,
        data=FlowNodeData(type=node.task_type, inputs=dict(node.inputs)),
        position=dict(node.position),
    )


def node_from_schema(schema: FlowNodeSchema) -> NodeInstance:
    return NodeInstance(
        id=schema.id,
        task_type=schema.data.type,
        inputs=dict(schema.data.inputs),
        position=dict(schema.position),
    )


def load_node(raw: str | dict[str, Any]) -> NodeInstance:
    if isinstance(raw, str):
        return node_from_schema(FlowNodeSchema.model_validate_json(raw))
    return node_from_schema(FlowNodeSchema.model_validate(raw))


def dump_node(node: NodeInstance) -> str:
    return _node_to_schema(node).model_dump_json()


def load_definition(raw: str | dict[str, Any]) -> Graph:
    """Parse a serialized flow definition into a Graph."""
    if isinstance(raw, str):
        schema = FlowDefinitionSchema.model_validate_json(raw)
    else:
        schema = FlowDefinitionSchema.model_validate(raw)
    if schema.version > DEFINITION_VERSION:
        raise ValueError(f"Unsupported flow definition version: {schema.version}")
    nodes = [node_from_schema(n) for n in schema.nodes]
    edges = [
        Edge(
            id=e.id, source=e.source, source_handle=e.source_handle,
            target=e.target, target_handle=e.target_handle,
        )
        for e in schema.edges
    ]
    return Graph(nodes=nodes, edges=edges)


def dump_definition(graph: Graph) -> str:
    schema = FlowDefinitionSchema(
        nodes=[_node_to_schema(n) for n in graph.nodes],
        edges=[
            FlowEdgeSchema(
                id=e.id, source=e.source, sourceHandle=e.source_handle,
                target=e.target, targetHandle=e.target_handle,
            )
            for e in graph.edges
        ],
    )
    return schema.model_dump_json(by_alias=True)
