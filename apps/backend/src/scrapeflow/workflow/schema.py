"""Pydantic models defining the workflow graph structure."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, SerializeAsAny, model_validator

from ..base import CamelModel, utcnow
from ..errors import InvalidHandleError, InvalidReferenceError, ValidationError
from .nodes import NodeData
from .registry import NodeType, input_handles, output_handles, parse_payload, requires_source_handle


class Position(CamelModel):
    """Canvas coordinates. Presentation only."""

    x: float = 0
    y: float = 0


class WorkflowNode(CamelModel):
    """A single typed step in the workflow graph."""

    id: str
    type: NodeType
    name: str
    description: str | None = None
    position: Position = Field(default_factory=Position)
    data: SerializeAsAny[NodeData]

    @model_validator(mode="before")
    @classmethod
    def _parse_data_for_type(cls, values: Any) -> Any:
        # The payload shape is chosen by the sibling ``type`` tag
        if isinstance(values, dict) and "type" in values:
            values = dict(values)
            values["data"] = parse_payload(values["type"], values.get("data", {}))
        return values

    @model_validator(mode="after")
    def _check_data_matches_type(self) -> WorkflowNode:
        if self.data.node_type != self.type:
            raise ValidationError(
                f"Node {self.id} of type {self.type.value} holds a {self.data.node_type.value} payload",
                {"data": "payload does not match node type"},
            )
        return self


class NodeConnection(CamelModel):
    """A directed edge between two node handles."""

    id: str
    source: str
    source_handle: str | None = None
    target: str
    target_handle: str | None = None
    label: str | None = None


class Workflow(CamelModel):
    """A complete workflow graph with its metadata."""

    id: str
    name: str
    description: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    is_active: bool = False
    nodes: list[WorkflowNode] = []
    connections: list[NodeConnection] = []

    @model_validator(mode="after")
    def _check_graph(self) -> Workflow:
        seen: set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValidationError(
                    f"Duplicate node id: {node.id}", {"nodes": f"duplicate id {node.id}"}
                )
            seen.add(node.id)

        nodes_by_id = self.node_map()
        for connection in self.connections:
            check_connection(nodes_by_id, connection)
        return self

    def node_map(self) -> dict[str, WorkflowNode]:
        return {node.id: node for node in self.nodes}

    def get_node(self, node_id: str) -> WorkflowNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_connection(self, connection_id: str) -> NodeConnection | None:
        for connection in self.connections:
            if connection.id == connection_id:
                return connection
        return None


def check_connection(nodes_by_id: dict[str, WorkflowNode], connection: NodeConnection) -> None:
    """Raise if ``connection`` references missing nodes or illegal handles."""
    source = nodes_by_id.get(connection.source)
    target = nodes_by_id.get(connection.target)
    if source is None:
        raise InvalidReferenceError(f"Connection source node not found: {connection.source}")
    if target is None:
        raise InvalidReferenceError(f"Connection target node not found: {connection.target}")

    outputs = output_handles(source.type)
    if connection.source_handle is None:
        if requires_source_handle(source.type):
            raise InvalidHandleError(
                f"A {source.type.value} node must connect from one of: {', '.join(outputs)}"
            )
    elif connection.source_handle not in outputs:
        raise InvalidHandleError(
            f"Handle '{connection.source_handle}' is not an output of {source.type.value} node "
            f"{source.id} (expected one of: {', '.join(outputs)})"
        )

    inputs = input_handles(target.type)
    if not inputs:
        raise InvalidHandleError(f"A {target.type.value} node does not accept incoming connections")
    if connection.target_handle is not None and connection.target_handle not in inputs:
        raise InvalidHandleError(
            f"Handle '{connection.target_handle}' is not an input of {target.type.value} node {target.id}"
        )
