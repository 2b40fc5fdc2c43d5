"""Graph mutation engine.

Every operation takes a ``Workflow`` and returns a new one. Inputs are never
modified, so a failed mutation leaves the caller's value exactly as it was.
"""

from __future__ import annotations

from logging import getLogger
from typing import Any

from ..base import new_id, utcnow
from ..errors import NotFoundError
from .registry import NodeType, default_payload, get_data_model, parse_payload, subkind_field
from .schema import NodeConnection, Position, Workflow, WorkflowNode, check_connection

logger = getLogger(__name__)

# Patch keys that land on the node itself rather than in its payload
_NODE_FIELDS = ("name", "description")


def create_workflow(name: str, description: str | None = None) -> Workflow:
    """Create an empty, inactive workflow."""
    workflow = Workflow(id=new_id("wf"), name=name, description=description)
    logger.debug(f"Workflow created: {workflow.name} ({workflow.id})")
    return workflow


def rename_workflow(
    workflow: Workflow, name: str | None = None, description: str | None = None
) -> Workflow:
    update: dict[str, Any] = {"updated_at": utcnow()}
    if name:
        update["name"] = name
    if description is not None:
        update["description"] = description
    return workflow.model_copy(update=update)


def set_active(workflow: Workflow, is_active: bool) -> Workflow:
    return workflow.model_copy(update={"is_active": is_active, "updated_at": utcnow()})


def add_node(
    workflow: Workflow,
    node_type: NodeType | str,
    name: str | None = None,
    position: Position | dict | None = None,
) -> Workflow:
    """Append a node of ``node_type`` with its default payload."""
    node_type = get_data_model(node_type).node_type
    if isinstance(position, dict):
        position = Position.model_validate(position)
    node = WorkflowNode(
        id=new_id("node"),
        type=node_type,
        name=name or f"New {node_type.value.capitalize()}",
        position=position or Position(),
        data=default_payload(node_type),
    )
    logger.debug(f"Node added to {workflow.id}: {node.id} ({node_type.value})")
    return workflow.model_copy(
        update={"nodes": [*workflow.nodes, node], "updated_at": utcnow()}
    )


def remove_node(workflow: Workflow, node_id: str) -> Workflow:
    """Remove a node together with every connection touching it."""
    if workflow.get_node(node_id) is None:
        raise NotFoundError(f"Node not found: {node_id}")

    nodes = [n for n in workflow.nodes if n.id != node_id]
    connections = [
        c for c in workflow.connections if c.source != node_id and c.target != node_id
    ]
    dropped = len(workflow.connections) - len(connections)
    logger.debug(f"Node removed from {workflow.id}: {node_id} ({dropped} connections dropped)")
    return workflow.model_copy(
        update={"nodes": nodes, "connections": connections, "updated_at": utcnow()}
    )


def add_connection(
    workflow: Workflow,
    source: str,
    source_handle: str | None,
    target: str,
    target_handle: str | None = None,
    label: str | None = None,
) -> Workflow:
    """Connect ``source`` to ``target`` after checking references and handles."""
    connection = NodeConnection(
        id=new_id("e"),
        source=source,
        source_handle=source_handle,
        target=target,
        target_handle=target_handle,
        label=label,
    )
    check_connection(workflow.node_map(), connection)
    logger.debug(
        f"Connection added to {workflow.id}: {source}[{source_handle or 'output'}] -> {target}"
    )
    return workflow.model_copy(
        update={"connections": [*workflow.connections, connection], "updated_at": utcnow()}
    )


def remove_connection(workflow: Workflow, connection_id: str) -> Workflow:
    if workflow.get_connection(connection_id) is None:
        raise NotFoundError(f"Connection not found: {connection_id}")
    connections = [c for c in workflow.connections if c.id != connection_id]
    return workflow.model_copy(update={"connections": connections, "updated_at": utcnow()})


def patch_node_data(workflow: Workflow, node_id: str, patch: dict[str, Any]) -> Workflow:
    """Shallow-merge ``patch`` into a node's name, description and payload.

    When the patch changes the node's sub-kind (``actionType``, ``condition``,
    ...) the payload restarts from the defaults and only the fields in this
    patch are applied; fields of the previous sub-kind are dropped.
    """
    node = workflow.get_node(node_id)
    if node is None:
        raise NotFoundError(f"Node not found: {node_id}")

    data_patch = {k: v for k, v in patch.items() if k not in _NODE_FIELDS}
    node_update: dict[str, Any] = {}
    if patch.get("name"):
        node_update["name"] = patch["name"]
    if "description" in patch:
        node_update["description"] = patch["description"]

    if data_patch:
        model = get_data_model(node.type)
        data_patch = _to_wire_keys(model, data_patch)
        key = subkind_field(node.type)
        current = node.data.model_dump(by_alias=True)
        if key in data_patch and data_patch[key] != current[key]:
            logger.debug(
                f"Node {node_id} sub-kind changed: {current[key]} -> {data_patch[key]}, payload reset"
            )
            base = model().model_dump(by_alias=True)
        else:
            base = current
        node_update["data"] = parse_payload(node.type, {**base, **data_patch})

    if not node_update:
        return workflow

    patched = node.model_copy(update=node_update)
    nodes = [patched if n.id == node_id else n for n in workflow.nodes]
    return workflow.model_copy(update={"nodes": nodes, "updated_at": utcnow()})


def _to_wire_keys(model, data: dict[str, Any]) -> dict[str, Any]:
    """Accept snake_case field names in patches by mapping them to aliases."""
    aliases = {name: field.alias or name for name, field in model.model_fields.items()}
    return {aliases.get(k, k): v for k, v in data.items()}
