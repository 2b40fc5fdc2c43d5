"""Read-only traversal helpers over a workflow's connections."""

from __future__ import annotations

from collections import defaultdict, deque

from ..errors import NotFoundError
from .nodes import OUTPUT_HANDLE
from .schema import NodeConnection, Workflow


def outgoing(workflow: Workflow, node_id: str) -> list[NodeConnection]:
    """Get all connections originating from a node."""
    return [c for c in workflow.connections if c.source == node_id]


def incoming(workflow: Workflow, node_id: str) -> list[NodeConnection]:
    """Get all connections pointing to a node."""
    return [c for c in workflow.connections if c.target == node_id]


def branch_targets(workflow: Workflow, node_id: str) -> dict[str, list[str]]:
    """Map each output handle of a node to the node ids connected to it.

    Condition nodes yield ``{"true": [...], "false": [...]}``; every other
    type yields a single ``"output"`` entry.
    """
    node = workflow.get_node(node_id)
    if node is None:
        raise NotFoundError(f"Node not found: {node_id}")

    branches: dict[str, list[str]] = {handle: [] for handle in node.data.output_handles}
    for connection in outgoing(workflow, node_id):
        handle = connection.source_handle or OUTPUT_HANDLE
        branches.setdefault(handle, []).append(connection.target)
    return branches


def execution_order(workflow: Workflow) -> list[str]:
    """Return node IDs in topological order based on connections."""
    in_degree: dict[str, int] = defaultdict(int)
    dependents: dict[str, list[str]] = defaultdict(list)
    all_ids = [node.id for node in workflow.nodes]

    for node_id in all_ids:
        in_degree.setdefault(node_id, 0)
    for connection in workflow.connections:
        dependents[connection.source].append(connection.target)
        in_degree[connection.target] += 1

    queue: deque[str] = deque()
    for nid in all_ids:
        if in_degree[nid] == 0:
            queue.append(nid)

    order: list[str] = []
    while queue:
        nid = queue.popleft()
        order.append(nid)
        for dependent in dependents[nid]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) != len(all_ids):
        missing = sorted(set(all_ids) - set(order))
        raise ValueError(f"Cycle detected in workflow graph involving nodes: {missing}")

    return order
