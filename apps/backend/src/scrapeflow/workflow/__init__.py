from .graph import branch_targets, execution_order, incoming, outgoing
from .mutations import (
    add_connection,
    add_node,
    create_workflow,
    patch_node_data,
    remove_connection,
    remove_node,
    rename_workflow,
    set_active,
)
from .nodes import (
    ActionData,
    ConditionData,
    DelayData,
    NodeData,
    NotificationData,
    TransformationData,
    TriggerData,
)
from .registry import NodeType, default_config, get_data_model, list_node_types, parse_payload
from .schema import NodeConnection, Position, Workflow, WorkflowNode
from .store import WorkflowStore

__all__ = [
    "ActionData",
    "ConditionData",
    "DelayData",
    "NodeConnection",
    "NodeData",
    "NodeType",
    "NotificationData",
    "Position",
    "TransformationData",
    "TriggerData",
    "Workflow",
    "WorkflowNode",
    "WorkflowStore",
    "add_connection",
    "add_node",
    "branch_targets",
    "create_workflow",
    "default_config",
    "execution_order",
    "get_data_model",
    "incoming",
    "list_node_types",
    "outgoing",
    "parse_payload",
    "patch_node_data",
    "remove_connection",
    "remove_node",
    "rename_workflow",
    "set_active",
]
