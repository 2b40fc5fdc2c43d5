"""Node type registry: maps node types to their configuration payload models."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Type

from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError

if TYPE_CHECKING:
    from .nodes import NodeData


class NodeType(str, Enum):
    """The fixed set of step kinds a workflow can contain."""

    TRIGGER = "trigger"
    ACTION = "action"
    CONDITION = "condition"
    TRANSFORMATION = "transformation"
    NOTIFICATION = "notification"
    DELAY = "delay"


# Payload model registry, populated by the @register decorator in nodes.py
_REGISTRY: dict[NodeType, Type[NodeData]] = {}


def register(cls: Type[NodeData]) -> Type[NodeData]:
    """Class decorator that registers a payload model for its node type."""
    _REGISTRY[NodeType(cls.node_type)] = cls
    return cls


def get_data_model(node_type: NodeType | str) -> Type[NodeData]:
    """Return the payload model for a node type, raising for unknown types."""
    try:
        return _REGISTRY[NodeType(node_type)]
    except (KeyError, ValueError):
        raise ValidationError(
            f"Unknown node type: {node_type}", {"type": f"Unknown node type: {node_type}"}
        ) from None


def list_node_types() -> list[NodeType]:
    """Return all registered node types in declaration order."""
    return [t for t in NodeType if t in _REGISTRY]


def subkind_field(node_type: NodeType | str) -> str:
    """Wire name of the field selecting the node's sub-kind (e.g. ``actionType``)."""
    model = get_data_model(node_type)
    return model.model_fields[model.subkind_attr].alias or model.subkind_attr


def default_config(node_type: NodeType | str, subkind: str | None = None) -> dict[str, Any]:
    """Return the default payload for a node type, optionally for a specific sub-kind."""
    return default_payload(node_type, subkind).model_dump(by_alias=True)


def default_payload(node_type: NodeType | str, subkind: str | None = None) -> NodeData:
    model = get_data_model(node_type)
    if subkind is None:
        return model()
    return parse_payload(node_type, {subkind_field(node_type): subkind})


def parse_payload(node_type: NodeType | str, data: Any) -> NodeData:
    """Validate a raw payload into the variant for ``node_type``."""
    model = get_data_model(node_type)
    if isinstance(data, model):
        return data
    if not isinstance(data, dict):
        raise ValidationError(
            f"Payload for {NodeType(node_type).value} node must be an object",
            {"data": "must be an object"},
        )
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        errors = {
            ".".join(str(part) for part in err["loc"]) or "data": err["msg"]
            for err in e.errors()
        }
        raise ValidationError(
            f"Invalid payload for {NodeType(node_type).value} node", errors
        ) from e


def input_handles(node_type: NodeType | str) -> tuple[str, ...]:
    return get_data_model(node_type).input_handles


def output_handles(node_type: NodeType | str) -> tuple[str, ...]:
    return get_data_model(node_type).output_handles


def requires_source_handle(node_type: NodeType | str) -> bool:
    """True when a connection leaving this node must name its output handle."""
    return len(output_handles(node_type)) > 1
