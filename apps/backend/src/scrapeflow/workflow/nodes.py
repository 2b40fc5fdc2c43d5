"""Typed configuration payloads, one variant per node type.

Each variant declares its sub-kind field, the sub-kinds the editor offers and
the handles a node of that type exposes. Importing this module registers every
variant with the node type registry.
"""

from __future__ import annotations

from typing import Any, ClassVar, Literal

from pydantic import ConfigDict, Field

from ..base import CamelModel
from .registry import NodeType, register

INPUT_HANDLE = "input"
OUTPUT_HANDLE = "output"
TRUE_HANDLE = "true"
FALSE_HANDLE = "false"


class NodeData(CamelModel):
    """Base for node payloads. Unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")

    node_type: ClassVar[NodeType]
    subkind_attr: ClassVar[str]
    subkinds: ClassVar[tuple[str, ...]] = ()
    input_handles: ClassVar[tuple[str, ...]] = (INPUT_HANDLE,)
    output_handles: ClassVar[tuple[str, ...]] = (OUTPUT_HANDLE,)

    @property
    def subkind(self) -> str:
        return getattr(self, self.subkind_attr)


@register
class TriggerData(NodeData):
    node_type = NodeType.TRIGGER
    subkind_attr = "trigger_type"
    subkinds = ("manual", "schedule", "webhook", "event")
    # Triggers start a workflow, nothing flows into them
    input_handles = ()

    trigger_type: Literal["manual", "schedule", "webhook", "event"] = "manual"
    configuration: dict[str, Any] = Field(default_factory=dict)


@register
class ActionData(NodeData):
    node_type = NodeType.ACTION
    subkind_attr = "action_type"
    subkinds = ("scrape", "extract", "download", "copy", "transform")

    action_type: str = "scrape"  # open set, custom actions allowed
    configuration: dict[str, Any] = Field(default_factory=dict)


@register
class ConditionData(NodeData):
    node_type = NodeType.CONDITION
    subkind_attr = "condition"
    subkinds = (
        "equals",
        "notEquals",
        "contains",
        "notContains",
        "exists",
        "notExists",
        "empty",
        "notEmpty",
        "greaterThan",
        "lessThan",
        "custom",
    )
    output_handles = (TRUE_HANDLE, FALSE_HANDLE)

    condition: str = "equals"
    expression: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)


@register
class TransformationData(NodeData):
    node_type = NodeType.TRANSFORMATION
    subkind_attr = "transformation_type"
    subkinds = ("map", "template", "filter", "sort", "format", "convert")

    transformation_type: str = "map"
    configuration: dict[str, Any] = Field(default_factory=dict)


@register
class NotificationData(NodeData):
    node_type = NodeType.NOTIFICATION
    subkind_attr = "notification_type"
    subkinds = ("email", "sms", "inApp", "webhook", "slack")

    notification_type: Literal["email", "sms", "inApp", "webhook", "slack"] = "email"
    template: str = ""
    recipients: list[str] = Field(default_factory=list)
    configuration: dict[str, Any] = Field(default_factory=dict)


@register
class DelayData(NodeData):
    node_type = NodeType.DELAY
    subkind_attr = "delay_type"
    subkinds = ("fixed", "duration", "untilTime", "cron")

    delay_type: Literal["fixed", "duration", "untilTime", "cron"] = "fixed"
    duration: float = Field(default=5, ge=0)
    time_unit: Literal["seconds", "minutes", "hours", "days", "weeks"] = "minutes"
    configuration: dict[str, Any] = Field(default_factory=dict)
