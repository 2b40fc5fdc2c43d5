"""API models for ScrapeFlow."""

from datetime import datetime
from typing import Any, Optional

from pydantic import ConfigDict, Field

from .base import CamelModel
from .scheduler.schema import JobDependency, JobNotification, JobStatus
from .workflow.schema import Position


class WorkflowCreateRequest(CamelModel):
    """Request to create an empty workflow."""

    name: str = Field(..., description="Display name of the workflow")
    description: Optional[str] = Field(None, description="Free text description")


class WorkflowUpdateRequest(CamelModel):
    """Rename a workflow or toggle whether it is active."""

    name: Optional[str] = Field(None, description="New display name")
    is_active: Optional[bool] = Field(None, description="Activate or deactivate the workflow")


class NodeCreateRequest(CamelModel):
    """Request to add a node with its type's default configuration."""

    type: str = Field(..., description="Node type: trigger, action, condition, ...")
    name: Optional[str] = Field(None, description="Display name, defaults to 'New <Type>'")
    position: Position = Field(default_factory=lambda: Position(x=0, y=0))


class NodeUpdateRequest(CamelModel):
    """Patch a node's name, description or type-specific payload."""

    name: Optional[str] = None
    description: Optional[str] = None
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Payload fields to merge; changing the sub-kind resets the rest",
    )


class ConnectionCreateRequest(CamelModel):
    """Request to connect two nodes."""

    source: str
    source_handle: Optional[str] = Field(
        None, description="Required for condition sources: 'true' or 'false'"
    )
    target: str
    target_handle: Optional[str] = None
    label: Optional[str] = None


class JobCreateRequest(CamelModel):
    """Request to schedule a workflow. Any other job field may be supplied."""

    model_config = ConfigDict(extra="allow")

    workflow_id: str = Field(..., description="Workflow the job runs")
    name: str = Field("New Job", description="Display name of the job")


class DependenciesRequest(CamelModel):
    dependencies: list[JobDependency] = []


class NotificationsRequest(CamelModel):
    notifications: list[JobNotification] = []


class RunRecordRequest(CamelModel):
    """A finished run reported by the executor."""

    status: JobStatus
    duration: float = Field(..., ge=0, description="Run duration in seconds")
    finished_at: Optional[datetime] = None


class ConflictResolveRequest(CamelModel):
    """Dismiss one conflict entry."""

    job_id: str
    message: str


class HealthResponse(CamelModel):
    """Health check response."""

    status: str
    service: str = "ScrapeFlow Backend"
