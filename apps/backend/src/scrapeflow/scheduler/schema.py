"""Pydantic models for scheduled jobs, their dependencies and notifications."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator

from ..base import CamelModel, as_utc, new_id, utcnow


class ScheduleType(str, Enum):
    ONE_TIME = "one-time"
    RECURRING = "recurring"


class ScheduleFrequency(str, Enum):
    ONCE = "once"
    MINUTELY = "minutely"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class JobStatus(str, Enum):
    SCHEDULED = "scheduled"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    PAUSED = "paused"


class DayOfWeek(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class DependencyType(str, Enum):
    SUCCESS = "success"  # referenced job must succeed
    COMPLETION = "completion"  # referenced job must finish, either way
    FAILURE = "failure"  # referenced job must fail


class NotificationChannel(str, Enum):
    EMAIL = "email"
    SLACK = "slack"
    WEBHOOK = "webhook"
    IN_APP = "inApp"


class NotificationEvent(str, Enum):
    START = "start"
    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"


class JobDependency(CamelModel):
    """A "must run before" edge from the owning job to ``depends_on_job_id``."""

    id: str = Field(default_factory=lambda: new_id("dep"))
    depends_on_job_id: str
    dependency_type: DependencyType = DependencyType.SUCCESS
    timeout: int | None = Field(default=None, gt=0)  # minutes


class JobNotification(CamelModel):
    """Where to send job events, with channel-specific fields."""

    id: str = Field(default_factory=lambda: new_id("notif"))
    type: NotificationChannel
    recipients: list[str] | None = None  # email or slack
    webhook_url: str | None = None  # webhook
    channel: str | None = None  # slack
    events: list[NotificationEvent]
    message: str | None = None
    include_results: bool = False

    @model_validator(mode="after")
    def _check_channel_fields(self) -> JobNotification:
        if not self.events:
            raise ValueError("at least one event is required")
        if self.type == NotificationChannel.EMAIL and not self.recipients:
            raise ValueError("email notifications need at least one recipient")
        if self.type == NotificationChannel.WEBHOOK and not self.webhook_url:
            raise ValueError("webhook notifications need a webhookUrl")
        if self.type == NotificationChannel.SLACK and not (self.channel or self.recipients):
            raise ValueError("slack notifications need a channel or recipients")
        return self


class ScheduledJob(CamelModel):
    """A one-time or recurring invocation of a workflow."""

    id: str
    name: str
    workflow_id: str
    workflow_name: str = ""
    schedule_type: ScheduleType = ScheduleType.RECURRING
    frequency: ScheduleFrequency = ScheduleFrequency.DAILY
    start_time: datetime
    end_time: datetime | None = None
    status: JobStatus = JobStatus.SCHEDULED
    next_run_time: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    dependencies: list[JobDependency] = []
    notifications: list[JobNotification] = []
    parameters: dict[str, Any] = {}

    # Recurrence details
    cron: str | None = None  # custom only
    timezone: str | None = None
    days_of_week: list[DayOfWeek] | None = None  # weekly only
    day_of_month: int | None = Field(default=None, ge=1, le=31)  # monthly only
    month_of_year: int | None = Field(default=None, ge=1, le=12)
    minute_of_hour: int | None = Field(default=None, ge=0, le=59)
    hour_of_day: int | None = Field(default=None, ge=0, le=23)

    # Run history
    last_run_time: datetime | None = None
    last_run_status: JobStatus | None = None
    last_run_duration: float | None = None  # seconds
    average_run_duration: float | None = None  # seconds
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0

    @field_validator(
        "start_time",
        "end_time",
        "next_run_time",
        "created_at",
        "updated_at",
        "last_run_time",
    )
    @classmethod
    def _normalise_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None

    @property
    def is_recurring(self) -> bool:
        return self.schedule_type == ScheduleType.RECURRING

    @property
    def depends_on(self) -> list[str]:
        return [dep.depends_on_job_id for dep in self.dependencies]


class Conflict(CamelModel):
    """A derived warning about a job. Recomputed, never persisted."""

    job_id: str
    message: str
    conflict_type: Literal["time-overlap", "circular-dependency"]
    conflicting_job_id: str | None = None
    severity: Literal["warning", "error"] = "warning"


class JobFilterOptions(CamelModel):
    """Search and sort options for a job collection."""

    status: list[JobStatus] | None = None
    frequency: list[ScheduleFrequency] | None = None
    start_date: datetime | None = None  # next run on or after
    end_date: datetime | None = None  # next run on or before
    workflow_ids: list[str] | None = None
    search: str | None = None
    sort_by: Literal["name", "status", "nextRunTime", "createdAt", "updatedAt"] | None = None
    sort_direction: Literal["asc", "desc"] = "asc"

    @field_validator("start_date", "end_date")
    @classmethod
    def _normalise_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None
