"""Scheduled job lifecycle: creation, updates and job-collection operations.

Jobs and job collections are values. Every function here returns a new job
or a new list and leaves its arguments untouched.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from logging import getLogger
from typing import Any, Iterable

from pydantic import ValidationError as PydanticValidationError

from ..base import as_utc, new_id, utcnow
from ..errors import NotFoundError, ValidationError
from .recurrence import (
    RECURRENCE_FIELDS,
    compute_next_run,
    cron_fires,
    is_valid_cron,
    is_valid_timezone,
)
from .schema import (
    JobDependency,
    JobFilterOptions,
    JobNotification,
    JobStatus,
    ScheduledJob,
    ScheduleFrequency,
    ScheduleType,
)

logger = getLogger(__name__)

# Lists that are only replaced wholesale through set_dependencies/set_notifications
_LIST_FIELDS = frozenset({"dependencies", "notifications"})
_IMMUTABLE_FIELDS = frozenset({"id", "created_at"})
_FINISHED_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})


def job_errors(job: ScheduledJob) -> dict[str, str]:
    """Return field -> message for every inconsistency in ``job``."""
    errors: dict[str, str] = {}

    if not job.name.strip():
        errors["name"] = "Job name is required"
    if not job.workflow_id:
        errors["workflowId"] = "Workflow is required"

    if job.schedule_type == ScheduleType.ONE_TIME and job.frequency != ScheduleFrequency.ONCE:
        errors["frequency"] = "One-time jobs must use the 'once' frequency"
    if job.schedule_type == ScheduleType.RECURRING and job.frequency == ScheduleFrequency.ONCE:
        errors["frequency"] = "Recurring jobs cannot use the 'once' frequency"

    if job.frequency == ScheduleFrequency.WEEKLY:
        if not job.days_of_week:
            errors["daysOfWeek"] = "Select at least one day of the week"
    elif job.days_of_week:
        errors["daysOfWeek"] = "Days of the week only apply to weekly jobs"

    if job.frequency == ScheduleFrequency.MONTHLY:
        if job.day_of_month is None:
            errors["dayOfMonth"] = "Day of month is required"
    elif job.day_of_month is not None:
        errors["dayOfMonth"] = "Day of month only applies to monthly jobs"

    if job.month_of_year is not None and job.frequency not in (
        ScheduleFrequency.QUARTERLY,
        ScheduleFrequency.YEARLY,
    ):
        errors["monthOfYear"] = "Month of year only applies to quarterly or yearly jobs"

    if job.frequency == ScheduleFrequency.CUSTOM:
        if not job.cron:
            errors["cron"] = "Cron expression is required"
        elif not is_valid_cron(job.cron):
            errors["cron"] = f"Invalid cron expression: {job.cron}"
        elif not cron_fires(job.cron):
            errors["cron"] = "Cron expression never fires"
    elif job.cron:
        errors["cron"] = "Cron expressions only apply to custom jobs"

    if job.timezone is not None and not is_valid_timezone(job.timezone):
        errors["timezone"] = f"Unknown timezone: {job.timezone}"

    if job.end_time is not None and job.end_time <= job.start_time:
        errors["endTime"] = "End time must be after start time"

    return errors


def validate_job(job: ScheduledJob) -> ScheduledJob:
    """Raise ``ValidationError`` if the job's fields are inconsistent."""
    errors = job_errors(job)
    if errors:
        raise ValidationError(f"Invalid job {job.id}: {'; '.join(errors.values())}", errors)
    return job


def create_job(
    workflow_id: str,
    name: str = "New Job",
    *,
    now: datetime | None = None,
    **fields: Any,
) -> ScheduledJob:
    """Create a scheduled job with a fresh id and timestamps.

    Unspecified fields follow the editor defaults: a recurring daily job
    starting now. ``next_run_time`` is computed unless supplied.
    """
    now = as_utc(now) if now is not None else utcnow()
    fields = _field_names(fields)
    for key in _IMMUTABLE_FIELDS | {"updated_at"}:
        fields.pop(key, None)

    data: dict[str, Any] = {
        "start_time": now,
        "status": JobStatus.SCHEDULED,
        **fields,
        "id": new_id("job"),
        "name": name,
        "workflow_id": workflow_id,
        "created_at": now,
        "updated_at": now,
    }
    job = _build(data)
    validate_job(job)
    if "next_run_time" not in fields:
        # Include an occurrence landing exactly on the creation instant
        next_run = compute_next_run(job, now - timedelta(seconds=1))
        job = job.model_copy(update={"next_run_time": next_run})

    logger.debug(f"Job created: {job.name} ({job.id}), next run {job.next_run_time}")
    return job


def update_job(
    job: ScheduledJob, patch: dict[str, Any], now: datetime | None = None
) -> ScheduledJob:
    """Apply ``patch`` to a job and refresh ``updated_at``.

    Changing any recurrence field recomputes ``next_run_time`` unless the
    patch sets it explicitly.
    """
    now = as_utc(now) if now is not None else utcnow()
    patch = _field_names(patch)

    blocked = _LIST_FIELDS & patch.keys()
    if blocked:
        raise ValidationError(
            "Dependencies and notifications are replaced through their dedicated operations",
            {field: "cannot be patched directly" for field in sorted(blocked)},
        )
    for key in _IMMUTABLE_FIELDS & patch.keys():
        if patch[key] != getattr(job, key):
            raise ValidationError(f"{key} cannot be changed", {key: "cannot be changed"})

    data = {**job.model_dump(), **patch, "updated_at": now}
    updated = validate_job(_build(data))

    if RECURRENCE_FIELDS & patch.keys() and "next_run_time" not in patch:
        updated = updated.model_copy(update={"next_run_time": compute_next_run(updated, now)})
    logger.debug(f"Job updated: {job.id} ({', '.join(sorted(patch)) or 'no fields'})")
    return updated


def get_job(jobs: Iterable[ScheduledJob], job_id: str) -> ScheduledJob:
    for job in jobs:
        if job.id == job_id:
            return job
    raise NotFoundError(f"Job not found: {job_id}")


def add_job(jobs: list[ScheduledJob], job: ScheduledJob) -> list[ScheduledJob]:
    if any(existing.id == job.id for existing in jobs):
        raise ValidationError(f"Duplicate job id: {job.id}", {"id": "already exists"})
    validate_job(job)
    return [*jobs, job]


def replace_job(
    jobs: list[ScheduledJob], job_id: str, patch: dict[str, Any]
) -> list[ScheduledJob]:
    """Update one job in a collection by id."""
    updated = update_job(get_job(jobs, job_id), patch)
    return [updated if job.id == job_id else job for job in jobs]


def delete_job(jobs: list[ScheduledJob], job_id: str) -> list[ScheduledJob]:
    """Remove a job and every dependency other jobs hold on it."""
    get_job(jobs, job_id)
    now = utcnow()

    remaining: list[ScheduledJob] = []
    for job in jobs:
        if job.id == job_id:
            continue
        kept = [dep for dep in job.dependencies if dep.depends_on_job_id != job_id]
        if len(kept) != len(job.dependencies):
            job = job.model_copy(update={"dependencies": kept, "updated_at": now})
        remaining.append(job)

    logger.debug(f"Job deleted: {job_id}")
    return remaining


def set_dependencies(
    jobs: list[ScheduledJob],
    job_id: str,
    dependencies: Iterable[JobDependency | dict[str, Any]],
) -> list[ScheduledJob]:
    """Replace a job's dependency list wholesale.

    References to jobs outside the collection are allowed; they are leaves of
    the dependency graph.
    """
    job = get_job(jobs, job_id)
    parsed = [_parse_item(JobDependency, dep, "dependencies") for dep in dependencies]
    updated = job.model_copy(update={"dependencies": parsed, "updated_at": utcnow()})
    return [updated if j.id == job_id else j for j in jobs]


def set_notifications(
    jobs: list[ScheduledJob],
    job_id: str,
    notifications: Iterable[JobNotification | dict[str, Any]],
) -> list[ScheduledJob]:
    """Replace a job's notification list wholesale."""
    job = get_job(jobs, job_id)
    parsed = [_parse_item(JobNotification, n, "notifications") for n in notifications]
    updated = job.model_copy(update={"notifications": parsed, "updated_at": utcnow()})
    return [updated if j.id == job_id else j for j in jobs]


def record_run(
    job: ScheduledJob,
    status: JobStatus | str,
    duration: float,
    finished_at: datetime | None = None,
) -> ScheduledJob:
    """Fold one finished run reported by the executor into the job's history."""
    status = JobStatus(status)
    if status not in _FINISHED_STATUSES:
        raise ValidationError(
            f"A recorded run must have finished, got {status.value}",
            {"status": "must be completed, failed or cancelled"},
        )
    finished_at = as_utc(finished_at) if finished_at is not None else utcnow()

    total = job.total_runs + 1
    average = ((job.average_run_duration or 0.0) * job.total_runs + duration) / total
    next_run = compute_next_run(job, finished_at)

    return job.model_copy(
        update={
            "total_runs": total,
            "successful_runs": job.successful_runs + (status == JobStatus.COMPLETED),
            "failed_runs": job.failed_runs + (status == JobStatus.FAILED),
            "average_run_duration": average,
            "last_run_time": finished_at,
            "last_run_status": status,
            "last_run_duration": duration,
            "next_run_time": next_run,
            "status": JobStatus.SCHEDULED if next_run is not None else status,
            "updated_at": utcnow(),
        }
    )


def filter_jobs(jobs: Iterable[ScheduledJob], options: JobFilterOptions) -> list[ScheduledJob]:
    """Filter and sort jobs the way the scheduler's job list does."""
    result: list[ScheduledJob] = []
    search = options.search.strip().lower() if options.search else ""

    for job in jobs:
        if options.status and job.status not in options.status:
            continue
        if options.frequency and job.frequency not in options.frequency:
            continue
        if options.workflow_ids and job.workflow_id not in options.workflow_ids:
            continue
        if options.start_date or options.end_date:
            if job.next_run_time is None:
                continue
            if options.start_date and job.next_run_time < options.start_date:
                continue
            if options.end_date and job.next_run_time > options.end_date:
                continue
        if search and search not in job.name.lower() and search not in job.workflow_name.lower():
            continue
        result.append(job)

    if options.sort_by:
        key = _SORT_KEYS[options.sort_by]
        result.sort(key=key, reverse=options.sort_direction == "desc")
    return result


_SORT_KEYS = {
    "name": lambda job: job.name.lower(),
    "status": lambda job: job.status.value,
    # Jobs without a next run sort after those with one
    "nextRunTime": lambda job: (job.next_run_time is None, job.next_run_time or job.created_at),
    "createdAt": lambda job: job.created_at,
    "updatedAt": lambda job: job.updated_at,
}


def _build(data: dict[str, Any]) -> ScheduledJob:
    try:
        return ScheduledJob.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError("Invalid job fields", _error_map(e)) from e


def _parse_item(model, item, field: str):
    if isinstance(item, model):
        return item
    try:
        return model.model_validate(item)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid entry in {field}", _error_map(e)) from e


def _error_map(error: PydanticValidationError) -> dict[str, str]:
    return {
        ".".join(str(part) for part in err["loc"]) or "job": err["msg"] for err in error.errors()
    }


def _field_names(values: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase wire keys onto ScheduledJob field names."""
    by_alias = {
        field.alias: name for name, field in ScheduledJob.model_fields.items() if field.alias
    }
    return {by_alias.get(key, key): value for key, value in values.items()}
