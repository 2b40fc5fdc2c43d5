"""Next-run computation for scheduled jobs.

Recurring frequencies are translated to cron expressions and evaluated with
croniter in the job's timezone. Minute, hour, day and month values the job
does not set are taken from its start time.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import CroniterBadDateError, croniter

from ..base import as_utc, utcnow
from ..config import get_settings
from ..errors import ValidationError
from .schema import DayOfWeek, ScheduledJob, ScheduleFrequency

# croniter day-of-week numbering, Sunday == 0
_CRON_DAYS = {
    DayOfWeek.SUNDAY: 0,
    DayOfWeek.MONDAY: 1,
    DayOfWeek.TUESDAY: 2,
    DayOfWeek.WEDNESDAY: 3,
    DayOfWeek.THURSDAY: 4,
    DayOfWeek.FRIDAY: 5,
    DayOfWeek.SATURDAY: 6,
}

# Recurrence-bearing fields; changing any of them invalidates nextRunTime
RECURRENCE_FIELDS = frozenset(
    {
        "schedule_type",
        "frequency",
        "start_time",
        "end_time",
        "cron",
        "timezone",
        "days_of_week",
        "day_of_month",
        "month_of_year",
        "minute_of_hour",
        "hour_of_day",
    }
)


def is_valid_cron(expression: str) -> bool:
    return croniter.is_valid(expression)


def cron_fires(expression: str) -> bool:
    """Whether a valid expression has any occurrence at all, e.g. not Feb 30."""
    try:
        croniter(expression).get_next(datetime)
    except CroniterBadDateError:
        return False
    return True


def resolve_timezone(name: str | None) -> ZoneInfo:
    """Return the zone for ``name``, falling back to the configured default."""
    return ZoneInfo(name or get_settings().default_timezone)


def is_valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def cron_expression(job: ScheduledJob) -> str | None:
    """Translate a job's frequency and detail fields into a cron expression.

    Returns None for one-time jobs.
    """
    if job.frequency == ScheduleFrequency.CUSTOM:
        return job.cron
    if job.frequency == ScheduleFrequency.ONCE:
        return None

    local_start = job.start_time.astimezone(resolve_timezone(job.timezone))
    minute = job.minute_of_hour if job.minute_of_hour is not None else local_start.minute
    hour = job.hour_of_day if job.hour_of_day is not None else local_start.hour
    day = job.day_of_month if job.day_of_month is not None else local_start.day
    month = job.month_of_year if job.month_of_year is not None else local_start.month

    if job.frequency == ScheduleFrequency.MINUTELY:
        return "* * * * *"
    if job.frequency == ScheduleFrequency.HOURLY:
        return f"{minute} * * * *"
    if job.frequency == ScheduleFrequency.DAILY:
        return f"{minute} {hour} * * *"
    if job.frequency == ScheduleFrequency.WEEKLY:
        days = sorted({_CRON_DAYS[DayOfWeek(d)] for d in job.days_of_week or []})
        dow = ",".join(str(d) for d in days) if days else str((local_start.weekday() + 1) % 7)
        return f"{minute} {hour} * * {dow}"
    if job.frequency == ScheduleFrequency.MONTHLY:
        return f"{minute} {hour} {day} * *"
    if job.frequency == ScheduleFrequency.QUARTERLY:
        months = sorted({(month - 1 + offset) % 12 + 1 for offset in (0, 3, 6, 9)})
        return f"{minute} {hour} {day} {','.join(str(m) for m in months)} *"
    if job.frequency == ScheduleFrequency.YEARLY:
        return f"{minute} {hour} {day} {month} *"
    raise ValueError(f"Unsupported frequency: {job.frequency}")


def compute_next_run(job: ScheduledJob, now: datetime | None = None) -> datetime | None:
    """Return the job's next occurrence strictly after ``now``.

    Occurrences before ``start_time`` or after ``end_time`` never count.
    None means the job has no run left.
    """
    now = as_utc(now) if now is not None else utcnow()
    start = job.start_time
    end = job.end_time

    expression = cron_expression(job)
    if expression is None:
        return start if start > now else None

    tz = resolve_timezone(job.timezone)
    # croniter returns times strictly after its base; step back so an
    # occurrence exactly at start_time is still included
    base = max(now, start - timedelta(seconds=1))
    itr = croniter(expression, base.astimezone(tz))
    try:
        candidate = as_utc(itr.get_next(datetime))
        while candidate < start:
            candidate = as_utc(itr.get_next(datetime))
    except CroniterBadDateError as exc:
        raise ValidationError(
            f"Cron expression never fires: {expression}", {"cron": "Cron expression never fires"}
        ) from exc

    if end is not None and candidate > end:
        return None
    return candidate.astimezone(timezone.utc)
