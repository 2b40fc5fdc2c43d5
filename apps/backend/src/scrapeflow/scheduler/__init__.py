from .conflicts import (
    detect_conflicts,
    detect_dependency_conflicts,
    detect_time_conflicts,
    group_conflicts_by_job,
    refresh_dependency_conflicts,
    resolve_conflict,
)
from .graph import build_dependency_graph, find_cyclic_jobs, has_cycle
from .jobs import (
    add_job,
    create_job,
    delete_job,
    filter_jobs,
    get_job,
    record_run,
    replace_job,
    set_dependencies,
    set_notifications,
    update_job,
    validate_job,
)
from .recurrence import compute_next_run, cron_expression
from .report import ConflictReport
from .schema import (
    Conflict,
    DayOfWeek,
    DependencyType,
    JobDependency,
    JobFilterOptions,
    JobNotification,
    JobStatus,
    NotificationChannel,
    NotificationEvent,
    ScheduledJob,
    ScheduleFrequency,
    ScheduleType,
)
from .store import JobStore

__all__ = [
    "Conflict",
    "ConflictReport",
    "DayOfWeek",
    "DependencyType",
    "JobDependency",
    "JobFilterOptions",
    "JobNotification",
    "JobStatus",
    "JobStore",
    "NotificationChannel",
    "NotificationEvent",
    "ScheduleFrequency",
    "ScheduleType",
    "ScheduledJob",
    "add_job",
    "build_dependency_graph",
    "compute_next_run",
    "create_job",
    "cron_expression",
    "delete_job",
    "detect_conflicts",
    "detect_dependency_conflicts",
    "detect_time_conflicts",
    "filter_jobs",
    "find_cyclic_jobs",
    "get_job",
    "group_conflicts_by_job",
    "has_cycle",
    "record_run",
    "refresh_dependency_conflicts",
    "replace_job",
    "resolve_conflict",
    "set_dependencies",
    "set_notifications",
    "update_job",
    "validate_job",
]
