"""Conflict detection over a job collection.

Conflicts are derived data. ``detect_conflicts`` recomputes them from scratch;
``refresh_dependency_conflicts`` reconciles circular-dependency entries in an
existing list so that dismissed time conflicts stay dismissed.
"""

from __future__ import annotations

from logging import getLogger
from typing import Iterable, Sequence

from ..config import get_settings
from .graph import build_dependency_graph, find_cyclic_jobs, has_cycle
from .schema import Conflict, ScheduledJob

logger = getLogger(__name__)

CIRCULAR_MESSAGE = "Circular dependency detected"
CIRCULAR_TYPE = "circular-dependency"


def time_conflict_message(other: ScheduledJob) -> str:
    return f'Potential time conflict with "{other.name}"'


def detect_time_conflicts(jobs: Sequence[ScheduledJob]) -> list[Conflict]:
    """Flag recurring jobs of equal frequency whose next runs coincide.

    Only the next occurrence is compared, so overlaps further out are missed.
    Each pair yields one entry per side.
    """
    recurring = [job for job in jobs if job.is_recurring and job.next_run_time is not None]
    conflicts: list[Conflict] = []
    for job in recurring:
        for other in recurring:
            if other.id == job.id:
                continue
            if job.frequency == other.frequency and job.next_run_time == other.next_run_time:
                conflicts.append(
                    Conflict(
                        job_id=job.id,
                        message=time_conflict_message(other),
                        conflict_type="time-overlap",
                        conflicting_job_id=other.id,
                    )
                )
    return conflicts


def cyclic_job_ids(jobs: Sequence[ScheduledJob]) -> set[str]:
    """Ids of jobs from which a dependency cycle is reachable."""
    graph = build_dependency_graph(jobs)
    if get_settings().cycle_detection == "multi_source":
        return find_cyclic_jobs(graph)
    return {job.id for job in jobs if has_cycle(graph, job.id)}


def detect_dependency_conflicts(jobs: Sequence[ScheduledJob]) -> list[Conflict]:
    cyclic = cyclic_job_ids(jobs)
    return [_circular_conflict(job.id) for job in jobs if job.id in cyclic]


def detect_conflicts(jobs: Sequence[ScheduledJob]) -> list[Conflict]:
    """Recompute the full conflict list for ``jobs``."""
    time_conflicts = detect_time_conflicts(jobs)
    circular = detect_dependency_conflicts(jobs)
    logger.info(
        f"Conflicts recomputed for {len(jobs)} jobs: "
        f"{len(time_conflicts)} time, {len(circular)} circular"
    )
    return time_conflicts + circular


def refresh_dependency_conflicts(
    conflicts: Iterable[Conflict], jobs: Sequence[ScheduledJob]
) -> list[Conflict]:
    """Bring circular-dependency entries in ``conflicts`` in line with ``jobs``.

    Entries are told apart by ``conflict_type``, never by message text. Jobs
    that reach a cycle and have no circular entry get one appended; jobs that
    no longer reach a cycle lose theirs. Other entries are kept as is.
    """
    cyclic = cyclic_job_ids(jobs)
    result: list[Conflict] = []
    flagged: set[str] = set()

    for conflict in conflicts:
        if conflict.conflict_type == CIRCULAR_TYPE:
            if conflict.job_id not in cyclic:
                continue
            flagged.add(conflict.job_id)
        result.append(conflict)

    added = 0
    for job in jobs:
        if job.id in cyclic and job.id not in flagged:
            result.append(_circular_conflict(job.id))
            flagged.add(job.id)
            added += 1

    logger.info(f"Dependency conflicts refreshed: {len(cyclic)} cyclic jobs, {added} new")
    return result


def resolve_conflict(conflicts: Iterable[Conflict], job_id: str, message: str) -> list[Conflict]:
    """Dismiss a conflict by removing every entry with this job id and message."""
    return [c for c in conflicts if not (c.job_id == job_id and c.message == message)]


def group_conflicts_by_job(conflicts: Iterable[Conflict]) -> dict[str, list[Conflict]]:
    """Conflicts per job id, in first-seen job order."""
    grouped: dict[str, list[Conflict]] = {}
    for conflict in conflicts:
        grouped.setdefault(conflict.job_id, []).append(conflict)
    return grouped


def _circular_conflict(job_id: str) -> Conflict:
    return Conflict(
        job_id=job_id,
        message=CIRCULAR_MESSAGE,
        conflict_type=CIRCULAR_TYPE,
        severity="error",
    )
