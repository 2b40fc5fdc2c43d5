"""Conflict report model with markdown rendering."""

from __future__ import annotations

from typing import Sequence

from ..base import CamelModel
from .conflicts import CIRCULAR_TYPE, group_conflicts_by_job
from .schema import Conflict, ScheduledJob


class ConflictReport(CamelModel):
    """Summary of the conflicts in a job collection."""

    total_jobs: int
    time_conflicts: int
    circular_conflicts: int
    job_names: dict[str, str] = {}
    conflicts: list[Conflict] = []

    @classmethod
    def build(cls, jobs: Sequence[ScheduledJob], conflicts: Sequence[Conflict]) -> ConflictReport:
        circular = sum(1 for c in conflicts if c.conflict_type == CIRCULAR_TYPE)
        return cls(
            total_jobs=len(jobs),
            time_conflicts=len(conflicts) - circular,
            circular_conflicts=circular,
            job_names={job.id: job.name for job in jobs},
            conflicts=list(conflicts),
        )

    @property
    def affected_jobs(self) -> int:
        return len({c.job_id for c in self.conflicts})

    def to_markdown(self) -> str:
        lines = [
            "# Schedule Conflicts",
            "",
            f"**Jobs:** {self.total_jobs}",
            f"**Jobs with conflicts:** {self.affected_jobs}",
            f"**Time conflicts:** {self.time_conflicts}",
            f"**Circular dependencies:** {self.circular_conflicts}",
            "",
        ]

        if not self.conflicts:
            lines.append("No conflicts detected.")
            return "\n".join(lines)

        lines.append("| Job | Kind | Message |")
        lines.append("|-----|------|---------|")
        for job_id, entries in group_conflicts_by_job(self.conflicts).items():
            name = self.job_names.get(job_id, job_id)
            for conflict in entries:
                kind = "CYCLE" if conflict.conflict_type == CIRCULAR_TYPE else "TIME"
                lines.append(f"| {name} (`{job_id}`) | {kind} | {conflict.message} |")

        if self.circular_conflicts:
            lines.append("")
            lines.append("## Suggested Resolution")
            lines.append("- Remove one of the circular dependencies")
            lines.append("- Restructure the jobs so they run in a single direction")

        return "\n".join(lines)

    def to_dict(self) -> dict:
        data = self.to_wire()
        data["affectedJobs"] = self.affected_jobs
        return data
