"""File based storage for the job collection."""

from __future__ import annotations

import json
from logging import getLogger
from pathlib import Path

from ..persistence import StoreLock, read_json, write_json
from .schema import ScheduledJob

logger = getLogger(__name__)


class JobStore:
    """Keeps the whole job collection in a single ``jobs.json`` document.

    The collection is read and replaced as a unit, mirroring the way job
    operations return a new list.
    """

    def __init__(self, base_dir: Path):
        self.base_dir = base_dir
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.path = base_dir / "jobs.json"
        self._lock = StoreLock(base_dir / ".jobs.lock")

    def load_all(self) -> list[ScheduledJob]:
        with self._lock.held():
            data = read_json(self.path, default=[])
        return [ScheduledJob.model_validate(item) for item in data]

    def save_all(self, jobs: list[ScheduledJob]) -> None:
        payload = json.dumps([job.to_wire() for job in jobs], indent=2)
        with self._lock.held():
            write_json(self.path, payload)
        logger.info(f"Saved {len(jobs)} jobs to {self.path}")
