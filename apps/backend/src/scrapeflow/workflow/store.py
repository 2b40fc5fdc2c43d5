"""File based workflow storage, one JSON document per workflow."""

from __future__ import annotations

from logging import getLogger
from pathlib import Path

from ..errors import ScrapeflowError
from ..persistence import StoreLock, read_json, write_json
from .schema import Workflow

logger = getLogger(__name__)


class WorkflowStore:
    """Stores workflows as camelCase JSON files under ``base_dir``."""

    def __init__(self, base_dir: Path):
        self.base_dir = base_dir
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._lock = StoreLock(base_dir / ".workflows.lock")

    def save(self, workflow: Workflow) -> str:
        """Save a workflow and return its ID."""
        with self._lock.held():
            write_json(
                self._path_for(workflow.id),
                workflow.model_dump_json(indent=2, by_alias=True),
            )
        logger.info(f"Workflow saved: {workflow.name} ({workflow.id})")
        return workflow.id

    def load(self, workflow_id: str) -> Workflow | None:
        """Load a workflow by ID, or None if it was never saved."""
        with self._lock.held():
            data = read_json(self._path_for(workflow_id))
        if data is None:
            return None
        return Workflow.model_validate(data)

    def list_all(self) -> list[Workflow]:
        """List all stored workflows, skipping files that fail validation."""
        workflows: list[Workflow] = []
        with self._lock.held():
            paths = sorted(self.base_dir.glob("*.json"))
            payloads = [(p, p.read_text(encoding="utf-8")) for p in paths]
        for path, text in payloads:
            try:
                workflows.append(Workflow.model_validate_json(text))
            except (ValueError, ScrapeflowError) as e:
                logger.warning(f"Skipping malformed workflow file {path.name}: {e}")
        return workflows

    def delete(self, workflow_id: str) -> bool:
        """Delete a workflow. Returns True if it existed."""
        with self._lock.held():
            path = self._path_for(workflow_id)
            if not path.exists():
                return False
            path.unlink()
        logger.info(f"Workflow deleted: {workflow_id}")
        return True

    def _path_for(self, workflow_id: str) -> Path:
        safe_id = "".join(c for c in workflow_id if c.isalnum() or c in "-_")
        return self.base_dir / f"{safe_id}.json"
