import logging
from typing import Any, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .config import get_settings
from .errors import NotFoundError, ScrapeflowError, ValidationError
from .models import (
    ConflictResolveRequest,
    ConnectionCreateRequest,
    DependenciesRequest,
    HealthResponse,
    JobCreateRequest,
    NodeCreateRequest,
    NodeUpdateRequest,
    NotificationsRequest,
    RunRecordRequest,
    WorkflowCreateRequest,
    WorkflowUpdateRequest,
)
from .scheduler.conflicts import detect_conflicts, refresh_dependency_conflicts, resolve_conflict
from .scheduler.jobs import (
    add_job,
    create_job,
    delete_job,
    filter_jobs,
    get_job,
    record_run,
    replace_job,
    set_dependencies,
    set_notifications,
)
from .scheduler.report import ConflictReport
from .scheduler.schema import Conflict, JobFilterOptions, ScheduledJob
from .scheduler.store import JobStore
from .workflow import (
    Workflow,
    WorkflowStore,
    add_connection,
    add_node,
    create_workflow,
    default_config,
    list_node_types,
    patch_node_data,
    remove_connection,
    remove_node,
    rename_workflow,
    set_active,
)
from .workflow.registry import input_handles, output_handles

load_dotenv()

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="ScrapeFlow API",
    description="Workflow graphs and job scheduling for scraping automation",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

workflow_store = WorkflowStore(settings.data_dir / "workflows")
job_store = JobStore(settings.data_dir)

# Current conflict list, including dismissals. None until first computed.
conflict_state: Optional[list[Conflict]] = None


@app.exception_handler(NotFoundError)
def handle_not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc), "type": exc.error_type})


@app.exception_handler(ValidationError)
def handle_validation_error(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "type": exc.error_type, "errors": exc.errors},
    )


@app.exception_handler(ScrapeflowError)
def handle_scrapeflow_error(request: Request, exc: ScrapeflowError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "type": exc.error_type})


@app.get("/api/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@app.get("/api/node-types")
def node_types():
    return [
        {
            "type": node_type.value,
            "inputs": list(input_handles(node_type)),
            "outputs": list(output_handles(node_type)),
            "defaultConfig": default_config(node_type),
        }
        for node_type in list_node_types()
    ]


# --- Workflow endpoints ---


def _load_workflow(workflow_id: str) -> Workflow:
    wf = workflow_store.load(workflow_id)
    if wf is None:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return wf


@app.get("/api/workflows")
def list_workflows():
    return [wf.to_wire() for wf in workflow_store.list_all()]


@app.post("/api/workflows", status_code=201)
def create_workflow_endpoint(request: WorkflowCreateRequest):
    wf = create_workflow(request.name, request.description)
    workflow_store.save(wf)
    return wf.to_wire()


@app.get("/api/workflows/{workflow_id}")
def get_workflow(workflow_id: str):
    return _load_workflow(workflow_id).to_wire()


@app.patch("/api/workflows/{workflow_id}")
def update_workflow(workflow_id: str, request: WorkflowUpdateRequest):
    wf = _load_workflow(workflow_id)
    if request.name is not None:
        wf = rename_workflow(wf, request.name)
    if request.is_active is not None:
        wf = set_active(wf, request.is_active)
    workflow_store.save(wf)
    return wf.to_wire()


@app.delete("/api/workflows/{workflow_id}")
def delete_workflow(workflow_id: str):
    deleted = workflow_store.delete(workflow_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return {"status": "deleted", "workflow_id": workflow_id}


@app.post("/api/workflows/{workflow_id}/nodes", status_code=201)
def add_node_endpoint(workflow_id: str, request: NodeCreateRequest):
    wf = add_node(_load_workflow(workflow_id), request.type, request.name, request.position)
    workflow_store.save(wf)
    return wf.to_wire()


@app.patch("/api/workflows/{workflow_id}/nodes/{node_id}")
def patch_node_endpoint(workflow_id: str, node_id: str, request: NodeUpdateRequest):
    patch: dict[str, Any] = dict(request.data)
    if request.name is not None:
        patch["name"] = request.name
    if request.description is not None:
        patch["description"] = request.description
    wf = patch_node_data(_load_workflow(workflow_id), node_id, patch)
    workflow_store.save(wf)
    return wf.to_wire()


@app.delete("/api/workflows/{workflow_id}/nodes/{node_id}")
def remove_node_endpoint(workflow_id: str, node_id: str):
    wf = remove_node(_load_workflow(workflow_id), node_id)
    workflow_store.save(wf)
    return wf.to_wire()


@app.post("/api/workflows/{workflow_id}/connections", status_code=201)
def add_connection_endpoint(workflow_id: str, request: ConnectionCreateRequest):
    wf = add_connection(
        _load_workflow(workflow_id),
        request.source,
        request.source_handle,
        request.target,
        request.target_handle,
        request.label,
    )
    workflow_store.save(wf)
    return wf.to_wire()


@app.delete("/api/workflows/{workflow_id}/connections/{connection_id}")
def remove_connection_endpoint(workflow_id: str, connection_id: str):
    wf = remove_connection(_load_workflow(workflow_id), connection_id)
    workflow_store.save(wf)
    return wf.to_wire()


# --- Scheduler endpoints ---


def _commit_jobs(jobs: list[ScheduledJob]) -> list[Conflict]:
    """Persist the collection and recompute conflicts from scratch."""
    global conflict_state
    job_store.save_all(jobs)
    conflict_state = detect_conflicts(jobs)
    return conflict_state


def _job_response(job: ScheduledJob, conflicts: list[Conflict]) -> dict:
    return {"job": job.to_wire(), "conflicts": [c.to_wire() for c in conflicts]}


@app.get("/api/jobs")
def list_jobs():
    return [job.to_wire() for job in job_store.load_all()]


@app.post("/api/jobs/search")
def search_jobs(options: JobFilterOptions):
    return [job.to_wire() for job in filter_jobs(job_store.load_all(), options)]


@app.post("/api/jobs", status_code=201)
def create_job_endpoint(request: JobCreateRequest):
    fields = dict(request.model_extra or {})
    if "workflowName" not in fields and "workflow_name" not in fields:
        wf = workflow_store.load(request.workflow_id)
        if wf is not None:
            fields["workflow_name"] = wf.name
    job = create_job(request.workflow_id, request.name, **fields)
    jobs = add_job(job_store.load_all(), job)
    return _job_response(job, _commit_jobs(jobs))


@app.get("/api/jobs/{job_id}")
def get_job_endpoint(job_id: str):
    return get_job(job_store.load_all(), job_id).to_wire()


@app.patch("/api/jobs/{job_id}")
def update_job_endpoint(job_id: str, patch: dict[str, Any]):
    jobs = replace_job(job_store.load_all(), job_id, patch)
    return _job_response(get_job(jobs, job_id), _commit_jobs(jobs))


@app.delete("/api/jobs/{job_id}")
def delete_job_endpoint(job_id: str):
    jobs = delete_job(job_store.load_all(), job_id)
    conflicts = _commit_jobs(jobs)
    return {
        "status": "deleted",
        "job_id": job_id,
        "conflicts": [c.to_wire() for c in conflicts],
    }


@app.put("/api/jobs/{job_id}/dependencies")
def set_dependencies_endpoint(job_id: str, request: DependenciesRequest):
    jobs = set_dependencies(job_store.load_all(), job_id, request.dependencies)
    return _job_response(get_job(jobs, job_id), _commit_jobs(jobs))


@app.put("/api/jobs/{job_id}/notifications")
def set_notifications_endpoint(job_id: str, request: NotificationsRequest):
    jobs = set_notifications(job_store.load_all(), job_id, request.notifications)
    return _job_response(get_job(jobs, job_id), _commit_jobs(jobs))


@app.post("/api/jobs/{job_id}/runs")
def record_run_endpoint(job_id: str, request: RunRecordRequest):
    jobs = job_store.load_all()
    job = record_run(get_job(jobs, job_id), request.status, request.duration, request.finished_at)
    jobs = [job if j.id == job_id else j for j in jobs]
    return _job_response(job, _commit_jobs(jobs))


@app.get("/api/conflicts")
def list_conflicts(format: str = "json"):
    global conflict_state
    jobs = job_store.load_all()
    if conflict_state is None:
        conflict_state = detect_conflicts(jobs)
    else:
        conflict_state = refresh_dependency_conflicts(conflict_state, jobs)

    report = ConflictReport.build(jobs, conflict_state)
    if format == "markdown":
        return PlainTextResponse(report.to_markdown())
    return report.to_dict()


@app.post("/api/conflicts/resolve")
def resolve_conflict_endpoint(request: ConflictResolveRequest):
    global conflict_state
    if conflict_state is None:
        conflict_state = detect_conflicts(job_store.load_all())
    conflict_state = resolve_conflict(conflict_state, request.job_id, request.message)
    logger.info(f"Conflict dismissed for job {request.job_id}: {request.message}")
    return [c.to_wire() for c in conflict_state]
