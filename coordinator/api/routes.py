# FastAPI imports for routing, HTTP handling, and request access
from fastapi import APIRouter, HTTPException, status, Request

# Internal API models for request/response validation
from coordinator.api.models import (
    AssignmentRequest,
    AssignmentResponse,
    CompletionReport,
    CompletionResponse,
    JobDoneResponse,
    JobStatusResponse,
)

# Core business logic components
from coordinator.core.job_manager import JobManager
from coordinator.core.task_ledger import InvalidManifestError, UnknownTaskError
from coordinator.models.task import TaskState

# Utility imports
from coordinator.utils.logger import get_logger

# ===== API Router Configuration =====
router = APIRouter()

logger = get_logger(__name__)


def get_job_manager(request: Request) -> JobManager:
    """The JobManager installed on the application by the app factory."""
    return request.app.state.job_manager

# ===== Task Endpoints =====

@router.post("/tasks/request", response_model=AssignmentResponse)
async def request_assignment(assignment_request: AssignmentRequest, request: Request):
    """
    Hand the next task to a requesting worker.

    Runs a liveness sweep and selects the lowest-index idle task of the
    current phase. WAIT and ALL_DONE are ordinary answers, not errors.

    Args:
        assignment_request: Identity of the requesting worker
        request: FastAPI request object for reaching the JobManager

    Returns:
        AssignmentResponse describing the work, if any
    """
    job_manager = get_job_manager(request)
    try:
        task, kind = job_manager.scheduler.request_assignment(assignment_request.worker_id)
    except Exception as e:
        logger.error(f"Error assigning task to {assignment_request.worker_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
    num_reduce = job_manager.ledger.job.num_reduce_tasks

    if task is None:
        return AssignmentResponse(kind=kind, num_reduce=num_reduce)

    return AssignmentResponse(
        kind=kind,
        task_index=task.index,
        phase=task.phase,
        input_refs=task.input_refs,
        output_refs=task.output_refs,
        num_reduce=num_reduce,
        attempt_epoch=task.attempt_epoch,
    )


@router.post("/tasks/complete", response_model=CompletionResponse)
async def complete_task(report: CompletionReport, request: Request):
    """
    Endpoint for workers to report a committed task.

    Stale and duplicate reports are answered normally with their status.
    Reports that reference a nonexistent task or carry a malformed manifest
    are protocol faults: they are logged and rejected without touching the
    ledger.

    Args:
        report: Completion report including the attempt epoch and manifest
        request: FastAPI request object for reaching the JobManager

    Returns:
        CompletionResponse with ACCEPTED, STALE or ALREADY_DONE

    Raises:
        HTTPException: 404 for an unknown task, 400 for a malformed manifest
    """
    job_manager = get_job_manager(request)
    try:
        completion_status = job_manager.tracker.report_completion(
            report.worker_id,
            report.phase,
            report.task_index,
            report.attempt_epoch,
            report.output_manifest,
        )
    except UnknownTaskError as e:
        logger.warning(f"Rejected report from {report.worker_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except InvalidManifestError as e:
        logger.warning(f"Rejected report from {report.worker_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error recording report from {report.worker_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    return CompletionResponse(status=completion_status)

# ===== Job Endpoints =====

@router.get("/jobs/done", response_model=JobDoneResponse)
async def is_job_done(request: Request):
    """Liveness query polled by the process that launched the coordinator."""
    return JobDoneResponse(done=get_job_manager(request).is_job_done())


@router.get("/jobs/status", response_model=JobStatusResponse)
async def get_job_status(request: Request):
    """
    Retrieve progress information for the job.

    Returns:
        JobStatusResponse with the phase and remaining task counts
    """
    job = get_job_manager(request).get_job()
    tasks = job.map_tasks + job.reduce_tasks

    return JobStatusResponse(
        phase=job.phase,
        num_map_tasks=job.num_map_tasks,
        num_reduce_tasks=job.num_reduce_tasks,
        map_tasks_remaining=job.map_tasks_remaining,
        reduce_tasks_remaining=job.reduce_tasks_remaining,
        tasks_in_progress=len([t for t in tasks if t.state == TaskState.IN_PROGRESS]),
    )

# ===== System Health Endpoints =====

@router.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring.

    Returns:
        Dict with service health status and identification
    """
    return {"status": "healthy", "service": "Coordinator"}
