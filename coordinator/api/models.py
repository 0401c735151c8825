from pydantic import BaseModel, Field
from typing import List, Optional

from coordinator.models.job import JobPhase
from coordinator.models.task import AssignmentKind, CompletionStatus, TaskPhase


class AssignmentRequest(BaseModel):
    """
    Payload a worker sends to ask the coordinator for work.
    """
    worker_id: str = Field(..., description="Opaque identifier of the requesting worker")


class AssignmentResponse(BaseModel):
    """
    The coordinator's answer to an assignment request.

    Only MAP_WORK and REDUCE_WORK carry a task; WAIT and ALL_DONE leave the
    task fields unset.
    """
    kind: AssignmentKind = Field(..., description="MAP_WORK, REDUCE_WORK, WAIT or ALL_DONE")
    task_index: Optional[int] = Field(None, description="Phase-scoped index of the assigned task")
    phase: Optional[TaskPhase] = Field(None, description="Phase of the assigned task")
    input_refs: List[str] = Field(default_factory=list, description="Split (map) or partition files (reduce)")
    output_refs: List[str] = Field(default_factory=list, description="Where the task must publish its output")
    num_reduce: int = Field(..., description="Number of reduce buckets of the job")
    attempt_epoch: Optional[int] = Field(None, description="Epoch to present when reporting completion")


class CompletionReport(BaseModel):
    """
    Payload a worker sends after committing a task's output.
    """
    worker_id: str = Field(..., description="Worker that ran the attempt")
    phase: TaskPhase = Field(..., description="Phase of the completed task")
    task_index: int = Field(..., description="Phase-scoped index of the completed task")
    attempt_epoch: int = Field(..., description="Epoch handed out with the assignment")
    output_manifest: List[str] = Field(default_factory=list, description="Committed output locations")


class CompletionResponse(BaseModel):
    status: CompletionStatus = Field(..., description="ACCEPTED, STALE or ALREADY_DONE")


class JobDoneResponse(BaseModel):
    done: bool = Field(..., description="True once every reduce task has completed")


class JobStatusResponse(BaseModel):
    """
    Progress summary of the job served by this coordinator.
    """
    phase: JobPhase = Field(..., description="Current job phase")
    num_map_tasks: int = Field(..., description="Total map tasks")
    num_reduce_tasks: int = Field(..., description="Total reduce tasks")
    map_tasks_remaining: int = Field(..., description="Map tasks not yet completed")
    reduce_tasks_remaining: int = Field(..., description="Reduce tasks not yet completed")
    tasks_in_progress: int = Field(..., description="Tasks currently assigned to a worker")
