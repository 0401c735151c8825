# Standard library imports for locking and the monotonic clock
import threading
import time
from typing import Callable, List, Optional

# Internal imports for ledger data models
from coordinator.models.job import Job, JobPhase
from coordinator.models.task import Task, TaskPhase, TaskState


class LedgerError(Exception):
    """Base class for reports the ledger refuses without mutating state."""


class UnknownTaskError(LedgerError):
    """A report referenced a (phase, index) pair that does not exist."""


class InvalidManifestError(LedgerError):
    """A report carried an output manifest of the wrong shape."""


class TaskLedger:
    """
    Authoritative record of every task of the job.

    The ledger is the single serialization point of the coordinator: every
    read-modify-write sequence performed by the AssignmentScheduler and the
    CompletionTracker runs while holding `self.lock`. The transition helpers
    below (`start_attempt`, `reclaim`, `complete`) assume the caller already
    holds the lock; they never acquire it themselves and never do I/O,
    logging included. Callers log after releasing the lock.

    State machine:
        IDLE --start_attempt--> IN_PROGRESS --complete--> COMPLETED
        IN_PROGRESS --reclaim--> IDLE

    The epoch is bumped when a task leaves IDLE, not when it is reclaimed, so
    a reclaimed-but-not-yet-reassigned slot still rejects the old attempt.
    """

    def __init__(
        self,
        job: Job,
        task_timeout_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.job = job
        self.task_timeout_seconds = task_timeout_seconds
        self.clock = clock
        self.lock = threading.Lock()

    def get_task(self, phase: TaskPhase, index: int) -> Task:
        """
        Look up a task by its identity.

        Raises:
            UnknownTaskError: If no task exists for (phase, index).
        """
        tasks = self.job.tasks_for(phase)
        if index < 0 or index >= len(tasks):
            raise UnknownTaskError(f"No {phase.value} task with index {index}")
        return tasks[index]

    def first_idle(self, phase: TaskPhase) -> Optional[Task]:
        """Return the lowest-index IDLE task of the phase, if any."""
        for task in self.job.tasks_for(phase):
            if task.is_assignable:
                return task
        return None

    def in_progress(self) -> List[Task]:
        return [
            task
            for task in self.job.map_tasks + self.job.reduce_tasks
            if task.state == TaskState.IN_PROGRESS
        ]

    # ===== Transitions (caller holds self.lock, nothing here logs) =====

    def start_attempt(self, task: Task, worker_id: str) -> Task:
        """IDLE → IN_PROGRESS: hand the task to a worker under a new epoch."""
        if task.state != TaskState.IDLE:
            raise ValueError(f"Task {task} is {task.state.value}, expected idle")

        task.state = TaskState.IN_PROGRESS
        task.assigned_worker = worker_id
        task.attempt_epoch += 1
        task.deadline = self.clock() + self.task_timeout_seconds
        return task

    def reclaim(self, task: Task) -> str:
        """
        IN_PROGRESS → IDLE: the attempt outlived its deadline.

        Returns the worker the task was taken from.
        """
        if task.state != TaskState.IN_PROGRESS:
            raise ValueError(f"Task {task} is {task.state.value}, expected in_progress")

        previous_worker = task.assigned_worker
        task.state = TaskState.IDLE
        task.assigned_worker = None
        task.deadline = None
        return previous_worker

    def complete(self, task: Task, output_manifest: List[str]) -> Optional[JobPhase]:
        """
        IN_PROGRESS → COMPLETED for an accepted report.

        Records the manifest, publishes map partitions to the reduce tasks,
        decrements the phase counter and advances the job phase when the
        counter reaches zero.

        Returns:
            The phase the job entered, or None if the phase did not change.
        """
        if task.state != TaskState.IN_PROGRESS:
            raise ValueError(f"Task {task} is {task.state.value}, expected in_progress")

        job = self.job
        task.state = TaskState.COMPLETED
        task.output_refs = list(output_manifest)
        task.assigned_worker = None
        task.deadline = None

        if task.phase == TaskPhase.MAP:
            # Partition r of this map task becomes input of reduce task r
            for reduce_task, partition_ref in zip(job.reduce_tasks, output_manifest):
                reduce_task.input_refs.append(partition_ref)

            job.map_tasks_remaining -= 1
            if job.map_tasks_remaining == 0:
                job.phase = JobPhase.REDUCING
                return job.phase
        elif task.phase == TaskPhase.REDUCE:
            job.reduce_tasks_remaining -= 1
            if job.reduce_tasks_remaining == 0:
                job.phase = JobPhase.DONE
                return job.phase
        else:
            raise ValueError(f"Unknown task phase: {task.phase}")
        return None

    # ===== Locked queries =====

    def is_job_done(self) -> bool:
        with self.lock:
            return self.job.is_done

    def snapshot(self) -> Job:
        """Return a deep copy of the job, consistent as of one instant."""
        with self.lock:
            return self.job.model_copy(deep=True)
