# Standard library imports for async operations, paths and the clock
import asyncio
import os
import time
from typing import Callable, List, Optional

# Internal imports for job construction, scheduling and logging
from coordinator.core.completion_tracker import CompletionTracker
from coordinator.core.data_splitter import DataSplitter
from coordinator.core.task_ledger import TaskLedger
from coordinator.core.task_scheduler import AssignmentScheduler
from coordinator.models.job import Job, JobPhase
from coordinator.models.task import Task, TaskPhase
from coordinator.utils.config import CoordinatorSettings, get_settings
from coordinator.utils.logger import get_logger


def intermediate_path(work_dir: str, map_index: int, reduce_index: int) -> str:
    """Location of the partition written by map task `map_index` for bucket `reduce_index`."""
    return os.path.join(work_dir, f"mr-{map_index}-{reduce_index}")


def output_path(output_dir: str, reduce_index: int) -> str:
    """Location of the final output of reduce task `reduce_index`."""
    return os.path.join(output_dir, f"mr-out-{reduce_index}")


def build_job(split_refs: List[str], num_reduce: int, work_dir: str, output_dir: str) -> Job:
    """
    Create the job and every one of its tasks.

    Map task m reads split m and is expected to produce one partition file
    per reduce bucket. Reduce task r starts with no inputs; partition r of
    every accepted map task is appended to it on completion.

    Raises:
        ValueError: If `num_reduce` is not positive.
    """
    if num_reduce <= 0:
        raise ValueError(f"num_reduce must be positive, got {num_reduce}")

    map_tasks = [
        Task(
            index=m,
            phase=TaskPhase.MAP,
            input_refs=[split_ref],
            output_refs=[intermediate_path(work_dir, m, r) for r in range(num_reduce)],
        )
        for m, split_ref in enumerate(split_refs)
    ]
    reduce_tasks = [
        Task(
            index=r,
            phase=TaskPhase.REDUCE,
            output_refs=[output_path(output_dir, r)],
        )
        for r in range(num_reduce)
    ]

    return Job(
        num_map_tasks=len(map_tasks),
        num_reduce_tasks=num_reduce,
        map_tasks_remaining=len(map_tasks),
        reduce_tasks_remaining=num_reduce,
        # Nothing to map: the barrier is already satisfied
        phase=JobPhase.MAPPING if map_tasks else JobPhase.REDUCING,
        map_tasks=map_tasks,
        reduce_tasks=reduce_tasks,
    )


class JobManager:
    """
    Owner of the one job a coordinator serves.

    Builds the job from the input splits at startup and wires the shared
    TaskLedger into the AssignmentScheduler and the CompletionTracker. The
    API routes talk to the job exclusively through this object.
    """

    def __init__(
        self,
        split_refs: List[str],
        settings: Optional[CoordinatorSettings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the JobManager.

        Args:
            split_refs: One input reference per map task.
            settings: Coordinator configuration, the cached settings if omitted.
            clock: Monotonic clock used for assignment deadlines.
        """
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__, self.settings.log_level)

        job = build_job(
            split_refs,
            self.settings.num_reduce,
            self.settings.work_dir,
            self.settings.output_dir,
        )
        self.ledger = TaskLedger(job, self.settings.task_timeout_seconds, clock=clock)
        self.scheduler = AssignmentScheduler(self.ledger)
        self.tracker = CompletionTracker(self.ledger)

        self.logger.info(
            f"Created job with {job.num_map_tasks} map tasks and "
            f"{job.num_reduce_tasks} reduce tasks"
        )

    @classmethod
    def from_settings(cls, settings: Optional[CoordinatorSettings] = None) -> "JobManager":
        """Build the job from the configured input files."""
        settings = settings or get_settings()
        splitter = DataSplitter(settings.work_dir)
        split_refs = splitter.split_inputs(settings.input_files, settings.split_size_mb)

        os.makedirs(settings.work_dir, exist_ok=True)
        os.makedirs(settings.output_dir, exist_ok=True)
        return cls(split_refs, settings)

    def is_job_done(self) -> bool:
        return self.ledger.is_job_done()

    def get_job(self) -> Job:
        """Consistent copy of the job for status reporting."""
        return self.ledger.snapshot()

    async def run_liveness_sweeps(self, interval: Optional[float] = None):
        """
        Periodically reclaim stalled assignments until the job is done.

        Requests already sweep inline; this loop makes reclaimed work show up
        in status queries even when no worker is asking for work.
        """
        interval = interval or self.settings.sweep_interval_seconds
        while not self.is_job_done():
            reclaimed = self.scheduler.sweep_expired()
            if reclaimed:
                self.logger.debug(f"Background sweep reclaimed {len(reclaimed)} task(s)")
            await asyncio.sleep(interval)
