import asyncio
import time
from typing import Awaitable, Callable, List, Optional

from pydantic import BaseModel

from worker.core.map_processor import MapFunction, MapProcessor
from worker.core.reduce_processor import ReduceFunction, ReduceProcessor
from worker.models.task_context import AssignmentKind, CompletionStatus, TaskContext
from worker.services.coordinator_client import CoordinatorClient
from worker.services.data_manager import DataManager
from worker.utils.config import WorkerSettings, get_settings
from worker.utils.errors import CoordinatorUnavailableError, ProtocolError, TaskExecutionError
from worker.utils.logger import get_logger
from worker.utils.metrics import MetricsCollector


class WorkerSummary(BaseModel):
    """What one run of the loop did"""
    tasks_completed: int = 0
    tasks_discarded: int = 0
    tasks_failed: int = 0


class WorkerLoop:
    """
    Worker-side control loop.

    Repeatedly asks the coordinator for work, executes it, commits the output
    and reports it with the epoch it was assigned under, until the
    coordinator answers ALL_DONE.

    Outcomes that are not errors:
    - WAIT: everything left is in flight elsewhere, pause and ask again
    - STALE / ALREADY_DONE: another attempt owns or finished the slot, the
      local result is dropped

    A failed task is not reported at all; the coordinator reclaims it once
    its deadline passes. Transport failures are retried with exponential
    backoff.
    """

    def __init__(
        self,
        client: CoordinatorClient,
        map_fn: MapFunction,
        reduce_fn: ReduceFunction,
        settings: Optional[WorkerSettings] = None,
        data_manager: Optional[DataManager] = None,
        metrics: Optional[MetricsCollector] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__, self.settings.log_level)
        self.metrics = metrics or MetricsCollector()
        self._sleep = sleep

        data_manager = data_manager or DataManager()
        self.map_processor = MapProcessor(map_fn, data_manager)
        self.reduce_processor = ReduceProcessor(reduce_fn, data_manager)
        self.summary = WorkerSummary()

    async def run(self) -> WorkerSummary:
        """
        Run until the coordinator reports the job done.

        Raises:
            CoordinatorUnavailableError: If `rpc_max_attempts` is set and a
                call keeps failing that many times in a row.
            ProtocolError: If `rpc_max_attempts` is set and that many
                assignment requests in a row are rejected.
        """
        self.logger.info(f"Worker {self.settings.worker_id} starting")
        backoff = self.settings.retry_initial_backoff_seconds
        rejections = 0

        while True:
            try:
                task_context = await self._call_with_retry(
                    "request assignment", self.client.request_assignment
                )
            except ProtocolError as e:
                rejections += 1
                max_attempts = self.settings.rpc_max_attempts
                if max_attempts is not None and rejections >= max_attempts:
                    self.logger.error(f"Assignment requests rejected {rejections} times, giving up: {e}")
                    raise
                self.logger.warning(f"Assignment request rejected ({e}), retrying in {backoff:.2f}s")
                await self._sleep(backoff)
                backoff = min(backoff * 2, self.settings.retry_max_backoff_seconds)
                continue
            backoff = self.settings.retry_initial_backoff_seconds
            rejections = 0

            if task_context.kind == AssignmentKind.ALL_DONE:
                self.logger.info(
                    f"Job done, worker {self.settings.worker_id} exiting: "
                    f"{self.summary.tasks_completed} completed, "
                    f"{self.summary.tasks_discarded} discarded, "
                    f"{self.summary.tasks_failed} failed"
                )
                return self.summary
            elif task_context.kind == AssignmentKind.WAIT:
                await self._sleep(self.settings.wait_interval_seconds)
            elif task_context.has_work():
                await self._run_task(task_context)
            else:
                raise ValueError(f"Unhandled assignment kind: {task_context.kind}")

    async def _run_task(self, task_context: TaskContext):
        phase = task_context.phase.value
        self.logger.info(
            f"Starting task {task_context.task_id} (epoch {task_context.attempt_epoch})"
        )

        start_time = time.monotonic()
        try:
            manifest = await self._execute(task_context)
        except TaskExecutionError as e:
            # Not reported: the slot stays in progress until its deadline
            self.summary.tasks_failed += 1
            self.metrics.increment_counter("tasks_failed", phase)
            self.logger.error(f"Task {task_context.task_id} failed: {e}")
            return
        self.metrics.observe_histogram("task_duration", time.monotonic() - start_time, phase)

        try:
            status = await self._call_with_retry(
                "report completion", self.client.report_completion, task_context, manifest
            )
        except ProtocolError as e:
            self.summary.tasks_discarded += 1
            self.metrics.increment_counter("tasks_discarded", phase)
            self.logger.warning(f"Report for {task_context.task_id} rejected: {e}")
            return

        if status == CompletionStatus.ACCEPTED:
            self.summary.tasks_completed += 1
            self.metrics.increment_counter("tasks_completed", phase)
            self.logger.info(f"Task {task_context.task_id} completed")
        elif status in (CompletionStatus.STALE, CompletionStatus.ALREADY_DONE):
            self.summary.tasks_discarded += 1
            self.metrics.increment_counter("tasks_discarded", phase)
            self.logger.info(
                f"Discarding result of {task_context.task_id} "
                f"(epoch {task_context.attempt_epoch}): {status.value}"
            )
        else:
            raise ValueError(f"Unhandled completion status: {status}")

    async def _execute(self, task_context: TaskContext) -> List[str]:
        if task_context.kind == AssignmentKind.MAP_WORK:
            return await self.map_processor.process(task_context)
        if task_context.kind == AssignmentKind.REDUCE_WORK:
            return await self.reduce_processor.process(task_context)
        raise ValueError(f"Assignment {task_context.kind} carries no task")

    async def _call_with_retry(self, description: str, call, *args):
        backoff = self.settings.retry_initial_backoff_seconds
        max_attempts = self.settings.rpc_max_attempts
        attempt = 0

        while True:
            attempt += 1
            try:
                return await call(*args)
            except CoordinatorUnavailableError as e:
                if max_attempts is not None and attempt >= max_attempts:
                    self.logger.error(f"Giving up on {description} after {attempt} attempts: {e}")
                    raise
                self.logger.warning(f"{description} failed ({e}), retrying in {backoff:.2f}s")
                self.metrics.increment_counter("rpc_retries")
                await self._sleep(backoff)
                backoff = min(backoff * 2, self.settings.retry_max_backoff_seconds)
