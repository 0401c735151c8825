from typing import List

from coordinator.core.task_ledger import InvalidManifestError, TaskLedger
from coordinator.models.job import JobPhase
from coordinator.models.task import CompletionStatus, TaskPhase, TaskState
from coordinator.utils.logger import get_logger


class CompletionTracker:
    """
    Validates completion reports and applies the accepted ones.

    A report only has an effect when it comes from the worker that holds
    the task under the epoch it presents. Everything else leaves the ledger
    untouched and is either ALREADY_DONE (a repeat of the report that
    completed the task) or STALE (any other attempt: reclaimed, reassigned,
    or superseded by a replacement that has since completed).
    """

    def __init__(self, ledger: TaskLedger):
        self.ledger = ledger
        self.logger = get_logger(__name__)

    def report_completion(
        self,
        worker_id: str,
        phase: TaskPhase,
        task_index: int,
        attempt_epoch: int,
        output_manifest: List[str],
    ) -> CompletionStatus:
        """
        Apply a worker's completion report.

        Args:
            worker_id: Worker that ran the attempt.
            phase: Phase of the reported task.
            task_index: Phase-scoped index of the reported task.
            attempt_epoch: Epoch the worker was handed with the assignment.
            output_manifest: Committed output locations (R refs for a map
                task, one ref for a reduce task).

        Returns:
            CompletionStatus: ACCEPTED, STALE or ALREADY_DONE.

        Raises:
            UnknownTaskError: No such task; nothing is mutated.
            InvalidManifestError: Manifest has the wrong size; nothing is mutated.
        """
        with self.ledger.lock:
            task = self.ledger.get_task(phase, task_index)
            current_epoch = task.attempt_epoch
            current_state = task.state

            # A superseded attempt is stale even if its replacement already finished
            if current_epoch == attempt_epoch and current_state == TaskState.COMPLETED:
                completion_status = CompletionStatus.ALREADY_DONE
            elif (
                current_state != TaskState.IN_PROGRESS
                or task.assigned_worker != worker_id
                or current_epoch != attempt_epoch
            ):
                completion_status = CompletionStatus.STALE
            else:
                expected = self._expected_manifest_size(phase)
                if len(output_manifest) != expected:
                    raise InvalidManifestError(
                        f"Report for {task} carries {len(output_manifest)} output refs, "
                        f"expected {expected}"
                    )
                new_phase = self.ledger.complete(task, output_manifest)
                completion_status = CompletionStatus.ACCEPTED
                remaining = (self.ledger.job.map_tasks_remaining, self.ledger.job.reduce_tasks_remaining)

        if completion_status == CompletionStatus.ALREADY_DONE:
            self.logger.info(
                f"Ignoring duplicate report for {task} from {worker_id}: already completed"
            )
        elif completion_status == CompletionStatus.STALE:
            self.logger.warning(
                f"Stale report for {task} from {worker_id} (epoch {attempt_epoch}, "
                f"current epoch {current_epoch}, state {current_state.value})"
            )
        else:
            self.logger.info(
                f"Task {task} completed by {worker_id} (epoch {attempt_epoch}); "
                f"remaining map={remaining[0]} reduce={remaining[1]}"
            )
            if new_phase == JobPhase.REDUCING:
                self.logger.info("All map tasks completed, entering reduce phase")
            elif new_phase == JobPhase.DONE:
                self.logger.info("All reduce tasks completed, job done")
        return completion_status

    def _expected_manifest_size(self, phase: TaskPhase) -> int:
        if phase == TaskPhase.MAP:
            return self.ledger.job.num_reduce_tasks
        if phase == TaskPhase.REDUCE:
            return 1
        raise ValueError(f"Unknown task phase: {phase}")
