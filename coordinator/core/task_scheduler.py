from typing import List, Optional, Tuple

from coordinator.core.task_ledger import TaskLedger
from coordinator.models.job import JobPhase
from coordinator.models.task import AssignmentKind, Task, TaskPhase
from coordinator.utils.logger import get_logger


class AssignmentScheduler:
    """
    Responsible for handing tasks to requesting workers.

    Workers pull work: each request runs a liveness sweep and then scans the
    current phase for the lowest-index idle task, all under one acquisition
    of the ledger lock. Reduce tasks are never considered while the job is
    still mapping, which is what makes a reduce task's input set complete.
    """

    def __init__(self, ledger: TaskLedger):
        """
        Initialize the AssignmentScheduler with the ledger it mutates.

        Args:
            ledger (TaskLedger): Authoritative task state.
        """
        self.ledger = ledger
        self.logger = get_logger(__name__)

    def request_assignment(self, worker_id: str) -> Tuple[Optional[Task], AssignmentKind]:
        """
        Select the next task for a worker.

        Selection strategy:
        - Reclaim every in-progress task whose deadline has passed
        - MAPPING: first idle map task → MAP_WORK, otherwise WAIT
        - REDUCING: first idle reduce task → REDUCE_WORK, otherwise WAIT
        - DONE: ALL_DONE

        Args:
            worker_id (str): Opaque identifier of the requesting worker.

        Returns:
            Tuple of a copy of the assigned task (None for WAIT/ALL_DONE) and
            the assignment kind.
        """
        with self.ledger.lock:
            reclaimed = self._sweep_locked()

            phase = self.ledger.job.phase
            if phase == JobPhase.MAPPING:
                task, kind = self._assign_from(TaskPhase.MAP, AssignmentKind.MAP_WORK, worker_id)
            elif phase == JobPhase.REDUCING:
                task, kind = self._assign_from(TaskPhase.REDUCE, AssignmentKind.REDUCE_WORK, worker_id)
            elif phase == JobPhase.DONE:
                task, kind = None, AssignmentKind.ALL_DONE
            else:
                raise ValueError(f"Unknown job phase: {phase}")

        self._log_reclaimed(reclaimed)
        if task is not None:
            self.logger.info(f"Task {task} assigned to {worker_id} (epoch {task.attempt_epoch})")
        elif kind == AssignmentKind.WAIT:
            self.logger.debug(f"No idle task for {worker_id}, asking it to wait")
        return task, kind

    def sweep_expired(self) -> List[Task]:
        """
        Reclaim stalled assignments.

        Used by the background sweep; request_assignment runs the same sweep
        inline.

        Returns:
            List[Task]: Copies of the tasks that were reclaimed.
        """
        with self.ledger.lock:
            reclaimed = self._sweep_locked()

        self._log_reclaimed(reclaimed)
        return [task for task, _ in reclaimed]

    def _sweep_locked(self) -> List[Tuple[Task, str]]:
        now = self.ledger.clock()
        reclaimed = []
        for task in self.ledger.in_progress():
            if task.is_expired(now):
                previous_worker = self.ledger.reclaim(task)
                reclaimed.append((task.model_copy(deep=True), previous_worker))
        return reclaimed

    def _log_reclaimed(self, reclaimed: List[Tuple[Task, str]]):
        for task, previous_worker in reclaimed:
            self.logger.warning(
                f"Task {task} reclaimed from {previous_worker} "
                f"(epoch {task.attempt_epoch} expired)"
            )

    def _assign_from(
        self, phase: TaskPhase, kind: AssignmentKind, worker_id: str
    ) -> Tuple[Optional[Task], AssignmentKind]:
        task = self.ledger.first_idle(phase)
        if task is None:
            # Everything left in this phase is in flight
            return None, AssignmentKind.WAIT

        self.ledger.start_attempt(task, worker_id)
        # Copy so the caller can serialize it after the lock is released
        return task.model_copy(deep=True), kind
