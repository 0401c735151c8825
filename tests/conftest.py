import pytest

from coordinator.core.job_manager import JobManager
from coordinator.models.job import JobPhase
from coordinator.models.task import TaskPhase
from coordinator.utils.config import CoordinatorSettings


class FakeClock:
    """Manually advanced stand-in for time.monotonic"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def coordinator_settings(tmp_path):
    return CoordinatorSettings(
        num_reduce=2,
        work_dir=str(tmp_path / "work"),
        output_dir=str(tmp_path / "out"),
        task_timeout_seconds=10.0,
    )


@pytest.fixture
def job_manager(coordinator_settings, clock):
    return JobManager(["split-0", "split-1"], coordinator_settings, clock=clock)


def run_to_completion(job_manager, phase: TaskPhase, worker_id: str = "w"):
    """Assign and complete every task of a phase through the public operations"""
    job_phase = JobPhase.MAPPING if phase == TaskPhase.MAP else JobPhase.REDUCING
    while job_manager.get_job().phase == job_phase:
        task, kind = job_manager.scheduler.request_assignment(worker_id)
        assert task is not None, f"expected work, got {kind.value}"
        job_manager.tracker.report_completion(
            worker_id, task.phase, task.index, task.attempt_epoch, task.output_refs
        )
