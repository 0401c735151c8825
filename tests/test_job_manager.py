import asyncio
from contextlib import suppress

from coordinator.core.job_manager import JobManager
from coordinator.models.task import TaskState
from coordinator.utils.config import CoordinatorSettings
from worker.main import load_plugin
from worker.plugins import wordcount


def test_from_settings_builds_one_map_task_per_split(tmp_path):
    inputs = []
    for name in ("a.txt", "b.txt"):
        path = tmp_path / name
        path.write_text("hello world\n")
        inputs.append(str(path))
    settings = CoordinatorSettings(
        input_files=inputs,
        num_reduce=3,
        work_dir=str(tmp_path / "work"),
        output_dir=str(tmp_path / "out"),
    )

    job_manager = JobManager.from_settings(settings)

    job = job_manager.get_job()
    assert [t.input_refs for t in job.map_tasks] == [[inputs[0]], [inputs[1]]]
    assert job.num_reduce_tasks == 3
    assert (tmp_path / "work").is_dir()
    assert (tmp_path / "out").is_dir()


async def test_background_sweep_reclaims_stalled_tasks(job_manager, clock):
    job_manager.scheduler.request_assignment("worker-a")
    clock.advance(11.0)

    sweeper = asyncio.create_task(job_manager.run_liveness_sweeps(interval=0.01))
    await asyncio.sleep(0.05)
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper

    task = job_manager.get_job().map_tasks[0]
    assert task.state == TaskState.IDLE
    assert task.attempt_epoch == 1


def test_load_plugin():
    assert load_plugin("worker.plugins.wordcount") == (wordcount.map_fn, wordcount.reduce_fn)


def test_wordcount_plugin():
    assert list(wordcount.map_fn("map-0", "Hi there, hi!")) == [("hi", 1), ("there", 1), ("hi", 1)]
    assert wordcount.reduce_fn("hi", [1, "1", 1]) == 3
