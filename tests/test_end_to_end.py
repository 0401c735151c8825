import asyncio
from collections import Counter

import httpx
import pytest

from coordinator.core.job_manager import JobManager
from coordinator.main import create_app
from worker.core.partitioner import bucket
from worker.core.worker_loop import WorkerLoop
from worker.models.task_context import CompletionStatus
from worker.plugins.wordcount import map_fn, reduce_fn
from worker.services.coordinator_client import CoordinatorClient
from worker.services.data_manager import DataManager
from worker.utils.config import WorkerSettings
from worker.utils.metrics import MetricsCollector

TEXTS = [
    "the quick brown fox\njumps over the lazy dog\n",
    "The dog barks\nthe fox runs\n",
]


@pytest.fixture
def splits(tmp_path):
    paths = []
    for i, text in enumerate(TEXTS):
        path = tmp_path / f"input-{i}.txt"
        path.write_text(text)
        paths.append(str(path))
    return paths


def make_client(app, worker_id):
    settings = WorkerSettings(worker_id=worker_id)
    client = CoordinatorClient(
        settings, transport=httpx.ASGITransport(app=app), base_url="http://coordinator"
    )
    return client, settings


async def run_worker(app, worker_id):
    client, settings = make_client(app, worker_id)
    async with client:
        loop = WorkerLoop(
            client, map_fn, reduce_fn,
            settings=settings, metrics=MetricsCollector(), sleep=lambda _: asyncio.sleep(0),
        )
        return await loop.run()


async def read_output(job_manager):
    data_manager = DataManager()
    return {
        task.index: dict(await data_manager.read_records(task.output_refs[0]))
        for task in job_manager.get_job().reduce_tasks
    }


def expected_counts():
    counts = Counter()
    for text in TEXTS:
        counts.update(word for word, _ in map_fn("", text))
    return dict(counts)


async def test_word_count_with_two_workers(splits, coordinator_settings):
    job_manager = JobManager(splits, coordinator_settings)
    app = create_app(job_manager)

    summaries = await asyncio.gather(
        run_worker(app, "worker-a"), run_worker(app, "worker-b")
    )

    assert job_manager.is_job_done()
    assert sum(s.tasks_completed for s in summaries) == 4

    outputs = await read_output(job_manager)
    for reduce_index, counts in outputs.items():
        assert all(bucket(word, 2) == reduce_index for word in counts)

    merged = {}
    for counts in outputs.values():
        assert not set(merged) & set(counts)
        merged.update(counts)
    assert merged == expected_counts()
    assert merged["the"] == 4


async def test_job_not_done_until_every_reduce_commits(splits, coordinator_settings):
    job_manager = JobManager(splits, coordinator_settings)
    app = create_app(job_manager)
    client, _ = make_client(app, "worker-a")

    async with client:
        for _ in range(3):
            assignment = await client.request_assignment()
            await client.report_completion(assignment, assignment.output_refs)
            assert not await client.is_job_done()

        last = await client.request_assignment()
        assert not await client.is_job_done()
        await client.report_completion(last, last.output_refs)
        assert await client.is_job_done()


async def test_crashed_worker_is_replaced(splits, coordinator_settings, clock):
    job_manager = JobManager(splits, coordinator_settings, clock=clock)
    app = create_app(job_manager)

    # worker-a takes map 0 and goes silent
    silent_client, _ = make_client(app, "worker-a")
    async with silent_client:
        abandoned = await silent_client.request_assignment()
        assert abandoned.attempt_epoch == 1

        clock.advance(coordinator_settings.task_timeout_seconds + 1)
        summary = await run_worker(app, "worker-b")

        assert summary.tasks_completed == 4
        assert job_manager.is_job_done()
        assert job_manager.get_job().map_tasks[0].attempt_epoch == 2

        # The late report is rejected and the outputs stay correct
        status = await silent_client.report_completion(abandoned, abandoned.output_refs)
        assert status == CompletionStatus.STALE

    outputs = await read_output(job_manager)
    merged = {}
    for counts in outputs.values():
        merged.update(counts)
    assert merged == expected_counts()
