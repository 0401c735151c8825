import pytest
from fastapi.testclient import TestClient

from coordinator.main import create_app


@pytest.fixture
def client(job_manager):
    # Not used as a context manager: the background sweeper stays off
    return TestClient(create_app(job_manager))


def request_task(client, worker_id):
    response = client.post("/api/v1/tasks/request", json={"worker_id": worker_id})
    assert response.status_code == 200
    return response.json()


def report(client, worker_id, assignment, manifest=None):
    return client.post("/api/v1/tasks/complete", json={
        "worker_id": worker_id,
        "phase": assignment["phase"],
        "task_index": assignment["task_index"],
        "attempt_epoch": assignment["attempt_epoch"],
        "output_manifest": assignment["output_refs"] if manifest is None else manifest,
    })


def test_health(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "Coordinator"}


def test_request_returns_map_work(client):
    assignment = request_task(client, "worker-a")

    assert assignment["kind"] == "map_work"
    assert assignment["phase"] == "map"
    assert assignment["task_index"] == 0
    assert assignment["attempt_epoch"] == 1
    assert assignment["input_refs"] == ["split-0"]
    assert assignment["num_reduce"] == 2
    assert len(assignment["output_refs"]) == 2


def test_wait_answer_carries_no_task(client):
    request_task(client, "worker-a")
    request_task(client, "worker-b")

    assignment = request_task(client, "worker-c")

    assert assignment["kind"] == "wait"
    assert assignment["task_index"] is None
    assert assignment["attempt_epoch"] is None


def test_full_job_over_http(client):
    assert client.get("/api/v1/jobs/done").json() == {"done": False}

    while True:
        assignment = request_task(client, "worker-a")
        if assignment["kind"] == "all_done":
            break
        response = report(client, "worker-a", assignment)
        assert response.status_code == 200
        assert response.json() == {"status": "accepted"}

    assert client.get("/api/v1/jobs/done").json() == {"done": True}


def test_duplicate_and_stale_reports_are_answered_normally(client):
    assignment = request_task(client, "worker-a")

    assert report(client, "worker-a", assignment).json() == {"status": "accepted"}
    assert report(client, "worker-a", assignment).json() == {"status": "already_done"}

    other = request_task(client, "worker-b")
    assert report(client, "worker-c", other).json() == {"status": "stale"}


def test_unknown_task_is_rejected_with_404(client, job_manager):
    response = client.post("/api/v1/tasks/complete", json={
        "worker_id": "worker-a",
        "phase": "map",
        "task_index": 99,
        "attempt_epoch": 1,
        "output_manifest": ["a", "b"],
    })

    assert response.status_code == 404
    assert job_manager.get_job().map_tasks_remaining == 2


def test_wrong_manifest_size_is_rejected_with_400(client, job_manager):
    assignment = request_task(client, "worker-a")

    response = report(client, "worker-a", assignment, manifest=["only-one"])

    assert response.status_code == 400
    assert job_manager.get_job().map_tasks_remaining == 2


def test_malformed_report_fails_validation(client):
    response = client.post("/api/v1/tasks/complete", json={"worker_id": "worker-a"})
    assert response.status_code == 422


def test_job_status(client):
    request_task(client, "worker-a")

    status = client.get("/api/v1/jobs/status").json()

    assert status == {
        "phase": "mapping",
        "num_map_tasks": 2,
        "num_reduce_tasks": 2,
        "map_tasks_remaining": 2,
        "reduce_tasks_remaining": 2,
        "tasks_in_progress": 1,
    }
