# Standard library imports for type hints
from typing import Any, Dict, List, Optional

# Third-party imports for HTTP client operations
import httpx

# Internal imports for configuration, wire models and logging
from worker.models.task_context import CompletionStatus, TaskContext
from worker.utils.config import WorkerSettings, get_settings
from worker.utils.errors import CoordinatorUnavailableError, ProtocolError
from worker.utils.logger import get_logger

class CoordinatorClient:
    """
    HTTP client for the worker's two RPCs to the coordinator.

    This client covers:
    - Requesting an assignment
    - Reporting a committed task with its attempt epoch
    - Querying whether the job is done

    Failures are classified so the WorkerLoop can react to them:
    - Connection errors, timeouts and 5xx answers raise
      CoordinatorUnavailableError (transient, safe to retry)
    - 4xx answers raise ProtocolError (the coordinator refused the request)
    """

    def __init__(
        self,
        settings: Optional[WorkerSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: Optional[str] = None,
    ):
        """
        Initialize the client with configuration and connection settings.

        Args:
            settings: Worker configuration, the cached settings if omitted
            transport: Optional httpx transport, e.g. an in-process ASGI app
            base_url: Overrides the URL built from coordinator host and port
        """
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__, self.settings.log_level)
        self.coordinator_url = base_url or f"http://{self.settings.coordinator_host}:{self.settings.coordinator_port}"
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def start(self):
        """
        Initialize the HTTP client with timeouts and connection pooling.
        """
        self.client = httpx.AsyncClient(
            base_url=f"{self.coordinator_url}/api/v1",
            timeout=httpx.Timeout(self.settings.request_timeout),
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            transport=self.transport,
        )
        self.logger.info(f"Coordinator client initialized for {self.coordinator_url}")

    async def close(self):
        """
        Close the HTTP client and release all network resources.
        """
        if self.client:
            await self.client.aclose()
            self.client = None
            self.logger.info("Coordinator client closed")

    async def __aenter__(self) -> "CoordinatorClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def request_assignment(self) -> TaskContext:
        """
        Ask the coordinator for the next unit of work.

        Returns:
            TaskContext: The assignment, which may be WAIT or ALL_DONE

        Raises:
            CoordinatorUnavailableError: On transport failure
            ProtocolError: If the coordinator rejects the request
        """
        data = await self._call("POST", "/tasks/request", {"worker_id": self.settings.worker_id})
        return TaskContext(**data)

    async def report_completion(self, task_context: TaskContext, output_manifest: List[str]) -> CompletionStatus:
        """
        Report a committed task to the coordinator.

        Args:
            task_context: The assignment being reported, carrying its epoch
            output_manifest: Locations the task published

        Returns:
            CompletionStatus: ACCEPTED, STALE or ALREADY_DONE

        Raises:
            CoordinatorUnavailableError: On transport failure
            ProtocolError: If the coordinator rejects the report
        """
        report_data = {
            "worker_id": self.settings.worker_id,
            "phase": task_context.phase.value,
            "task_index": task_context.task_index,
            "attempt_epoch": task_context.attempt_epoch,
            "output_manifest": output_manifest,
        }
        data = await self._call("POST", "/tasks/complete", report_data)
        return CompletionStatus(data["status"])

    async def is_job_done(self) -> bool:
        data = await self._call("GET", "/jobs/done")
        return bool(data["done"])

    async def _call(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.client:
            await self.start()

        try:
            response = await self.client.request(method, path, json=payload)
        except httpx.TransportError as e:
            raise CoordinatorUnavailableError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 500:
            raise CoordinatorUnavailableError(
                f"{method} {path} answered {response.status_code}"
            )
        if response.status_code >= 400:
            raise ProtocolError(
                f"{method} {path} rejected with {response.status_code}: {response.text}"
            )
        return response.json()
