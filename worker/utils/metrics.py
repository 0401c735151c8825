from prometheus_client import Counter, Histogram, start_http_server, CollectorRegistry
import threading

class MetricsCollector:
    """
    Prometheus metrics of one worker process.
    Each instance uses its own CollectorRegistry so several loops can share a process.
    """
    def __init__(self, port: int = 9100):
        self.registry = CollectorRegistry()
        self.tasks_completed = Counter('worker_tasks_completed', 'Tasks accepted by the coordinator', ['phase'], registry=self.registry)
        self.tasks_discarded = Counter('worker_tasks_discarded', 'Task results discarded as stale or duplicate', ['phase'], registry=self.registry)
        self.tasks_failed = Counter('worker_tasks_failed', 'Tasks abandoned because execution failed', ['phase'], registry=self.registry)
        self.rpc_retries = Counter('worker_rpc_retries', 'Coordinator calls retried after a transport failure', registry=self.registry)
        self.task_duration = Histogram('worker_task_duration_seconds', 'Task execution time in seconds', ['phase'], registry=self.registry)
        self._port = port
        self._server_thread = None

    def start_server(self):
        """Start the Prometheus HTTP exposition in the background (once)."""
        if self._server_thread is None:
            self._server_thread = threading.Thread(target=start_http_server, args=(self._port,), kwargs={"registry": self.registry}, daemon=True)
            self._server_thread.start()

    def increment_counter(self, name: str, phase: str = ""):
        """Increment one of the per-phase task counters, or the retry counter"""
        if name == "tasks_completed":
            self.tasks_completed.labels(phase=phase).inc()
        elif name == "tasks_discarded":
            self.tasks_discarded.labels(phase=phase).inc()
        elif name == "tasks_failed":
            self.tasks_failed.labels(phase=phase).inc()
        elif name == "rpc_retries":
            self.rpc_retries.inc()

    def get_counter(self, name: str, phase: str = "") -> float:
        """Current value of a counter, as exported to Prometheus"""
        if name == "rpc_retries":
            value = self.registry.get_sample_value("worker_rpc_retries_total")
        else:
            value = self.registry.get_sample_value(f"worker_{name}_total", {"phase": phase})
        return value or 0

    def observe_histogram(self, name: str, value: float, phase: str = ""):
        """Record one observation in a histogram"""
        if name == "task_duration":
            self.task_duration.labels(phase=phase).observe(value)
