import asyncio
import importlib
import signal
import sys
from typing import Optional

from worker.core.worker_loop import WorkerLoop, WorkerSummary
from worker.services.coordinator_client import CoordinatorClient
from worker.utils.config import WorkerSettings, get_settings
from worker.utils.errors import CoordinatorUnavailableError, ProtocolError
from worker.utils.logger import setup_logger
from worker.utils.metrics import MetricsCollector


def load_plugin(module_name: str):
    """Import the module providing the job's `map_fn` and `reduce_fn`"""
    plugin = importlib.import_module(module_name)
    return plugin.map_fn, plugin.reduce_fn


class Worker:
    """One worker process: wires the client, metrics and loop together"""

    def __init__(self, settings: Optional[WorkerSettings] = None):
        self.settings = settings or get_settings()
        self.logger = setup_logger(self.settings.log_level)
        self.metrics = MetricsCollector(port=self.settings.metrics_port or 9100)
        self.client = CoordinatorClient(self.settings)

    async def run(self) -> WorkerSummary:
        map_fn, reduce_fn = load_plugin(self.settings.plugin)
        self.logger.info(f"Loaded plugin {self.settings.plugin}")

        if self.settings.metrics_port:
            self.metrics.start_server()

        async with self.client:
            loop = WorkerLoop(
                self.client, map_fn, reduce_fn,
                settings=self.settings, metrics=self.metrics,
            )
            return await loop.run()


async def main() -> int:
    worker = Worker()
    run_task = asyncio.create_task(worker.run())

    def stop(sig):
        worker.logger.info(f"Received signal {sig.name}")
        run_task.cancel()

    event_loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        event_loop.add_signal_handler(sig, stop, sig)

    try:
        await run_task
    except asyncio.CancelledError:
        worker.logger.info("Worker stopped")
        return 130
    except CoordinatorUnavailableError as e:
        # The coordinator exits once the job is done, so this is also how
        # workers that missed ALL_DONE end up here
        worker.logger.error(f"Coordinator unreachable, exiting: {e}")
        return 1
    except ProtocolError as e:
        worker.logger.error(f"Coordinator keeps rejecting this worker, exiting: {e}")
        return 1
    return 0


def cli():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
