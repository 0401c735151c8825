import asyncio
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI
import uvicorn

from coordinator.api.routes import router
from coordinator.core.job_manager import JobManager
from coordinator.utils.config import CoordinatorSettings, get_settings
from coordinator.utils.logger import setup_logger


def create_app(job_manager: JobManager) -> FastAPI:
    """
    Build the coordinator application around an already created job.

    Args:
        job_manager (JobManager): Owner of the job served by this coordinator.

    Returns:
        FastAPI: Application exposing the task and job endpoints under /api/v1.
    """
    logger = setup_logger(job_manager.settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Starts the background liveness sweep on startup and cancels it on
        shutdown.
        """
        # Startup phase
        logger.info("Coordinator starting up...")
        sweeper = asyncio.create_task(job_manager.run_liveness_sweeps())
        yield
        # Shutdown phase
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        logger.info("Coordinator shutting down...")

    app = FastAPI(
        title="Map/Reduce Coordinator",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.job_manager = job_manager

    # Register API routes under versioned prefix
    app.include_router(router, prefix="/api/v1")
    return app


async def serve(settings: Optional[CoordinatorSettings] = None) -> JobManager:
    """
    Run the coordinator until its job is done.

    Polls IsJobDone like the launching process would, keeps serving for a
    grace period so workers can still observe ALL_DONE, then stops the
    server.
    """
    settings = settings or get_settings()
    job_manager = JobManager.from_settings(settings)
    app = create_app(job_manager)

    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=settings.debug,
    )
    server = uvicorn.Server(config)
    server_task = asyncio.create_task(server.serve())

    while not job_manager.is_job_done() and not server_task.done():
        await asyncio.sleep(settings.done_poll_interval_seconds)

    if job_manager.is_job_done():
        job_manager.logger.info("Job done, shutting down coordinator")
        await asyncio.sleep(settings.shutdown_grace_seconds)
        server.should_exit = True

    await server_task
    return job_manager


# -------------------------------------------------------------------
# Application entry point
# -------------------------------------------------------------------
def main():
    asyncio.run(serve())


if __name__ == "__main__":
    main()
