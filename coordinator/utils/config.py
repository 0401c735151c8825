from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class CoordinatorSettings(BaseSettings):
    """
    Global configuration class for the coordinator service.

    This class leverages Pydantic BaseSettings to automatically load
    configuration values from environment variables (prefixed with
    `MR_COORDINATOR_`) or an `.env` file.

    Attributes:
        host (str): Host address where the FastAPI server will bind.
        port (int): Port number for the FastAPI server.
        input_files (List[str]): Input files the job is built from.
        num_reduce (int): Number of reduce tasks (partition buckets).
        task_timeout_seconds (float): Deadline applied to every assignment, both phases.
        sweep_interval_seconds (float): Period of the background liveness sweep.
    """
    host: str = Field("0.0.0.0", description="Host for the FastAPI server")
    port: int = Field(8000, description="Port for the FastAPI server")
    debug: bool = Field(False, description="Enable debug mode for FastAPI")
    log_level: str = Field("info", description="Logging level")

    input_files: List[str] = Field(default_factory=list, description="Input files for the job")
    num_reduce: int = Field(10, description="Number of reduce tasks")
    split_size_mb: Optional[int] = Field(None, description="Chunk inputs into splits of this size; one split per file if unset")
    work_dir: str = Field("/tmp/mr/work", description="Directory for splits and intermediate partition files")
    output_dir: str = Field("/tmp/mr/out", description="Directory for final reduce output")

    task_timeout_seconds: float = Field(10.0, description="Seconds before an in-progress task is reclaimed")
    sweep_interval_seconds: float = Field(1.0, description="Interval of the background liveness sweep")
    done_poll_interval_seconds: float = Field(1.0, description="Interval at which the driver polls for job completion")
    shutdown_grace_seconds: float = Field(3.0, description="Time to keep serving AllDone after the job finishes")

    class Config:
        """
        Configuration for environment variable loading.

        - `env_file`: Path to the environment file to load variables from.
        - `env_prefix`: Prefix shared by every coordinator variable.
        """
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "MR_COORDINATOR_"


@lru_cache()
def get_settings() -> CoordinatorSettings:
    """
    Retrieve a cached instance of the coordinator settings.

    Returns:
        CoordinatorSettings: The global coordinator configuration.
    """
    return CoordinatorSettings()
