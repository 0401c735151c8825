import os
import socket
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


def _default_worker_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


class WorkerSettings(BaseSettings):
    worker_id: str = Field(default_factory=_default_worker_id, description="Unique worker identifier")
    coordinator_host: str = Field("localhost", description="Coordinator host")
    coordinator_port: int = Field(8000, description="Coordinator port")
    request_timeout: float = Field(10.0, description="Timeout for coordinator requests (seconds)")

    plugin: str = Field("worker.plugins.wordcount", description="Module providing map_fn and reduce_fn")

    wait_interval_seconds: float = Field(0.5, description="Pause after a WAIT answer (seconds)")
    retry_initial_backoff_seconds: float = Field(0.2, description="First backoff after a transport failure (seconds)")
    retry_max_backoff_seconds: float = Field(5.0, description="Backoff ceiling after transport failures (seconds)")
    rpc_max_attempts: Optional[int] = Field(None, description="Attempts per RPC before giving up; retry forever if unset")

    log_level: str = Field("info", description="Logging level")
    metrics_port: Optional[int] = Field(None, description="Prometheus metrics port; disabled if unset")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "MR_WORKER_"


@lru_cache()
def get_settings() -> WorkerSettings:
    return WorkerSettings()
