class CoordinatorUnavailableError(Exception):
    """The coordinator could not be reached or failed mid-request; safe to retry."""


class ProtocolError(Exception):
    """The coordinator rejected a request as malformed or referring to an unknown task."""


class TaskExecutionError(Exception):
    """Running a task failed; the task is left for the coordinator to reclaim."""


class InputUnavailableError(TaskExecutionError):
    """A split or partition file the task needs is missing or corrupt."""
