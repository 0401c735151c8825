from enum import Enum
from typing import List, Optional
from pydantic import BaseModel


class AssignmentKind(str, Enum):
    MAP_WORK = "map_work"
    REDUCE_WORK = "reduce_work"
    WAIT = "wait"
    ALL_DONE = "all_done"


class TaskPhase(str, Enum):
    MAP = "map"
    REDUCE = "reduce"


class CompletionStatus(str, Enum):
    ACCEPTED = "accepted"
    STALE = "stale"
    ALREADY_DONE = "already_done"


class TaskContext(BaseModel):
    """Everything the worker was told about one assignment"""

    kind: AssignmentKind
    num_reduce: int

    # Set only for MAP_WORK / REDUCE_WORK
    task_index: Optional[int] = None
    phase: Optional[TaskPhase] = None
    attempt_epoch: Optional[int] = None

    # Data
    input_refs: List[str] = []
    output_refs: List[str] = []

    @property
    def task_id(self) -> str:
        """Identifier handed to the user map function"""
        return f"{self.phase.value}-{self.task_index}"

    def has_work(self) -> bool:
        return self.kind in (AssignmentKind.MAP_WORK, AssignmentKind.REDUCE_WORK)
