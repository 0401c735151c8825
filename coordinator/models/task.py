# Standard library imports for enumeration support
from enum import Enum

# Third-party imports for data validation and type hints
from typing import Optional, List
from pydantic import BaseModel


class TaskPhase(str, Enum):
    """
    Phase a task belongs to.

    - MAP: Transforms one input split into R partitioned intermediate files
    - REDUCE: Aggregates one partition bucket across every map output
    """
    MAP = "map"
    REDUCE = "reduce"


class TaskState(str, Enum):
    """
    Enumeration of task states in the coordinator's ledger.

    Task lifecycle flow:
    IDLE → IN_PROGRESS → COMPLETED
              ↓
            IDLE (deadline passed, slot reclaimed)

    - IDLE: Eligible for assignment
    - IN_PROGRESS: Handed to a worker, owned until its deadline
    - COMPLETED: Terminal, output committed and accepted
    """
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class AssignmentKind(str, Enum):
    """Outcome of a worker's request for work."""
    MAP_WORK = "map_work"
    REDUCE_WORK = "reduce_work"
    WAIT = "wait"
    ALL_DONE = "all_done"


class CompletionStatus(str, Enum):
    """Outcome of a worker's completion report."""
    ACCEPTED = "accepted"
    STALE = "stale"
    ALREADY_DONE = "already_done"


class Task(BaseModel):
    """
    Ledger record of a single map or reduce task.

    Tasks are created once by the JobManager and mutated in place by the
    AssignmentScheduler and CompletionTracker while the ledger lock is held.
    `attempt_epoch` is bumped on every assignment out of IDLE and is the
    token a completion report has to present to be accepted.
    """

    # === Task Identification ===
    index: int                                  # Dense, phase-scoped index
    phase: TaskPhase                            # MAP or REDUCE

    # === Task State Tracking ===
    state: TaskState = TaskState.IDLE
    attempt_epoch: int = 0                      # 0 means never assigned
    assigned_worker: Optional[str] = None       # Valid only while IN_PROGRESS
    deadline: Optional[float] = None            # Clock reading after which the attempt is stale

    # === Data Configuration ===
    input_refs: List[str] = []                  # Split path (map) or partition files (reduce)
    output_refs: List[str] = []                 # Expected outputs, replaced by the accepted manifest

    @property
    def is_assignable(self) -> bool:
        return self.state == TaskState.IDLE

    def is_expired(self, now: float) -> bool:
        """Check whether an in-progress attempt has outlived its deadline."""
        return (
            self.state == TaskState.IN_PROGRESS
            and self.deadline is not None
            and now > self.deadline
        )

    def __str__(self):
        return f"{self.phase.value}-{self.index}"
