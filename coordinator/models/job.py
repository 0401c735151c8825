# Standard library imports for enumeration support
from enum import Enum

# Third-party imports for data validation and type hints
from typing import List
from pydantic import BaseModel

from coordinator.models.task import Task, TaskPhase


class JobPhase(str, Enum):
    """
    Enumeration of the phases a job moves through.

    - MAPPING: Map tasks are being handed out, reduce tasks are held back
    - REDUCING: Every map task completed, reduce tasks are being handed out
    - DONE: Every reduce task completed
    """
    MAPPING = "mapping"
    REDUCING = "reducing"
    DONE = "done"


class Job(BaseModel):
    """
    The single job a coordinator serves for its lifetime.

    Holds the ordered map and reduce task collections together with the
    remaining-work counters that drive the MAPPING → REDUCING → DONE
    transitions. Counters only ever decrease, and only on an accepted
    first-time completion.
    """

    # === Job Shape ===
    num_map_tasks: int
    num_reduce_tasks: int

    # === Progress Tracking ===
    map_tasks_remaining: int
    reduce_tasks_remaining: int
    phase: JobPhase = JobPhase.MAPPING

    # === Tasks ===
    map_tasks: List[Task] = []
    reduce_tasks: List[Task] = []

    def tasks_for(self, phase: TaskPhase) -> List[Task]:
        if phase == TaskPhase.MAP:
            return self.map_tasks
        if phase == TaskPhase.REDUCE:
            return self.reduce_tasks
        raise ValueError(f"Unknown task phase: {phase}")

    @property
    def is_done(self) -> bool:
        return self.phase == JobPhase.DONE
