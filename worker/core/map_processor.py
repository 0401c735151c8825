# Standard library imports for async execution and type hints
import asyncio
from typing import Any, Callable, Dict, Iterable, List, Tuple

# Internal imports for task context, partitioning and storage
from worker.core.partitioner import bucket
from worker.models.task_context import TaskContext
from worker.services.data_manager import DataManager
from worker.utils.errors import TaskExecutionError
from worker.utils.logger import get_logger

MapFunction = Callable[[str, str], Iterable[Tuple[Any, Any]]]


class MapProcessor:
    """
    Executes the map phase of one task.

    Steps:
    1. Read the task's input split
    2. Run the user map function over it, off the event loop
    3. Route every emitted pair to its reduce bucket with the Partitioner
    4. Publish one partition file per bucket, empty buckets included, so
       every reduce task finds an input from every map task

    The returned manifest lists the published files in bucket order.
    """

    def __init__(self, map_fn: MapFunction, data_manager: DataManager):
        self.map_fn = map_fn
        self.data_manager = data_manager
        self.logger = get_logger(__name__)

    async def process(self, task_context: TaskContext) -> List[str]:
        """
        Run one map task and publish its partitions.

        Args:
            task_context: Assignment carrying the split reference and the
                expected partition locations

        Returns:
            List[str]: Published partition files, index r for bucket r

        Raises:
            InputUnavailableError: If the split cannot be read
            TaskExecutionError: If the map function fails
        """
        num_reduce = task_context.num_reduce
        if len(task_context.output_refs) != num_reduce:
            raise TaskExecutionError(
                f"Task {task_context.task_id} has {len(task_context.output_refs)} "
                f"output locations for {num_reduce} buckets"
            )

        # 1. Load the split
        split_path = task_context.input_refs[0]
        contents = await self.data_manager.read_split(split_path)

        # 2. Run the user map function
        try:
            pairs = await asyncio.to_thread(self._run_map, task_context.task_id, contents)
        except Exception as e:
            self.logger.error(f"Map function failed on {task_context.task_id}: {e}")
            raise TaskExecutionError(f"Map processing failed: {e}") from e

        # 3. Partition by key
        try:
            partitions = self._partition(pairs, num_reduce)
        except Exception as e:
            raise TaskExecutionError(f"Partitioning failed: {e}") from e

        # 4. Publish every bucket atomically
        manifest = []
        for reduce_index, partition_path in enumerate(task_context.output_refs):
            manifest.append(
                await self.data_manager.write_records_atomic(
                    partition_path, partitions[reduce_index]
                )
            )

        self.logger.info(
            f"Map task {task_context.task_id} produced {len(pairs)} pairs "
            f"in {num_reduce} partitions"
        )
        return manifest

    def _run_map(self, task_id: str, contents: str) -> List[Tuple[Any, Any]]:
        return [(key, value) for key, value in self.map_fn(task_id, contents)]

    def _partition(
        self, pairs: List[Tuple[Any, Any]], num_reduce: int
    ) -> Dict[int, List[Tuple[Any, Any]]]:
        partitions = {i: [] for i in range(num_reduce)}
        for key, value in pairs:
            partitions[bucket(key, num_reduce)].append((key, value))

        for partition_id, records in partitions.items():
            self.logger.debug(f"Partition {partition_id}: {len(records)} records")
        return partitions
