# Standard library imports for async execution and grouping
import asyncio
from collections import defaultdict
from typing import Any, Callable, Dict, List, Tuple

# Internal imports for task context and storage
from worker.models.task_context import TaskContext
from worker.services.data_manager import DataManager
from worker.utils.errors import TaskExecutionError
from worker.utils.logger import get_logger

ReduceFunction = Callable[[Any, List[Any]], Any]


class ReduceProcessor:
    """
    Executes the reduce phase of one task.

    The reduce task's inputs are the partition files addressed to its bucket
    by every map task. All of them are read and grouped by key before the
    user reduce function runs once per key, in sorted key order, and the
    results are published as a single output file.
    """

    def __init__(self, reduce_fn: ReduceFunction, data_manager: DataManager):
        self.reduce_fn = reduce_fn
        self.data_manager = data_manager
        self.logger = get_logger(__name__)

    async def process(self, task_context: TaskContext) -> List[str]:
        """
        Run one reduce task and publish its output.

        Args:
            task_context: Assignment carrying the partition files and the
                output location

        Returns:
            List[str]: Single-element manifest with the published output

        Raises:
            InputUnavailableError: If a partition file is missing or corrupt
            TaskExecutionError: If the reduce function fails
        """
        if len(task_context.output_refs) != 1:
            raise TaskExecutionError(
                f"Task {task_context.task_id} has {len(task_context.output_refs)} "
                f"output locations, expected 1"
            )

        # 1. Shuffle: collect and group every partition for this bucket
        grouped_data = await self._get_and_group_input_data(task_context.input_refs)

        # 2. Run the user reduce function per key
        try:
            results = await asyncio.to_thread(self._run_reduce, grouped_data)
        except Exception as e:
            self.logger.error(f"Reduce function failed on {task_context.task_id}: {e}")
            raise TaskExecutionError(f"Reduce processing failed: {e}") from e

        # 3. Publish the output file atomically
        output_file = await self.data_manager.write_records_atomic(
            task_context.output_refs[0], results
        )

        self.logger.info(
            f"Reduce task {task_context.task_id} wrote {len(results)} keys "
            f"from {len(task_context.input_refs)} partitions"
        )
        return [output_file]

    async def _get_and_group_input_data(self, input_refs: List[str]) -> Dict[Any, List[Any]]:
        grouped_data = defaultdict(list)
        total_records = 0

        for partition_path in input_refs:
            for key, value in await self.data_manager.read_records(partition_path):
                try:
                    grouped_data[key].append(value)
                except TypeError as e:
                    raise TaskExecutionError(
                        f"Cannot group key {key!r} from {partition_path}: {e}"
                    ) from e
                total_records += 1

        self.logger.debug(
            f"Grouped {total_records} records into {len(grouped_data)} unique keys"
        )
        return dict(grouped_data)

    def _run_reduce(self, grouped_data: Dict[Any, List[Any]]) -> List[Tuple[Any, Any]]:
        return [
            (key, self.reduce_fn(key, grouped_data[key]))
            for key in sorted(grouped_data, key=str)
        ]
