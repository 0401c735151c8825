import json
import os
import tempfile
from typing import Any, Iterable, List, Tuple

import aiofiles

from worker.utils.errors import InputUnavailableError, TaskExecutionError
from worker.utils.logger import get_logger


def _as_key(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_as_key(item) for item in value)
    return value


class DataManager:
    """
    Durable storage used by the map and reduce processors.

    Responsibilities:
    1. **Input access**: reads split contents and intermediate partition files
    2. **Atomic publish**: every output is written to a temporary file in the
       destination directory, flushed to disk and renamed over the final
       name, so a reader never sees a partially written file even when two
       attempts of the same task race on it
    3. **Error mapping**: a missing or unreadable input surfaces as
       `InputUnavailableError`

    Record format: one JSON object per line with `key` and `value` fields.
    """

    def __init__(self):
        self.logger = get_logger(__name__)

    async def read_split(self, split_path: str) -> str:
        """
        Read the full contents of an input split.

        Raises:
            InputUnavailableError: If the split cannot be read.
        """
        try:
            async with aiofiles.open(split_path, 'r', encoding='utf-8') as f:
                return await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise InputUnavailableError(f"Cannot read split {split_path}: {e}") from e

    async def read_records(self, partition_path: str) -> List[Tuple[Any, Any]]:
        """
        Read every key/value record of an intermediate partition file.

        Unlike the final output, a partition must be read completely: a
        malformed line means the file is corrupt, not that one record can
        be skipped.

        JSON has no tuples, so keys written as arrays are read back as
        tuples to stay hashable for grouping.

        Raises:
            InputUnavailableError: If the file is missing or corrupt.
        """
        records = []
        try:
            async with aiofiles.open(partition_path, 'r', encoding='utf-8') as f:
                async for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    record = json.loads(line)
                    records.append((_as_key(record["key"]), record["value"]))
        except (OSError, UnicodeDecodeError) as e:
            raise InputUnavailableError(f"Cannot read partition {partition_path}: {e}") from e
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise InputUnavailableError(f"Corrupt partition {partition_path}: {e}") from e

        return records

    async def write_records_atomic(self, path: str, records: Iterable[Tuple[Any, Any]]) -> str:
        """
        Publish records under `path` with write-temp-then-rename semantics.

        Args:
            path: Final location of the file
            records: Key/value pairs to write, in order

        Returns:
            str: The published path

        Raises:
            TaskExecutionError: If the file cannot be written or a record
                cannot be serialized; nothing is published in that case
        """
        directory = os.path.dirname(path) or "."
        try:
            os.makedirs(directory, exist_ok=True)
            # Temporary file in the same directory so the rename stays on one filesystem
            fd, temp_path = tempfile.mkstemp(
                dir=directory, prefix=f".{os.path.basename(path)}.", suffix=".tmp"
            )
            os.close(fd)
        except OSError as e:
            raise TaskExecutionError(f"Cannot publish {path}: {e}") from e

        count = 0
        try:
            async with aiofiles.open(temp_path, 'w', encoding='utf-8') as f:
                for key, value in records:
                    await f.write(json.dumps({"key": key, "value": value}) + '\n')
                    count += 1
                await f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
        except (OSError, TypeError, ValueError) as e:
            self._discard(temp_path)
            raise TaskExecutionError(f"Cannot publish {path}: {e}") from e
        except BaseException:
            self._discard(temp_path)
            raise

        self.logger.debug(f"Published {count} records to {path}")
        return path

    def _discard(self, temp_path: str):
        if os.path.exists(temp_path):
            os.remove(temp_path)
