import os
from typing import List, Optional
from coordinator.utils.logger import get_logger


class DataSplitter:
    """
    Input-split provider for the map phase.

    Without a split size every input file is one split. With a split size
    the files are cut into smaller split files on line boundaries, so that
    no record is divided between two map tasks.
    """

    def __init__(self, work_dir: str):
        self.work_dir = work_dir
        self.logger = get_logger(__name__)

    def split_inputs(self, input_paths: List[str], split_size_mb: Optional[int] = None) -> List[str]:
        """
        Produce the ordered list of split references for a job.

        Args:
            input_paths (List[str]): Input files of the job.
            split_size_mb (Optional[int]): Target size of each split in megabytes.

        Returns:
            List[str]: One reference per map task, in map task index order.

        Raises:
            FileNotFoundError: If an input file does not exist.
        """
        for input_path in input_paths:
            if not os.path.exists(input_path):
                raise FileNotFoundError(f"Input file not found: {input_path}")

        if not split_size_mb:
            self.logger.info(f"Using {len(input_paths)} input files as splits")
            return list(input_paths)

        splits = []
        for input_path in input_paths:
            splits.extend(self.split_file(input_path, split_size_mb * 1024 * 1024))

        self.logger.info(
            f"Data split into {len(splits)} parts of ~{split_size_mb}MB each"
        )
        return splits

    def split_file(self, input_path: str, split_size_bytes: int) -> List[str]:
        """
        Split one file into chunks of roughly `split_size_bytes`.

        Args:
            input_path (str): Path to the input file that needs to be split.
            split_size_bytes (int): Target size of each split in bytes.

        Returns:
            List[str]: Paths of the generated split files.
        """
        os.makedirs(self.work_dir, exist_ok=True)
        base_name = os.path.splitext(os.path.basename(input_path))[0]

        splits = []
        chunk = []
        chunk_size = 0

        with open(input_path, 'r', encoding='utf-8') as input_file:
            for line in input_file:
                chunk.append(line)
                chunk_size += len(line.encode('utf-8'))
                if chunk_size >= split_size_bytes:
                    splits.append(self._write_split(base_name, len(splits), chunk))
                    chunk = []
                    chunk_size = 0

        # The last split takes the remainder; an empty file still yields one split
        if chunk or not splits:
            splits.append(self._write_split(base_name, len(splits), chunk))

        return splits

    def _write_split(self, base_name: str, split_number: int, lines: List[str]) -> str:
        split_path = os.path.join(self.work_dir, f"{base_name}_split_{split_number}")
        with open(split_path, 'w', encoding='utf-8') as split_file:
            split_file.writelines(lines)

        self.logger.debug(f"Created split {split_path} with {len(lines)} lines")
        return split_path
