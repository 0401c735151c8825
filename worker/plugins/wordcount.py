"""Word count: the reference map/reduce pair."""

import re
from typing import Iterator, List, Tuple

WORD_PATTERN = re.compile(r"[A-Za-z]+")


def map_fn(task_id: str, contents: str) -> Iterator[Tuple[str, int]]:
    for word in WORD_PATTERN.findall(contents):
        yield word.lower(), 1


def reduce_fn(key: str, values: List[int]) -> int:
    return sum(int(value) for value in values)
