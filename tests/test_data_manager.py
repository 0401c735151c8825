import os

import pytest

from worker.services.data_manager import DataManager
from worker.utils.errors import InputUnavailableError, TaskExecutionError


@pytest.fixture
def data_manager():
    return DataManager()


async def test_write_then_read_records(data_manager, tmp_path):
    path = str(tmp_path / "parts" / "mr-0-1")

    published = await data_manager.write_records_atomic(path, [("apple", 1), ("pear", 2)])

    assert published == path
    assert await data_manager.read_records(path) == [("apple", 1), ("pear", 2)]
    # Only the final file remains, no temporary leftovers
    assert os.listdir(tmp_path / "parts") == ["mr-0-1"]


async def test_empty_bucket_is_still_published(data_manager, tmp_path):
    path = str(tmp_path / "mr-0-0")

    await data_manager.write_records_atomic(path, [])

    assert os.path.exists(path)
    assert await data_manager.read_records(path) == []


async def test_second_publish_replaces_the_first(data_manager, tmp_path):
    path = str(tmp_path / "mr-out-0")

    await data_manager.write_records_atomic(path, [("a", 1)])
    await data_manager.write_records_atomic(path, [("a", 1)])

    assert await data_manager.read_records(path) == [("a", 1)]
    assert os.listdir(tmp_path) == ["mr-out-0"]


async def test_unserializable_record_publishes_nothing(data_manager, tmp_path):
    path = str(tmp_path / "mr-0-0")

    with pytest.raises(TaskExecutionError):
        await data_manager.write_records_atomic(path, [("ok", 1), ("bad", object())])

    assert os.listdir(tmp_path) == []


async def test_missing_partition_is_input_unavailable(data_manager, tmp_path):
    with pytest.raises(InputUnavailableError):
        await data_manager.read_records(str(tmp_path / "missing"))


async def test_corrupt_partition_is_input_unavailable(data_manager, tmp_path):
    path = tmp_path / "mr-0-0"
    path.write_text('{"key": "a", "value": 1}\n{"key": "b", "val')

    with pytest.raises(InputUnavailableError):
        await data_manager.read_records(str(path))


async def test_read_split(data_manager, tmp_path):
    path = tmp_path / "split.txt"
    path.write_text("one two\nthree\n")

    assert await data_manager.read_split(str(path)) == "one two\nthree\n"

    with pytest.raises(InputUnavailableError):
        await data_manager.read_split(str(tmp_path / "nope.txt"))


async def test_array_keys_are_read_back_as_tuples(data_manager, tmp_path):
    path = str(tmp_path / "mr-0-0")

    await data_manager.write_records_atomic(path, [(("a", 1), 1), (("b", ("c", 2)), [1, 2])])

    records = await data_manager.read_records(path)
    assert records == [(("a", 1), 1), (("b", ("c", 2)), [1, 2])]
    # Values keep their JSON shape, only keys are made hashable
    assert isinstance(records[1][1], list)
