import pytest

from coordinator.core.data_splitter import DataSplitter


def write_lines(path, count, width=20):
    path.write_text("".join(f"{i:0{width - 1}d}\n" for i in range(count)))
    return str(path)


def test_without_split_size_every_file_is_one_split(tmp_path):
    a = write_lines(tmp_path / "a.txt", 3)
    b = write_lines(tmp_path / "b.txt", 3)

    splits = DataSplitter(str(tmp_path / "work")).split_inputs([a, b])

    assert splits == [a, b]
    assert not (tmp_path / "work").exists()


def test_missing_input_is_rejected(tmp_path):
    with pytest.raises(FileNotFoundError):
        DataSplitter(str(tmp_path)).split_inputs([str(tmp_path / "missing.txt")])


def test_split_file_cuts_on_line_boundaries(tmp_path):
    source = write_lines(tmp_path / "input.txt", 10, width=20)

    splits = DataSplitter(str(tmp_path / "work")).split_file(source, 50)

    # 20-byte lines, a split closes once it holds at least 50 bytes
    assert len(splits) == 4
    contents = [open(s, encoding="utf-8").read() for s in splits]
    assert all(c.endswith("\n") for c in contents)
    assert "".join(contents) == open(source, encoding="utf-8").read()
    assert splits[0].endswith("input_split_0")


def test_empty_file_still_yields_one_split(tmp_path):
    source = tmp_path / "empty.txt"
    source.write_text("")

    splits = DataSplitter(str(tmp_path / "work")).split_file(str(source), 1024)

    assert len(splits) == 1
    assert open(splits[0], encoding="utf-8").read() == ""


def test_split_inputs_keeps_file_order(tmp_path):
    a = write_lines(tmp_path / "a.txt", 4)
    b = write_lines(tmp_path / "b.txt", 4)
    splitter = DataSplitter(str(tmp_path / "work"))

    splits = splitter.split_inputs([a, b], split_size_mb=1)

    assert [s.rsplit("/", 1)[-1] for s in splits] == ["a_split_0", "b_split_0"]
