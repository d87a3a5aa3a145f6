from __future__ import annotations

import pytest

from aiscan.analysis.batching import partition_into_batches
from aiscan.analysis.models import ChangedFile


def _sized(path: str, size: int) -> ChangedFile:
    return ChangedFile(path=path, patch="x" * size)


def _flatten(batches) -> list[str]:
    return [f.path for b in batches for f in b.files]


def test_empty_input_yields_no_batches() -> None:
    assert partition_into_batches([], max_batch_bytes=10, max_files_per_batch=2) == []


def test_partition_preserves_order_and_respects_limits() -> None:
    files = [_sized(f"f{i}.py", size) for i, size in enumerate([4, 4, 3, 9, 1, 1, 1, 2])]
    batches = partition_into_batches(files, max_batch_bytes=10, max_files_per_batch=3)

    assert _flatten(batches) == [f.path for f in files]
    assert [[f.path for f in b.files] for b in batches] == [
        ["f0.py", "f1.py"],
        ["f2.py"],
        ["f3.py", "f4.py"],
        ["f5.py", "f6.py", "f7.py"],
    ]
    for batch in batches:
        assert batch.total_size <= 10
        assert batch.file_count <= 3


def test_oversized_file_becomes_singleton_batch() -> None:
    files = [_sized("small.py", 2), _sized("huge.py", 50), _sized("tail.py", 2)]
    batches = partition_into_batches(files, max_batch_bytes=10, max_files_per_batch=5)

    assert [[f.path for f in b.files] for b in batches] == [["small.py"], ["huge.py"], ["tail.py"]]
    assert batches[1].total_size == 50
    assert batches[1].file_count == 1


def test_file_count_limit_closes_batch() -> None:
    files = [_sized(f"f{i}", 1) for i in range(5)]
    batches = partition_into_batches(files, max_batch_bytes=1000, max_files_per_batch=2)
    assert [b.file_count for b in batches] == [2, 2, 1]


def test_byte_size_counts_utf8_bytes() -> None:
    f = ChangedFile(path="u.txt", content="é" * 3)
    assert f.byte_size == 6


@pytest.mark.parametrize("max_bytes, max_files", [(0, 1), (1, 0), (-5, 3)])
def test_invalid_limits_raise(max_bytes: int, max_files: int) -> None:
    with pytest.raises(ValueError):
        partition_into_batches([_sized("a", 1)], max_batch_bytes=max_bytes, max_files_per_batch=max_files)
