"""
Batch Partitioner。

贪心、在线、保序：下一个文件会让当前 batch 超出字节或文件数上限时就封口，
超大文件单独成一个 batch（不拆、不丢）。不追求最优装箱，报告按输入顺序可读更重要。
"""

from __future__ import annotations

from collections.abc import Sequence

from aiscan.analysis.models import Batch
from aiscan.analysis.models import ChangedFile


def partition_into_batches(
    files: Sequence[ChangedFile],
    max_batch_bytes: int,
    max_files_per_batch: int,
) -> list[Batch]:
    """
    - 输入：已过滤的文件列表 + 两个上限
    - 输出：按顺序拼接后恰好等于输入的 batch 列表
    - 空输入返回空列表（上游负责 "nothing to analyze" 短路）
    """
    if max_batch_bytes <= 0:
        raise ValueError("max_batch_bytes must be > 0")
    if max_files_per_batch <= 0:
        raise ValueError("max_files_per_batch must be > 0")

    batches: list[Batch] = []
    current: list[ChangedFile] = []
    current_size = 0
    for f in files:
        size = f.byte_size
        would_overflow = current_size + size > max_batch_bytes or len(current) + 1 > max_files_per_batch
        if would_overflow and current:
            batches.append(Batch(files=tuple(current)))
            current = []
            current_size = 0
        current.append(f)
        current_size += size

    if current:
        batches.append(Batch(files=tuple(current)))
    return batches
