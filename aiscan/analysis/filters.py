"""
File Filter（非 AI）。

在分 batch 之前剔除不该送给分类器的文件：
- 二进制/媒体/压缩包扩展名
- 固定文件名（LICENSE 等）
- 排除目录（node_modules / .git）下的路径
- 拿不到 diff/content 的条目
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Iterable

from aiscan.analysis.models import ChangedFile
from aiscan.analysis.profiles import FilterPolicy

logger = logging.getLogger(__name__)


def is_excluded_path(path: str, policy: FilterPolicy) -> bool:
    """只看路径本身的排除判断（仓库模式在拉取 content 前就会用到）。"""
    name = posixpath.basename(path)
    if name in policy.excluded_files:
        return True
    _, ext = posixpath.splitext(name)
    if ext.lower() in {e.lower() for e in policy.excluded_extensions}:
        return True
    directories = path.split("/")[:-1]
    return any(d in policy.excluded_dirs for d in directories)


def filter_changed_files(files: Iterable[ChangedFile], policy: FilterPolicy) -> list[ChangedFile]:
    """保持输入顺序，返回可分析的文件子集。"""
    kept: list[ChangedFile] = []
    for f in files:
        if is_excluded_path(f.path, policy):
            logger.debug(f"Excluded by path policy: {f.path}")
            continue
        if not f.body:
            logger.debug(f"Excluded, no diff or content: {f.path}")
            continue
        kept.append(f)
    return kept
