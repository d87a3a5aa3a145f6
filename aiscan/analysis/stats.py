"""
Statistics Accumulator：对过滤后的文件单次扫描，得到规则需要的三个标量。
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from aiscan.analysis.models import ChangedFile
from aiscan.analysis.models import FileStats

TEST_PATH_PATTERN = re.compile(r"test|spec", re.IGNORECASE)
LICENSE_MARKER_PATTERN = re.compile(
    r"SPDX-License-Identifier|MIT License|Apache License|GNU General Public License|BSD License|Mozilla Public License"
)


def is_test_path(path: str) -> bool:
    return TEST_PATH_PATTERN.search(path) is not None


def iter_added_lines(file: ChangedFile) -> Iterable[str]:
    """diff 只取 `+` 行（跳过 `+++` 头）；完整 content 视为全部新增。"""
    if file.patch:
        for line in file.patch.splitlines():
            if line.startswith("+") and not line.startswith("+++"):
                yield line[1:]
        return
    if file.content:
        yield from file.content.splitlines()


def has_license_marker(file: ChangedFile) -> bool:
    return any(LICENSE_MARKER_PATTERN.search(line) for line in iter_added_lines(file))


def accumulate_file_stats(files: Iterable[ChangedFile]) -> FileStats:
    lines_added = 0
    tests_changed = False
    license_comment = False
    for f in files:
        lines_added += f.additions
        if not tests_changed and is_test_path(f.path):
            tests_changed = True
        if not license_comment and has_license_marker(f):
            license_comment = True
    return FileStats(lines_added=lines_added, tests_changed=tests_changed, license_comment=license_comment)
