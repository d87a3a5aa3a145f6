from __future__ import annotations

from aiscan.analysis.models import ChangedFile
from aiscan.analysis.stats import accumulate_file_stats


def test_stats_sum_additions_and_detect_tests() -> None:
    files = [
        ChangedFile(path="src/app.py", additions=10, patch="+a"),
        ChangedFile(path="tests/Test_App.py", additions=5, patch="+b"),
    ]
    stats = accumulate_file_stats(files)
    assert stats.lines_added == 15
    assert stats.tests_changed is True
    assert stats.license_comment is False


def test_spec_paths_count_as_tests() -> None:
    stats = accumulate_file_stats([ChangedFile(path="web/app.SPEC.ts", additions=1, patch="+x")])
    assert stats.tests_changed is True


def test_license_marker_only_counts_added_lines() -> None:
    removed = "\n".join(["@@ -1,2 +1,1 @@", "-# SPDX-License-Identifier: MIT", " import os"])
    context_only = "\n".join(["@@ -1,2 +1,3 @@", " # Apache License 2.0", "+import sys"])
    assert accumulate_file_stats([ChangedFile(path="a.py", patch=removed)]).license_comment is False
    assert accumulate_file_stats([ChangedFile(path="b.py", patch=context_only)]).license_comment is False

    added = "\n".join(["+++ b/c.py", "@@ -0,0 +1,2 @@", "+# SPDX-License-Identifier: Apache-2.0", "+import os"])
    assert accumulate_file_stats([ChangedFile(path="c.py", patch=added)]).license_comment is True


def test_full_content_counts_as_added() -> None:
    f = ChangedFile(path="lib.js", additions=2, content="// MIT License\nmodule.exports = {}\n")
    stats = accumulate_file_stats([f])
    assert stats.license_comment is True
    assert stats.lines_added == 2


def test_empty_input() -> None:
    stats = accumulate_file_stats([])
    assert (stats.lines_added, stats.tests_changed, stats.license_comment) == (0, False, False)
