"""
GitHub -> analysis domain adapter。

职责：
- PR files -> `ChangedFile`（带 patch + additions）
- 仓库 tree -> 逐个拉取 content -> `ChangedFile`（单文件失败记录后跳过）
- 解析仓库 URL
"""

from __future__ import annotations

import logging
import re

import httpx

from aiscan.analysis.filters import is_excluded_path
from aiscan.analysis.models import ChangedFile
from aiscan.analysis.models import FileFetchError
from aiscan.analysis.profiles import FilterPolicy
from aiscan.github.client import GitHubAPIError
from aiscan.github.client import GitHubClient
from aiscan.github.schemas import GitHubPullRequestFile
from aiscan.github.schemas import GitHubTreeItem

logger = logging.getLogger(__name__)

_REPO_URL_PATTERN = re.compile(r"github\.com[/:]([^/\s]+)/([^/\s#?]+)")


def parse_repository_url(url: str) -> tuple[str, str]:
    """`https://github.com/owner/repo(.git)` -> (owner, repo)。"""
    match = _REPO_URL_PATTERN.search(url.strip())
    if match is None:
        raise ValueError(f"Invalid GitHub repository URL: {url}")
    owner, repo = match.group(1), match.group(2)
    repo = repo.removesuffix(".git")
    if not repo:
        raise ValueError(f"Invalid GitHub repository URL: {url}")
    return owner, repo


def parse_repository_slug(slug: str) -> tuple[str, str]:
    """`owner/repo`（GITHUB_REPOSITORY 的格式）-> (owner, repo)。"""
    parts = slug.strip().split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Invalid repository slug: {slug!r}")
    return parts[0], parts[1]


def build_changed_files_from_pull_request_files(files: list[GitHubPullRequestFile]) -> list[ChangedFile]:
    """缺失 patch 的文件原样保留（patch=None），由 File Filter 统一剔除。"""
    return [ChangedFile(path=f.filename, additions=f.additions, patch=f.patch) for f in files]


def select_candidate_blobs(items: list[GitHubTreeItem], policy: FilterPolicy) -> list[GitHubTreeItem]:
    """拉取 content 之前先按路径过滤，避免下载二进制文件。"""
    return [item for item in items if item.type == "blob" and not is_excluded_path(item.path, policy)]


async def fetch_repository_files(
    github_client: GitHubClient,
    owner: str,
    repo: str,
    branch: str,
    items: list[GitHubTreeItem],
) -> tuple[list[ChangedFile], list[FileFetchError]]:
    """逐个拉取文件内容；失败的文件记录在 errors 里，不参与统计和分析。"""
    files: list[ChangedFile] = []
    errors: list[FileFetchError] = []
    total = len(items)
    for index, item in enumerate(items, start=1):
        if index % 50 == 0 or index == total:
            logger.info(f"Processing files: {index}/{total} ({round(index / total * 100)}%)")
        try:
            content = await github_client.get_file_content(owner=owner, repo=repo, path=item.path, ref=branch)
        except (GitHubAPIError, httpx.HTTPError, ValueError) as exc:
            logger.error(f"Error fetching {item.path}: {exc}")
            errors.append(FileFetchError(path=item.path, error=str(exc)))
            continue
        files.append(ChangedFile(path=item.path, additions=len(content.splitlines()), content=content))
    return files, errors
