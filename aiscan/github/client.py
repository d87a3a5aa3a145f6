"""
GitHub API 客户端（外部系统连接器）。

约定：
- 这里只做 HTTP 调用 + 错误处理 + schema 校验
- 出错直接抛 `GitHubAPIError`（不要吞），是否降级由调用方决定
- 唯一的例外是整仓 tree 遍历：单个子目录失败只记日志并跳过
"""

from __future__ import annotations

import base64
import logging
from collections import deque
from urllib.parse import quote

import httpx

from aiscan.github.schemas import GitHubContent
from aiscan.github.schemas import GitHubIssue
from aiscan.github.schemas import GitHubPullRequestFile
from aiscan.github.schemas import GitHubRepository
from aiscan.github.schemas import GitHubTree
from aiscan.github.schemas import GitHubTreeItem

logger = logging.getLogger(__name__)


class GitHubAPIError(RuntimeError):
    """GitHub 返回 4xx/5xx。"""

    def __init__(self, status_code: int, text: str) -> None:
        super().__init__(f"GitHub API error {status_code}: {text}")
        self.status_code = status_code


class GitHubClient:
    """GitHub REST client：PR files、仓库 tree/contents、review、issue。"""

    def __init__(self, api_base_url: str, token: str, http_client: httpx.AsyncClient) -> None:
        self._api_base_url = api_base_url.rstrip("/")
        self._token = token
        self._http_client = http_client

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _repo_url(self, owner: str, repo: str) -> str:
        return f"{self._api_base_url}/repos/{owner}/{repo}"

    async def _request(self, method: str, url: str, **kwargs: object) -> httpx.Response:
        response = await self._http_client.request(method, url, headers=self._headers(), **kwargs)
        if response.status_code >= 400:
            raise GitHubAPIError(response.status_code, response.text)
        return response

    async def list_pull_request_files(self, owner: str, repo: str, pull_number: int) -> list[GitHubPullRequestFile]:
        """
        拉取 PR 的变更文件列表（包含每个文件的 patch diff）。

        注意：GitHub API 有分页；这里会拉取全部文件并保持返回顺序。
        """
        per_page = 100
        page = 1
        all_items: list[GitHubPullRequestFile] = []
        while True:
            response = await self._request(
                "GET",
                f"{self._repo_url(owner, repo)}/pulls/{pull_number}/files",
                params={"per_page": per_page, "page": page},
            )
            data = response.json()
            if not isinstance(data, list):
                raise RuntimeError(f"Unexpected GitHub response shape for PR files: {data}")
            items = [GitHubPullRequestFile.model_validate(x) for x in data]
            all_items.extend(items)
            if len(items) < per_page:
                break
            page += 1
        return all_items

    async def get_repository(self, owner: str, repo: str) -> GitHubRepository:
        response = await self._request("GET", self._repo_url(owner, repo))
        return GitHubRepository.model_validate(response.json())

    async def get_tree(self, owner: str, repo: str, tree_sha: str) -> GitHubTree:
        """单层 tree（tree_sha 可以是分支名或 tree SHA）。"""
        response = await self._request("GET", f"{self._repo_url(owner, repo)}/git/trees/{quote(tree_sha, safe='')}")
        return GitHubTree.model_validate(response.json())

    async def list_repository_tree(self, owner: str, repo: str, branch: str) -> list[GitHubTreeItem]:
        """
        广度优先遍历整个仓库的 tree，返回所有条目（path 已补全为仓库相对路径）。

        - 根 tree 拉取失败直接抛错
        - 子目录失败只记日志，继续处理其余目录
        """
        root = await self.get_tree(owner, repo, branch)
        all_items: list[GitHubTreeItem] = list(root.tree)
        pending: deque[GitHubTreeItem] = deque(item for item in root.tree if item.type == "tree")
        logger.info(f"Found {len(all_items)} items at root level, {len(pending)} directories to process")

        processed = 0
        while pending:
            directory = pending.popleft()
            processed += 1
            if processed % 10 == 0:
                logger.info(f"Processed {processed} directories, {len(pending)} remaining...")
            try:
                subtree = await self.get_tree(owner, repo, directory.sha)
            except (GitHubAPIError, httpx.HTTPError) as exc:
                logger.error(f"Error fetching directory {directory.path}: {exc}")
                continue
            for item in subtree.tree:
                full = item.model_copy(update={"path": f"{directory.path}/{item.path}"})
                all_items.append(full)
                if full.type == "tree":
                    pending.append(full)

        logger.info(f"Completed recursive tree traversal, found {len(all_items)} total items")
        return all_items

    async def get_file_content(self, owner: str, repo: str, path: str, ref: str | None = None) -> str:
        """通过 contents API 获取单个文件文本（base64 解码为 UTF-8）。"""
        params = {"ref": ref} if ref else None
        response = await self._request(
            "GET",
            f"{self._repo_url(owner, repo)}/contents/{quote(path)}",
            params=params,
        )
        content = GitHubContent.model_validate(response.json())
        if content.type != "file" or content.encoding != "base64" or content.content is None:
            raise ValueError(f"Unsupported content for {path}: type={content.type}, encoding={content.encoding}")
        return base64.b64decode(content.content).decode("utf-8")

    async def create_pull_request_review(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        body: str,
        commit_id: str | None = None,
    ) -> None:
        """
        创建一条 PR review（会出现在 GitHub 的 "Reviews" 区域）。

        说明：event=COMMENT 表示"评论型 review"（不 approve / request changes）。
        """
        payload: dict[str, str] = {"body": body, "event": "COMMENT"}
        if commit_id:
            payload["commit_id"] = commit_id
        await self._request("POST", f"{self._repo_url(owner, repo)}/pulls/{pull_number}/reviews", json=payload)

    async def create_issue(self, owner: str, repo: str, title: str, body: str, labels: list[str]) -> GitHubIssue:
        response = await self._request(
            "POST",
            f"{self._repo_url(owner, repo)}/issues",
            json={"title": title, "body": body, "labels": labels},
        )
        return GitHubIssue.model_validate(response.json())

    async def close_issue(self, owner: str, repo: str, issue_number: int) -> GitHubIssue:
        response = await self._request(
            "PATCH",
            f"{self._repo_url(owner, repo)}/issues/{issue_number}",
            json={"state": "closed"},
        )
        return GitHubIssue.model_validate(response.json())

    async def create_and_close_issue(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        labels: list[str],
    ) -> GitHubIssue:
        """创建一条 issue 作为留档，然后立即关闭。"""
        issue = await self.create_issue(owner=owner, repo=repo, title=title, body=body, labels=labels)
        logger.info(f"Issue created: {issue.html_url}")
        closed = await self.close_issue(owner=owner, repo=repo, issue_number=issue.number)
        logger.info(f"Issue #{closed.number} closed")
        return closed
