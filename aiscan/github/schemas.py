"""
GitHub Webhook / API response schemas（Pydantic）。

说明：
- 字段只覆盖当前需要的子集（PR 事件 + files、仓库元数据、tree、contents、issue）
- 未声明的字段一律忽略（Pydantic 默认行为）
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class GitHubOwner(BaseModel):
    login: str


class GitHubRepository(BaseModel):
    name: str
    owner: GitHubOwner
    full_name: str
    html_url: str | None = None
    description: str | None = None
    stargazers_count: int = 0
    forks_count: int = 0
    default_branch: str = "main"
    created_at: str | None = None
    updated_at: str | None = None


class GitHubPullRequestHead(BaseModel):
    sha: str
    ref: str


class GitHubPullRequest(BaseModel):
    number: int
    title: str = ""
    html_url: str | None = None
    head: GitHubPullRequestHead


class GitHubPullRequestWebhookEvent(BaseModel):
    """
    GitHub `pull_request` 事件（webhook 推送或 Actions 的 GITHUB_EVENT_PATH 文件）。

    action: opened/reopened/synchronize 等
    """

    action: str
    pull_request: GitHubPullRequest
    repository: GitHubRepository


class GitHubPullRequestFile(BaseModel):
    """
    PR 文件列表 item（GET /pulls/{pull_number}/files）。

    patch 可能缺失（大文件/二进制/被截断），交给 File Filter 剔除。
    """

    filename: str
    status: Literal["added", "modified", "removed", "renamed", "changed", "copied", "unchanged"]
    additions: int = 0
    patch: str | None = None


class GitHubTreeItem(BaseModel):
    path: str
    type: Literal["blob", "tree", "commit"]
    sha: str


class GitHubTree(BaseModel):
    sha: str
    tree: list[GitHubTreeItem]
    truncated: bool = False


class GitHubContent(BaseModel):
    """GET /contents/{path} 的单文件响应。"""

    path: str
    type: str
    encoding: str | None = None
    content: str | None = None


class GitHubIssue(BaseModel):
    number: int
    html_url: str
    state: str = "open"
