from __future__ import annotations

import asyncio
import base64

import httpx
import pytest

from aiscan.analysis.profiles import FilterPolicy
from aiscan.github.adapter import build_changed_files_from_pull_request_files
from aiscan.github.adapter import fetch_repository_files
from aiscan.github.adapter import parse_repository_slug
from aiscan.github.adapter import parse_repository_url
from aiscan.github.adapter import select_candidate_blobs
from aiscan.github.client import GitHubClient
from aiscan.github.schemas import GitHubPullRequestFile
from aiscan.github.schemas import GitHubTreeItem


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://github.com/octo/hello", ("octo", "hello")),
        ("https://github.com/octo/hello.git", ("octo", "hello")),
        ("https://github.com/octo/hello/tree/main/src", ("octo", "hello")),
        ("git@github.com:octo/hello.git", ("octo", "hello")),
    ],
)
def test_parse_repository_url(url: str, expected: tuple[str, str]) -> None:
    assert parse_repository_url(url) == expected


@pytest.mark.parametrize("url", ["https://gitlab.com/octo/hello", "not a url", "https://github.com/octo"])
def test_parse_repository_url_rejects(url: str) -> None:
    with pytest.raises(ValueError):
        parse_repository_url(url)


def test_parse_repository_slug() -> None:
    assert parse_repository_slug("octo/hello") == ("octo", "hello")
    with pytest.raises(ValueError):
        parse_repository_slug("octo")


def test_pull_request_files_keep_missing_patch() -> None:
    files = build_changed_files_from_pull_request_files(
        [
            GitHubPullRequestFile(filename="a.py", status="added", additions=3, patch="+a"),
            GitHubPullRequestFile(filename="big.bin", status="modified", additions=0),
        ]
    )
    assert [(f.path, f.additions, f.patch) for f in files] == [("a.py", 3, "+a"), ("big.bin", 0, None)]


def test_select_candidate_blobs() -> None:
    items = [
        GitHubTreeItem(path="src", type="tree", sha="1"),
        GitHubTreeItem(path="src/app.py", type="blob", sha="2"),
        GitHubTreeItem(path="docs/logo.PNG", type="blob", sha="3"),
        GitHubTreeItem(path="web/node_modules/x/index.js", type="blob", sha="4"),
        GitHubTreeItem(path="LICENSE", type="blob", sha="5"),
        GitHubTreeItem(path="vendor/lib", type="commit", sha="6"),
    ]
    selected = select_candidate_blobs(items, FilterPolicy())
    assert [i.path for i in selected] == ["src/app.py"]


def test_fetch_repository_files_records_failures() -> None:
    good = base64.b64encode(b"a = 1\nb = 2\n").decode("ascii")

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/ok.py"):
            return httpx.Response(200, json={"path": "ok.py", "type": "file", "encoding": "base64", "content": good})
        if request.url.path.endswith("/gone.py"):
            return httpx.Response(404, text="Not Found")
        return httpx.Response(200, json={"path": "dir", "type": "dir"})

    items = [
        GitHubTreeItem(path="ok.py", type="blob", sha="1"),
        GitHubTreeItem(path="gone.py", type="blob", sha="2"),
        GitHubTreeItem(path="weird.py", type="blob", sha="3"),
    ]

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = GitHubClient(api_base_url="https://api.github.test", token="t", http_client=http_client)
            return await fetch_repository_files(client, "o", "r", "main", items)

    files, errors = asyncio.run(go())
    assert [(f.path, f.additions, f.content) for f in files] == [("ok.py", 2, "a = 1\nb = 2\n")]
    assert [e.path for e in errors] == ["gone.py", "weird.py"]
    assert "404" in errors[0].error
