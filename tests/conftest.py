"""Shared pytest fixtures for gitmeta tests.

Fixture Organization:
    - Payload factories: GitHub REST API shaped dicts
    - Snapshot fixtures: small pre-built snapshots
    - Transport fixtures: httpx.MockTransport serving canned pages
"""

import json
from collections.abc import Callable
from urllib.parse import parse_qs

import httpx
import pytest

from gitmeta.config import reset_config
from gitmeta.connectors.github.client import GitHubClient
from gitmeta.models import (
    Issue,
    IssueComment,
    PullRequest,
    PullReview,
    PullReviewComment,
    Release,
    RepoSummary,
    Snapshot,
)

API = "https://api.github.com/repos/o/r"


# =============================================================================
# Payload factories
# =============================================================================


def summary_payload(**overrides) -> dict:
    data = {
        "full_name": "o/r",
        "description": "A repo",
        "default_branch": "main",
        "pushed_at": "2024-05-01T12:00:00Z",
        "stargazers_count": 3,
        "forks_count": 1,
        "open_issues_count": 2,
    }
    data.update(overrides)
    return data


def issue_payload(number: int, **overrides) -> dict:
    data = {
        "number": number,
        "title": f"Issue {number}",
        "state": "open",
        "user": {"login": "alice"},
        "created_at": "2024-01-02T03:04:05Z",
        "closed_at": None,
        "body": None,
        "labels": [],
        "assignees": [],
        "milestone": None,
    }
    data.update(overrides)
    return data


def pull_payload(number: int, **overrides) -> dict:
    data = issue_payload(number, title=f"PR {number}", user={"login": "bob"})
    data["merged_at"] = None
    data.update(overrides)
    return data


def issue_comment_payload(comment_id: int, issue_number: int, **overrides) -> dict:
    data = {
        "id": comment_id,
        "user": {"login": "carol"},
        "body": f"comment {comment_id}",
        "created_at": "2024-01-03T00:00:00Z",
        "updated_at": "2024-01-03T00:00:00Z",
        "issue_url": f"{API}/issues/{issue_number}",
    }
    data.update(overrides)
    return data


def review_payload(review_id: int, pull_number: int, **overrides) -> dict:
    data = {
        "id": review_id,
        "user": {"login": "dave"},
        "body": "",
        "state": "APPROVED",
        "submitted_at": "2024-01-04T00:00:00Z",
        "pull_request_url": f"{API}/pulls/{pull_number}",
    }
    data.update(overrides)
    return data


def review_comment_payload(comment_id: int, pull_number: int, **overrides) -> dict:
    data = {
        "id": comment_id,
        "user": {"login": "erin"},
        "body": f"nit {comment_id}",
        "created_at": "2024-01-05T00:00:00Z",
        "updated_at": "2024-01-05T00:00:00Z",
        "pull_request_url": f"{API}/pulls/{pull_number}",
    }
    data.update(overrides)
    return data


def release_payload(release_id: int, **overrides) -> dict:
    data = {
        "id": release_id,
        "tag_name": f"v{release_id}.0",
        "name": None,
        "created_at": "2024-02-01T00:00:00Z",
        "published_at": "2024-02-02T00:00:00Z",
        "body": None,
    }
    data.update(overrides)
    return data


def make_snapshot(
    summary: dict | None = None,
    issues: list[dict] = (),
    pulls: list[dict] = (),
    issue_comments: list[dict] = (),
    releases: list[dict] = (),
    reviews: list[dict] = (),
    review_comments: list[dict] = (),
) -> Snapshot:
    return Snapshot(
        summary=RepoSummary.from_api(summary or summary_payload()),
        issues=tuple(Issue.from_api(i) for i in issues),
        pulls=tuple(PullRequest.from_api(p) for p in pulls),
        issue_comments=tuple(IssueComment.from_api(c) for c in issue_comments),
        releases=tuple(Release.from_api(r) for r in releases),
        reviews=tuple(PullReview.from_api(r) for r in reviews),
        review_comments=tuple(PullReviewComment.from_api(c) for c in review_comments),
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path):
    """Keep tests independent of the developer's environment and .env."""
    for name in (
        "GITHUB_TOKEN",
        "GITHUB_API_URL",
        "GITHUB_USER_AGENT",
        "REQUEST_TIMEOUT",
        "OUTPUT_DIR",
        "LOG_LEVEL",
        "LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TOKEN_CACHE_PATH", str(tmp_path / "tokens.json"))
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def sample_snapshot() -> Snapshot:
    """Snapshot with one of everything, including a review on a missing pull."""
    return make_snapshot(
        issues=[issue_payload(1, title="Bug", body="It breaks", labels=[{"name": "bug"}])],
        pulls=[pull_payload(2, body="Fixes #1", merged_at="2024-01-06T00:00:00Z")],
        issue_comments=[issue_comment_payload(10, 1)],
        releases=[release_payload(7, name="First", body="Notes here")],
        reviews=[review_payload(20, 2, body="LGTM"), review_payload(21, 99)],
        review_comments=[review_comment_payload(30, 2)],
    )


class RecordingRouter:
    """httpx MockTransport handler serving canned JSON per request path.

    ``routes`` maps a path to either a list of pages (served by the ``page``
    query parameter, empty list past the end) or a single JSON value.
    """

    def __init__(self, routes: dict[str, object] | None = None) -> None:
        self.routes = dict(routes or {})
        self.calls: list[httpx.Request] = []
        self.overrides: dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        path = request.url.path
        if path in self.overrides:
            return self.overrides[path](request)
        if path not in self.routes:
            return httpx.Response(404, json={"message": "Not Found"})
        value = self.routes[path]
        if isinstance(value, PagedRoute):
            page = int(parse_qs(request.url.query.decode()).get("page", ["1"])[0])
            pages = value.pages
            body = pages[page - 1] if page <= len(pages) else []
            return httpx.Response(200, content=json.dumps(body).encode())
        return httpx.Response(200, content=json.dumps(value).encode())

    def paths(self) -> list[str]:
        return [call.url.path for call in self.calls]


class PagedRoute:
    def __init__(self, *pages: list) -> None:
        self.pages = list(pages)


@pytest.fixture
def router() -> RecordingRouter:
    return RecordingRouter()


@pytest.fixture
def router_client(router):
    """GitHubClient wired to the recording router."""
    return GitHubClient(token="ghp_test", transport=httpx.MockTransport(router))
