"""Per-thread JSON-lines conversations for issues and pull requests.

Each thread is one JSONL document: a ``meta`` line, then the opening post
as an ``author`` message (if it has a body), then, for pulls, ``review``
lines followed by ``review_comment`` messages; for issues, ``participant``
messages. Every line is a standalone JSON object.
"""

import json
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from gitmeta.models import Issue, IssueComment, PullRequest, PullReview, PullReviewComment

__all__ = ["build_issue_thread", "build_pull_thread", "group_by"]

T = TypeVar("T")


def group_by(
    items: Iterable[T], key_fn: Callable[[T], str | int | None]
) -> dict[str, list[T]]:
    """Group items by a string key, keeping input order within each group.

    Keys are stringified; items whose key is None are dropped.
    """
    groups: dict[str, list[T]] = {}
    for item in items:
        key = key_fn(item)
        if key is None:
            continue
        groups.setdefault(str(key), []).append(item)
    return groups


def _meta(item: Issue | PullRequest, repo_name: str, obj_type: str) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "type": "meta",
        "obj_type": obj_type,
        "repo": repo_name,
        "number": item.number,
        "title": item.title,
        "state": item.state,
    }
    if isinstance(item, PullRequest):
        meta["merged_at"] = item.merged_at
    meta.update(
        {
            "author": item.user.login,
            "labels": list(item.labels),
            "assignees": list(item.assignees),
            "milestone": item.milestone,
            "created_at": item.created_at,
            "closed_at": item.closed_at,
        }
    )
    return meta


def _message(role: str, author: str, created_at: str | None, text: str) -> dict[str, Any]:
    return {
        "type": "message",
        "role": role,
        "author": author,
        "created_at": created_at,
        "text": text,
    }


def _serialize(lines: list[dict[str, Any]]) -> str:
    return "".join(json.dumps(line, ensure_ascii=False) + "\n" for line in lines)


def build_issue_thread(
    issue: Issue, comments: Iterable[IssueComment], repo_name: str
) -> str:
    """Render one issue and its comments as a JSONL conversation."""
    lines = [_meta(issue, repo_name, "issue")]
    if issue.body:
        lines.append(_message("author", issue.user.login, issue.created_at, issue.body))
    for comment in comments:
        lines.append(
            _message("participant", comment.user.login, comment.created_at, comment.body)
        )
    return _serialize(lines)


def build_pull_thread(
    pr: PullRequest,
    reviews: Iterable[PullReview],
    review_comments: Iterable[PullReviewComment],
    repo_name: str,
) -> str:
    """Render one pull request with its reviews and review comments."""
    lines = [_meta(pr, repo_name, "pull")]
    if pr.body:
        lines.append(_message("author", pr.user.login, pr.created_at, pr.body))
    for review in reviews:
        lines.append(
            {
                "type": "review",
                "author": review.author,
                "state": review.state,
                "created_at": review.submitted_at,
                "text": review.body or "",
            }
        )
    for comment in review_comments:
        lines.append(
            _message("review_comment", comment.user.login, comment.created_at, comment.body)
        )
    return _serialize(lines)
