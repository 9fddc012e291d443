"""Text digest: one flat, human-readable report for a whole snapshot.

The layout is a de facto file format. Section headers (``=== SUMMARY ===``
etc.) and the ``---`` entry separator are relied on by downstream parsers.

Section order: SUMMARY, ISSUES, PULL REQUESTS, ISSUE COMMENTS, PR REVIEWS,
RELEASES, separated by two blank lines. Empty list sections print a
``(no ...)`` placeholder. Output depends only on the snapshot, so the same
snapshot always yields byte-identical text.
"""

import re
from datetime import datetime, timezone
from typing import Iterable

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

__all__ = [
    "BODY_LIMIT",
    "EMPTY",
    "TRUNCATION_MARKER",
    "build_digest",
    "extract_number",
    "format_timestamp",
    "truncate_body",
]

# Bodies are cut to keep the digest inside a model context window
BODY_LIMIT = 4000
TRUNCATION_MARKER = "\n...[truncated]..."
SEPARATOR = "---"
EMPTY = "—"
NOT_AVAILABLE = "n/a"

_PARENT_NUMBER = re.compile(r"/(\d+)(?:$|[?#])")


def truncate_body(body: str | None) -> str:
    """Return the body, cut to BODY_LIMIT characters plus a marker."""
    if not body:
        return ""
    if len(body) > BODY_LIMIT:
        return body[:BODY_LIMIT] + TRUNCATION_MARKER
    return body


def format_timestamp(value: str | None) -> str:
    """Normalise a GitHub timestamp to UTC ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Missing values render "n/a"; strings that do not parse are kept as is.
    """
    if not value:
        return NOT_AVAILABLE
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    parsed = parsed.astimezone(timezone.utc)
    return parsed.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def extract_number(url: str | None) -> str:
    """Parent issue/pull number from an API URL, or "?" when absent.

    >>> extract_number("https://api.github.com/repos/o/r/issues/42")
    '42'
    """
    match = _PARENT_NUMBER.search(url or "")
    return match.group(1) if match else "?"


def _or_default(value: str | None, default: str) -> str:
    return default if value is None else value


def _join(items: Iterable[str]) -> str:
    joined = ", ".join(items)
    return joined or EMPTY


def _append_body(lines: list[str], body: str | None, heading: str) -> None:
    text = truncate_body(body)
    if text:
        lines.append(heading)
        lines.append(text)


def _append_summary(lines: list[str], summary: RepoSummary) -> None:
    lines.append("=== SUMMARY ===")
    lines.append(f"Repository: {summary.full_name}")
    lines.append(f"Description: {_or_default(summary.description, NOT_AVAILABLE)}")
    lines.append(f"Default branch: {summary.default_branch}")
    lines.append(f"Last push: {format_timestamp(summary.pushed_at)}")
    lines.append(f"Stars: {summary.stargazers_count}")
    lines.append(f"Forks: {summary.forks_count}")
    lines.append(f"Open issues (GitHub): {summary.open_issues_count}")


def _append_item_details(lines: list[str], item: Issue | PullRequest) -> None:
    lines.append(f"Labels: {_join(item.labels)}")
    lines.append(f"Assignees: {_join(item.assignees)}")
    lines.append(f"Milestone: {_or_default(item.milestone, EMPTY)}")
    _append_body(lines, item.body, "Body:")
    lines.append(SEPARATOR)


def _append_issues(lines: list[str], issues: tuple[Issue, ...]) -> None:
    lines.append("=== ISSUES ===")
    if not issues:
        lines.append("(no issues)")
        return
    for issue in issues:
        lines.append(
            f"#{issue.number} {issue.title} [{issue.state}] "
            f"by {issue.user.login} @ {format_timestamp(issue.created_at)}"
        )
        _append_item_details(lines, issue)


def _append_pulls(lines: list[str], pulls: tuple[PullRequest, ...]) -> None:
    lines.append("=== PULL REQUESTS ===")
    if not pulls:
        lines.append("(no pull requests)")
        return
    for pr in pulls:
        merged = ", merged" if pr.merged else ""
        lines.append(
            f"PR #{pr.number} {pr.title} [{pr.state}{merged}] "
            f"by {pr.user.login} @ {format_timestamp(pr.created_at)}"
        )
        _append_item_details(lines, pr)


def _append_issue_comments(
    lines: list[str], comments: tuple[IssueComment, ...]
) -> None:
    lines.append("=== ISSUE COMMENTS ===")
    if not comments:
        lines.append("(no issue comments)")
        return
    for comment in comments:
        lines.append(
            f"{comment.user.login} @ {format_timestamp(comment.created_at)} "
            f"on issue #{extract_number(comment.issue_url)}"
        )
        lines.append(truncate_body(comment.body))
        lines.append(SEPARATOR)


def _append_review_events(lines: list[str], reviews: tuple[PullReview, ...]) -> None:
    if not reviews:
        return
    lines.append(">> Review events:")
    for review in reviews:
        lines.append(
            f"{review.author} @ {format_timestamp(review.submitted_at)} "
            f"on PR #{extract_number(review.pull_request_url)} [state={review.state}]"
        )
        body = truncate_body(review.body)
        if body:
            lines.append(body)
        lines.append(SEPARATOR)


def _append_review_comments(
    lines: list[str], comments: tuple[PullReviewComment, ...]
) -> None:
    if not comments:
        return
    lines.append("")
    lines.append(">> Review comments:")
    for comment in comments:
        lines.append(
            f"{comment.user.login} @ {format_timestamp(comment.created_at)} "
            f"on PR #{extract_number(comment.pull_request_url)}"
        )
        lines.append(truncate_body(comment.body))
        lines.append(SEPARATOR)


def _append_reviews(lines: list[str], snapshot: Snapshot) -> None:
    lines.append("=== PR REVIEWS ===")
    if not snapshot.reviews and not snapshot.review_comments:
        lines.append("(no PR reviews)")
        return
    # All review events first, then all review comments, each in fetch order
    _append_review_events(lines, snapshot.reviews)
    _append_review_comments(lines, snapshot.review_comments)


def _append_releases(lines: list[str], releases: tuple[Release, ...]) -> None:
    lines.append("=== RELEASES ===")
    if not releases:
        lines.append("(no releases)")
        return
    for release in releases:
        lines.append(
            f"Release {release.tag_name} ({_or_default(release.name, NOT_AVAILABLE)}) "
            f"created {format_timestamp(release.created_at)}, "
            f"published {format_timestamp(release.published_at)}"
        )
        _append_body(lines, release.body, "Notes:")
        lines.append(SEPARATOR)


def build_digest(snapshot: Snapshot) -> str:
    """Render the snapshot as the newline-joined text digest."""
    lines: list[str] = []
    _append_summary(lines, snapshot.summary)
    lines.extend(["", ""])
    _append_issues(lines, snapshot.issues)
    lines.extend(["", ""])
    _append_pulls(lines, snapshot.pulls)
    lines.extend(["", ""])
    _append_issue_comments(lines, snapshot.issue_comments)
    lines.extend(["", ""])
    _append_reviews(lines, snapshot)
    lines.extend(["", ""])
    _append_releases(lines, snapshot.releases)
    return "\n".join(lines)
