"""Snapshot builder: fetches every resource kind for one repository.

Orchestrates GitHubClient to pull the repository summary, issues, pulls,
issue comments, releases and, per pull request, reviews and review comments,
then assembles one immutable Snapshot.

Fetch order is fixed and strictly sequential so the export spends the
shared rate-limit budget one request at a time:
summary -> issues -> pulls -> issue comments -> releases -> (reviews,
review comments) for each pull in retrieval order.
"""

import logging
import time

from gitmeta import metrics
from gitmeta.config import GitMetaConfig, get_config
from gitmeta.connectors.github.client import GitHubClient
from gitmeta.models import (
    Issue,
    IssueComment,
    PullRequest,
    PullReview,
    PullReviewComment,
    Release,
    RepoSummary,
    RepoTarget,
    Snapshot,
)

logger = logging.getLogger("gitmeta.github.snapshot")


class SnapshotBuilder:
    """Builds a Snapshot from an open GitHubClient.

    Any failing sub-fetch aborts the build; there is no partial snapshot.

    Attributes:
        client: GitHubClient used for every request of the build
    """

    def __init__(self, client: GitHubClient) -> None:
        self.client = client

    async def build(self, target: RepoTarget) -> Snapshot:
        """Fetch all resources for ``target`` and return the snapshot.

        Raises:
            RateLimitExceeded: When any request is rate limited
            RequestFailure: When any request fails otherwise
        """
        start = time.monotonic()
        base = target.api_path
        logger.info(
            "Starting snapshot: repo=%s, authenticated=%s",
            target.full_name,
            self.client.authenticated,
        )

        summary = RepoSummary.from_api(await self.client.fetch_json(base))

        paged_issues = await self.client.paginate(f"{base}/issues", {"state": "all"})
        issues = tuple(
            issue
            for issue in (Issue.from_api(item) for item in paged_issues)
            if not issue.is_pull_request
        )

        pulls = tuple(
            PullRequest.from_api(item)
            for item in await self.client.paginate(f"{base}/pulls", {"state": "all"})
        )
        issue_comments = tuple(
            IssueComment.from_api(item)
            for item in await self.client.paginate(f"{base}/issues/comments")
        )
        releases = tuple(
            Release.from_api(item)
            for item in await self.client.paginate(f"{base}/releases")
        )

        reviews: list[PullReview] = []
        review_comments: list[PullReviewComment] = []
        for pr in pulls:
            pr_reviews, pr_comments = await self._fetch_pull_extras(base, pr.number)
            reviews.extend(pr_reviews)
            review_comments.extend(pr_comments)

        snapshot = Snapshot(
            summary=summary,
            issues=issues,
            pulls=pulls,
            issue_comments=issue_comments,
            releases=releases,
            reviews=tuple(reviews),
            review_comments=tuple(review_comments),
        )

        elapsed = time.monotonic() - start
        metrics.export_duration_seconds.observe(elapsed)
        metrics.record_snapshot_counts(snapshot.counts())
        logger.info(
            "Snapshot complete: repo=%s, issues=%d, pulls=%d, issue_comments=%d, "
            "releases=%d, reviews=%d, review_comments=%d in %.1fs",
            target.full_name,
            len(snapshot.issues),
            len(snapshot.pulls),
            len(snapshot.issue_comments),
            len(snapshot.releases),
            len(snapshot.reviews),
            len(snapshot.review_comments),
            elapsed,
        )
        return snapshot

    async def _fetch_pull_extras(
        self, base: str, number: int
    ) -> tuple[list[PullReview], list[PullReviewComment]]:
        reviews = [
            PullReview.from_api(item)
            for item in await self.client.paginate(f"{base}/pulls/{number}/reviews")
        ]
        comments = [
            PullReviewComment.from_api(item)
            for item in await self.client.paginate(f"{base}/pulls/{number}/comments")
        ]
        return reviews, comments


async def fetch_snapshot(
    target: RepoTarget,
    token: str | None = None,
    config: GitMetaConfig | None = None,
    client: GitHubClient | None = None,
) -> Snapshot:
    """Fetch a snapshot, owning the client lifecycle.

    Args:
        target: Repository to export
        token: Optional token; falls back to GITHUB_TOKEN from config
        config: Settings (uses get_config() if None)
        client: Pre-built client (closed on return)

    Returns:
        Snapshot of the repository
    """
    if client is None:
        client = GitHubClient.from_config(config or get_config(), token=token)
    async with client:
        return await SnapshotBuilder(client).build(target)
