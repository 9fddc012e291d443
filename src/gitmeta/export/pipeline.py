"""Export pipeline: fetch a snapshot, then render the digest and archive.

``export_repository`` is the entry point for callers that present results
(the CLI, or any UI): it never raises for the three known failure kinds and
instead returns an ExportFailure.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from gitmeta import metrics
from gitmeta.config import GitMetaConfig
from gitmeta.connectors.github.client import (
    GitHubClient,
    RateLimitExceeded,
    RequestFailure,
)
from gitmeta.connectors.github.snapshot import fetch_snapshot
from gitmeta.export.archive import build_zip
from gitmeta.export.digest import build_digest
from gitmeta.failures import ExportFailure, to_failure
from gitmeta.models import RepoTarget, Snapshot
from gitmeta.repo import ValidationFailure, parse_repo_target

logger = logging.getLogger("gitmeta.export")

__all__ = ["ExportResult", "export_repository"]


@dataclass(frozen=True)
class ExportResult:
    """Artifacts of one successful export."""

    snapshot: Snapshot
    digest: str
    archive: bytes

    @property
    def archive_name(self) -> str:
        return f"{self.snapshot.summary.full_name.replace('/', '-')}.gitmeta.zip"


def _failed(error: Exception) -> ExportFailure:
    failure = to_failure(error)
    metrics.exports_total.labels(failure.kind.value).inc()
    logger.error("Export failed (%s): %s", failure.kind.value, failure.message)
    return failure


async def export_repository(
    target: RepoTarget | str,
    token: str | None = None,
    config: GitMetaConfig | None = None,
    synced_at: datetime | None = None,
    client: GitHubClient | None = None,
) -> ExportResult | ExportFailure:
    """Fetch one repository and build both artifacts.

    Args:
        target: RepoTarget, or raw user input to parse
        token: Optional GitHub token
        config: Settings (uses get_config() if None)
        synced_at: Capture time recorded in sync_state.json
        client: Pre-built client, mainly for tests; always closed on return

    Returns:
        ExportResult on success, ExportFailure otherwise
    """
    try:
        if isinstance(target, str):
            target = parse_repo_target(target)
    except ValidationFailure as e:
        # An injected client is closed on every return path
        if client is not None:
            await client.close()
        return _failed(e)

    try:
        snapshot = await fetch_snapshot(target, token=token, config=config, client=client)
    except (RateLimitExceeded, RequestFailure) as e:
        return _failed(e)

    digest = build_digest(snapshot)
    archive = build_zip(snapshot, synced_at)
    metrics.exports_total.labels("success").inc()
    logger.info(
        "Export ready: repo=%s, digest=%d chars, archive=%d bytes",
        snapshot.summary.full_name,
        len(digest),
        len(archive),
    )
    return ExportResult(snapshot=snapshot, digest=digest, archive=archive)
