"""
Prometheus metrics definitions for gitmeta.

Counts GitHub API requests by outcome and records export timings so cron
runs can be scraped through the node-exporter textfile collector.

Naming conventions: snake_case, gitmeta_ prefix
"""

import logging
from pathlib import Path

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, write_to_textfile

logger = logging.getLogger("gitmeta.metrics")

# ==============================================================================
# COUNTERS
# ==============================================================================

github_requests_total = Counter(
    "gitmeta_github_requests_total",
    "GitHub REST API requests issued",
    ["endpoint_kind", "outcome"],
    # endpoint_kind: summary, issues, pulls, issue_comments, releases,
    #                reviews, review_comments, rate_limit, other
    # outcome: ok, rate_limited, http_error, transport_error
)

rate_limit_hits_total = Counter(
    "gitmeta_rate_limit_hits_total",
    "GitHub 403 responses treated as rate limiting",
)

exports_total = Counter(
    "gitmeta_exports_total",
    "Repository exports attempted",
    ["status"],
    # status: success, rate_limit, request, validation
)

# ==============================================================================
# GAUGES / HISTOGRAMS
# ==============================================================================

snapshot_items = Gauge(
    "gitmeta_snapshot_items",
    "Entities in the most recent snapshot",
    ["kind"],
)

export_duration_seconds = Histogram(
    "gitmeta_export_duration_seconds",
    "Wall time spent building one snapshot",
    buckets=(1, 5, 15, 30, 60, 120, 300, 600, 1800),
)


def endpoint_kind(path: str) -> str:
    """Map a REST path to a low-cardinality endpoint label."""
    parts = [p for p in path.split("?")[0].split("/") if p]
    if parts == ["rate_limit"]:
        return "rate_limit"
    if len(parts) < 3 or parts[0] != "repos":
        return "other"
    rest = parts[3:]
    if not rest:
        return "summary"
    if rest == ["issues"]:
        return "issues"
    if rest == ["issues", "comments"]:
        return "issue_comments"
    if rest == ["pulls"]:
        return "pulls"
    if rest == ["releases"]:
        return "releases"
    if len(rest) == 3 and rest[0] == "pulls":
        return {"reviews": "reviews", "comments": "review_comments"}.get(
            rest[2], "other"
        )
    return "other"


def record_snapshot_counts(counts: dict[str, int]) -> None:
    for kind, value in counts.items():
        snapshot_items.labels(kind=kind).set(value)


def write_metrics(path: str | Path) -> None:
    """Dump the default registry in Prometheus text format.

    Args:
        path: Target .prom file; parent directories are created.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(target), REGISTRY)
    logger.debug("Wrote metrics to %s", target)
