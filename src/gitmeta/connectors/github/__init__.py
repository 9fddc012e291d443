"""GitHub integration package.

Provides the async REST client (single GET, pagination, token validation)
and the snapshot builder that sequences every fetch for one repository.
"""

from .client import (
    GitHubClient,
    GitHubClientError,
    RateLimitExceeded,
    RequestFailure,
    build_headers,
    validate_token,
)
from .snapshot import SnapshotBuilder, fetch_snapshot

__all__ = [
    "GitHubClient",
    "GitHubClientError",
    "RateLimitExceeded",
    "RequestFailure",
    "SnapshotBuilder",
    "build_headers",
    "fetch_snapshot",
    "validate_token",
]
