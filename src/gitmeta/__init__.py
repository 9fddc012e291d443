"""gitmeta - export GitHub repository metadata for language models.

Fetches a repository's issues, pull requests, comments, reviews and releases
into an immutable Snapshot, then renders:
- a flat text digest (gitmeta.txt)
- a zip archive with raw JSON, per-thread JSONL and the digest

Python Version: 3.10+ required
"""

from .__version__ import __version__
from .config import GitMetaConfig, get_config, reset_config
from .models import RepoTarget, Snapshot

__all__ = [
    "GitMetaConfig",
    "RepoTarget",
    "Snapshot",
    "__version__",
    "get_config",
    "reset_config",
]
