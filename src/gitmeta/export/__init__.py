"""Snapshot serialisers: text digest, JSONL threads, zip archive."""

from .archive import build_file_map, build_sync_state, build_zip
from .digest import build_digest, extract_number
from .threads import build_issue_thread, build_pull_thread, group_by

__all__ = [
    "build_digest",
    "build_file_map",
    "build_issue_thread",
    "build_pull_thread",
    "build_sync_state",
    "build_zip",
    "extract_number",
    "group_by",
]
