"""Archive packager: lays a snapshot out as files and zips them.

Layout under the ``.gitmeta/`` root:

    raw/summary.json
    raw/issues/{number}.json
    raw/pulls/{number}.json
    raw/issue_comments/{id}.json
    raw/releases/{id}.json
    raw/reviews/{pull}-{id}.json
    raw/review_comments/{pull}-{id}.json
    llm/issues/{number}.thread.jsonl
    llm/pulls/{number}.thread.jsonl
    archive/gitmeta.txt
    sync_state.json

Building the file map and compressing it are both in-memory and do not
fail for a well-formed snapshot.
"""

import io
import json
import logging
import zipfile
from datetime import datetime, timezone
from typing import Any

from gitmeta.export.digest import build_digest, extract_number
from gitmeta.export.threads import build_issue_thread, build_pull_thread, group_by
from gitmeta.models import Snapshot

logger = logging.getLogger("gitmeta.export.archive")

__all__ = [
    "ARCHIVE_ROOT",
    "COMPRESS_LEVEL",
    "build_file_map",
    "build_sync_state",
    "build_zip",
]

ARCHIVE_ROOT = ".gitmeta"
COMPRESS_LEVEL = 6

FileMap = dict[str, bytes]


def _pretty(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _write(files: FileMap, rel_path: str, content: str) -> None:
    files[f"{ARCHIVE_ROOT}/{rel_path}"] = content.encode("utf-8")


def _write_raw(files: FileMap, snapshot: Snapshot) -> None:
    _write(files, "raw/summary.json", _pretty(snapshot.summary.raw))
    for issue in snapshot.issues:
        _write(files, f"raw/issues/{issue.number}.json", _pretty(issue.raw))
    for pr in snapshot.pulls:
        _write(files, f"raw/pulls/{pr.number}.json", _pretty(pr.raw))
    for comment in snapshot.issue_comments:
        _write(files, f"raw/issue_comments/{comment.id}.json", _pretty(comment.raw))
    for release in snapshot.releases:
        _write(files, f"raw/releases/{release.id}.json", _pretty(release.raw))
    for review in snapshot.reviews:
        parent = extract_number(review.pull_request_url)
        _write(files, f"raw/reviews/{parent}-{review.id}.json", _pretty(review.raw))
    for comment in snapshot.review_comments:
        parent = extract_number(comment.pull_request_url)
        _write(
            files,
            f"raw/review_comments/{parent}-{comment.id}.json",
            _pretty(comment.raw),
        )


def _write_threads(files: FileMap, snapshot: Snapshot) -> None:
    repo_name = snapshot.summary.full_name

    comments_by_issue = group_by(
        snapshot.issue_comments, lambda c: extract_number(c.issue_url)
    )
    for issue in snapshot.issues:
        thread = build_issue_thread(
            issue, comments_by_issue.get(str(issue.number), []), repo_name
        )
        _write(files, f"llm/issues/{issue.number}.thread.jsonl", thread)

    reviews_by_pull = group_by(
        snapshot.reviews, lambda r: extract_number(r.pull_request_url)
    )
    review_comments_by_pull = group_by(
        snapshot.review_comments, lambda rc: extract_number(rc.pull_request_url)
    )
    for pr in snapshot.pulls:
        key = str(pr.number)
        thread = build_pull_thread(
            pr,
            reviews_by_pull.get(key, []),
            review_comments_by_pull.get(key, []),
            repo_name,
        )
        _write(files, f"llm/pulls/{pr.number}.thread.jsonl", thread)


def build_sync_state(
    snapshot: Snapshot, synced_at: datetime | None = None
) -> dict[str, Any]:
    """Summary record written to sync_state.json.

    Args:
        snapshot: Exported snapshot
        synced_at: Capture time (defaults to now, UTC)
    """
    moment = synced_at or datetime.now(timezone.utc)
    return {
        "repo": snapshot.summary.full_name,
        "synced_at": moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z"),
        "counts": snapshot.counts(),
    }


def build_file_map(snapshot: Snapshot, synced_at: datetime | None = None) -> FileMap:
    """Every archive member as path -> UTF-8 bytes, in archive order."""
    files: FileMap = {}
    _write_raw(files, snapshot)
    _write_threads(files, snapshot)
    _write(files, "archive/gitmeta.txt", build_digest(snapshot))
    _write(files, "sync_state.json", _pretty(build_sync_state(snapshot, synced_at)))
    return files


def build_zip(snapshot: Snapshot, synced_at: datetime | None = None) -> bytes:
    """Compress the snapshot's file map into one zip blob.

    Returns:
        Zip archive bytes (DEFLATE, level 6)
    """
    files = build_file_map(snapshot, synced_at)
    buffer = io.BytesIO()
    with zipfile.ZipFile(
        buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=COMPRESS_LEVEL
    ) as archive:
        for path, content in files.items():
            archive.writestr(path, content)
    blob = buffer.getvalue()
    logger.debug("Built archive: %d files, %d bytes", len(files), len(blob))
    return blob
