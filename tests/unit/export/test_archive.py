"""Tests for the archive file map and zip packaging."""

import io
import json
import zipfile
from datetime import datetime, timezone

from conftest import make_snapshot
from gitmeta.export.archive import (
    ARCHIVE_ROOT,
    build_file_map,
    build_sync_state,
    build_zip,
)
from gitmeta.export.digest import build_digest

SYNCED_AT = datetime(2024, 6, 1, 8, 30, 0, 250000, tzinfo=timezone.utc)


def test_file_map_paths(sample_snapshot):
    files = build_file_map(sample_snapshot, SYNCED_AT)

    assert list(files) == [
        ".gitmeta/raw/summary.json",
        ".gitmeta/raw/issues/1.json",
        ".gitmeta/raw/pulls/2.json",
        ".gitmeta/raw/issue_comments/10.json",
        ".gitmeta/raw/releases/7.json",
        ".gitmeta/raw/reviews/2-20.json",
        ".gitmeta/raw/reviews/99-21.json",
        ".gitmeta/raw/review_comments/2-30.json",
        ".gitmeta/llm/issues/1.thread.jsonl",
        ".gitmeta/llm/pulls/2.thread.jsonl",
        ".gitmeta/archive/gitmeta.txt",
        ".gitmeta/sync_state.json",
    ]
    assert all(path.startswith(f"{ARCHIVE_ROOT}/") for path in files)


def test_raw_files_are_verbatim_payloads(sample_snapshot):
    files = build_file_map(sample_snapshot, SYNCED_AT)

    raw_issue = files[".gitmeta/raw/issues/1.json"].decode("utf-8")
    assert json.loads(raw_issue) == sample_snapshot.issues[0].raw
    assert raw_issue.startswith('{\n  "number": 1')


def test_digest_member_matches_build_digest(sample_snapshot):
    files = build_file_map(sample_snapshot, SYNCED_AT)
    assert files[".gitmeta/archive/gitmeta.txt"].decode("utf-8") == build_digest(
        sample_snapshot
    )


def test_threads_receive_grouped_children(sample_snapshot):
    files = build_file_map(sample_snapshot, SYNCED_AT)

    issue_lines = files[".gitmeta/llm/issues/1.thread.jsonl"].decode().splitlines()
    assert [json.loads(line)["type"] for line in issue_lines] == [
        "meta", "message", "message",
    ]

    pull_lines = [
        json.loads(line)
        for line in files[".gitmeta/llm/pulls/2.thread.jsonl"].decode().splitlines()
    ]
    # The review on #99 has no pull in the snapshot and is only in raw/
    assert [line["type"] for line in pull_lines] == [
        "meta", "message", "review", "message",
    ]


def test_sync_state_schema(sample_snapshot):
    state = build_sync_state(sample_snapshot, SYNCED_AT)

    assert state == {
        "repo": "o/r",
        "synced_at": "2024-06-01T08:30:00.250Z",
        "counts": {
            "issues": 1,
            "pulls": 1,
            "issueComments": 1,
            "reviewComments": 1,
            "reviews": 2,
            "releases": 1,
        },
    }


def test_sync_state_defaults_to_now(sample_snapshot):
    state = build_sync_state(sample_snapshot)
    assert state["synced_at"].endswith("Z")
    assert datetime.fromisoformat(state["synced_at"].replace("Z", "+00:00"))


def test_empty_snapshot_has_only_fixed_members():
    files = build_file_map(make_snapshot(), SYNCED_AT)
    assert list(files) == [
        ".gitmeta/raw/summary.json",
        ".gitmeta/archive/gitmeta.txt",
        ".gitmeta/sync_state.json",
    ]


def test_zip_round_trip(sample_snapshot):
    blob = build_zip(sample_snapshot, SYNCED_AT)
    files = build_file_map(sample_snapshot, SYNCED_AT)

    with zipfile.ZipFile(io.BytesIO(blob)) as archive:
        assert archive.testzip() is None
        assert archive.namelist() == list(files)
        for info in archive.infolist():
            assert info.compress_type == zipfile.ZIP_DEFLATED
            assert archive.read(info.filename) == files[info.filename]
        state = json.loads(archive.read(".gitmeta/sync_state.json"))

    assert state["counts"]["reviews"] == 2
