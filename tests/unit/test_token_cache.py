"""Tests for the persisted token cache."""

import json
import stat
from unittest.mock import AsyncMock

import pytest

from gitmeta.connectors.github.client import RequestFailure
from gitmeta.token_cache import (
    TokenEntry,
    load_token_entries,
    prune_invalid_tokens,
    remove_token_entries,
    upsert_token_entries,
)


@pytest.fixture
def cache_path(tmp_path):
    return tmp_path / "cache" / "tokens.json"


# -- load --------------------------------------------------------------


def test_missing_file_is_empty(cache_path):
    assert load_token_entries(cache_path) == []


@pytest.mark.parametrize("content", ["not json", '{"value": "x"}', "42", ""])
def test_malformed_file_is_empty(cache_path, content):
    cache_path.parent.mkdir(parents=True)
    cache_path.write_text(content)
    assert load_token_entries(cache_path) == []


def test_invalid_items_skipped(cache_path):
    cache_path.parent.mkdir(parents=True)
    cache_path.write_text(
        json.dumps(
            [
                {"value": "ghp_ok", "added_at": "2024-01-01T00:00:00Z"},
                {"value": 5},
                "ghp_bare",
                {"added_at": "2024-01-01T00:00:00Z"},
            ]
        )
    )
    assert load_token_entries(cache_path) == [
        TokenEntry("ghp_ok", "2024-01-01T00:00:00Z")
    ]


def test_missing_timestamp_filled(cache_path):
    cache_path.parent.mkdir(parents=True)
    cache_path.write_text(json.dumps([{"value": "ghp_ok"}]))
    [entry] = load_token_entries(cache_path)
    assert entry.value == "ghp_ok"
    assert entry.added_at.endswith("Z")


def test_default_path_from_config(tmp_path):
    """TOKEN_CACHE_PATH points at tmp_path/tokens.json in every test."""
    upsert_token_entries([], ["ghp_default"])
    assert (tmp_path / "tokens.json").exists()
    assert [e.value for e in load_token_entries()] == ["ghp_default"]


# -- upsert / remove ---------------------------------------------------


def test_round_trip_then_remove(cache_path):
    saved = upsert_token_entries([], ["ghp_one", "ghp_two"], cache_path)
    assert [e.value for e in saved] == ["ghp_one", "ghp_two"]

    loaded = load_token_entries(cache_path)
    assert loaded == saved

    remaining = remove_token_entries(loaded, ["ghp_two"], cache_path)
    assert [e.value for e in remaining] == ["ghp_one"]
    assert [e.value for e in load_token_entries(cache_path)] == ["ghp_one"]


def test_upsert_strips_and_dedupes(cache_path):
    first = upsert_token_entries([], ["  ghp_a ", "", "ghp_a", "ghp_b"], cache_path)
    assert [e.value for e in first] == ["ghp_a", "ghp_b"]

    again = upsert_token_entries(first, ["ghp_a", "ghp_c"], cache_path)
    assert [e.value for e in again] == ["ghp_a", "ghp_b", "ghp_c"]
    assert again[0].added_at == first[0].added_at


def test_remove_unknown_is_noop(cache_path):
    saved = upsert_token_entries([], ["ghp_a"], cache_path)
    assert remove_token_entries(saved, ["ghp_zzz", " "], cache_path) == saved


def test_cache_file_is_private(cache_path):
    upsert_token_entries([], ["ghp_a"], cache_path)
    mode = stat.S_IMODE(cache_path.stat().st_mode)
    assert mode == 0o600
    assert not list(cache_path.parent.glob(".tokens-*"))


# -- prune -------------------------------------------------------------


@pytest.mark.asyncio
async def test_prune_removes_rejected_tokens(cache_path):
    upsert_token_entries([], ["ghp_good", "ghp_bad"], cache_path)
    validate = AsyncMock(side_effect=lambda token: token == "ghp_good")

    remaining = await prune_invalid_tokens(validate, cache_path)

    assert [e.value for e in remaining] == ["ghp_good"]
    assert [e.value for e in load_token_entries(cache_path)] == ["ghp_good"]
    assert [call.args[0] for call in validate.await_args_list] == [
        "ghp_good",
        "ghp_bad",
    ]


@pytest.mark.asyncio
async def test_prune_keeps_tokens_that_could_not_be_checked(cache_path):
    upsert_token_entries([], ["ghp_a"], cache_path)
    validate = AsyncMock(side_effect=RequestFailure("offline"))

    remaining = await prune_invalid_tokens(validate, cache_path)

    assert [e.value for e in remaining] == ["ghp_a"]


@pytest.mark.asyncio
async def test_prune_empty_cache(cache_path):
    validate = AsyncMock()
    assert await prune_invalid_tokens(validate, cache_path) == []
    validate.assert_not_awaited()
