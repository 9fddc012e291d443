"""Token cache: previously used GitHub tokens persisted as JSON.

The file holds a list of ``{"value": ..., "added_at": ...}`` objects in
insertion order, de-duplicated by value. A missing or corrupt file reads as
an empty cache. Writes go through a temp file and os.replace so a crash
never leaves a half-written cache.
"""

import json
import logging
import os
import tempfile
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path

from gitmeta.config import get_config
from gitmeta.connectors.github.client import GitHubClientError

logger = logging.getLogger("gitmeta.token_cache")

__all__ = [
    "TokenEntry",
    "load_token_entries",
    "prune_invalid_tokens",
    "remove_token_entries",
    "upsert_token_entries",
]


@dataclass(frozen=True)
class TokenEntry:
    value: str
    added_at: str


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _cache_path(path: Path | None) -> Path:
    return path if path is not None else get_config().token_cache_path


def _persist(entries: Iterable[TokenEntry], path: Path | None) -> None:
    target = _cache_path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps([asdict(entry) for entry in entries], indent=2)
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".tokens-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, target)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def load_token_entries(path: Path | None = None) -> list[TokenEntry]:
    """Read the cache; unreadable or malformed content yields an empty list."""
    target = _cache_path(path)
    try:
        parsed = json.loads(target.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return []
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable token cache %s: %s", target, e)
        return []

    if not isinstance(parsed, list):
        return []

    entries = []
    for item in parsed:
        if not isinstance(item, dict) or not isinstance(item.get("value"), str):
            continue
        added_at = item.get("added_at")
        entries.append(
            TokenEntry(
                value=item["value"],
                added_at=added_at if isinstance(added_at, str) else _now(),
            )
        )
    return entries


def upsert_token_entries(
    existing: Iterable[TokenEntry], values: Iterable[str], path: Path | None = None
) -> list[TokenEntry]:
    """Add new tokens after the existing ones and persist the result.

    Values are stripped; blanks and values already cached are skipped, so an
    existing entry keeps its original timestamp.
    """
    merged: dict[str, TokenEntry] = {entry.value: entry for entry in existing}
    for value in values:
        trimmed = value.strip()
        if trimmed and trimmed not in merged:
            merged[trimmed] = TokenEntry(value=trimmed, added_at=_now())
    entries = list(merged.values())
    _persist(entries, path)
    return entries


def remove_token_entries(
    existing: Iterable[TokenEntry], values: Iterable[str], path: Path | None = None
) -> list[TokenEntry]:
    """Drop the given tokens and persist what remains."""
    removal = {value.strip() for value in values if value.strip()}
    entries = [entry for entry in existing if entry.value not in removal]
    _persist(entries, path)
    return entries


async def prune_invalid_tokens(
    validate: Callable[[str], Awaitable[bool]], path: Path | None = None
) -> list[TokenEntry]:
    """Validate every cached token and remove the ones GitHub rejects.

    Tokens are checked one at a time. A validation call that raises leaves
    the token in place.

    Args:
        validate: Coroutine returning False for a token proven invalid
        path: Cache file (defaults to config.token_cache_path)

    Returns:
        The remaining entries
    """
    entries = load_token_entries(path)
    invalid = []
    for entry in entries:
        try:
            valid = await validate(entry.value)
        except GitHubClientError as e:
            logger.warning("Could not validate cached token: %s", e)
            continue
        if not valid:
            invalid.append(entry.value)
    if not invalid:
        return entries
    logger.info("Pruning %d invalid token(s) from cache", len(invalid))
    return remove_token_entries(entries, invalid, path)
