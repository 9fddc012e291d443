"""gitmeta command-line interface.

Usage:
    gitmeta ingest owner/repo [--token T] [--out DIR]   # digest + zip archive
    gitmeta validate-token [--token T]                  # check a token
    gitmeta tokens list|add|remove|prune                # manage the token cache

Exit codes for ``ingest``: 0 success, 1 request failure, 2 invalid
repository input, 3 rate limited.
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from gitmeta.config import GitMetaConfig, get_config
from gitmeta.connectors.github.client import RequestFailure, validate_token
from gitmeta.export.pipeline import export_repository
from gitmeta.failures import ExportFailure, FailureKind
from gitmeta.logging_config import configure_logging
from gitmeta.metrics import write_metrics
from gitmeta.repo import ValidationFailure, parse_repo_target
from gitmeta.token_cache import (
    load_token_entries,
    prune_invalid_tokens,
    remove_token_entries,
    upsert_token_entries,
)

logger = logging.getLogger("gitmeta.cli")

EXIT_SUCCESS = 0
EXIT_REQUEST_FAILURE = 1
EXIT_VALIDATION = 2
EXIT_RATE_LIMITED = 3

_FAILURE_EXIT_CODES = {
    FailureKind.RATE_LIMIT: EXIT_RATE_LIMITED,
    FailureKind.REQUEST: EXIT_REQUEST_FAILURE,
    FailureKind.VALIDATION: EXIT_VALIDATION,
}


def _mask(token: str) -> str:
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}…{token[-4:]}"


def _report_failure(failure: ExportFailure) -> int:
    print(f"ERROR: {failure.message}", file=sys.stderr)
    if failure.kind is FailureKind.RATE_LIMIT and failure.reset_at is not None:
        reset = datetime.fromtimestamp(failure.reset_at / 1000, tz=timezone.utc)
        print(
            f"Rate limit resets at {reset.isoformat()}. "
            "Pass --token (or set GITHUB_TOKEN) for a higher limit.",
            file=sys.stderr,
        )
    return _FAILURE_EXIT_CODES[failure.kind]


async def run_ingest(args: argparse.Namespace, config: GitMetaConfig) -> int:
    """Export one repository and write its artifacts to disk."""
    try:
        target = parse_repo_target(args.repo)
    except ValidationFailure as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return EXIT_VALIDATION

    out_dir = Path(args.out) if args.out else config.output_dir
    print(f"Exporting {target.full_name}...")
    outcome = await export_repository(target, token=args.token, config=config)
    if isinstance(outcome, ExportFailure):
        return _report_failure(outcome)

    out_dir.mkdir(parents=True, exist_ok=True)
    digest_path = out_dir / "gitmeta.txt"
    digest_path.write_text(outcome.digest, encoding="utf-8")
    print(f"  Digest: {digest_path}")

    if not args.no_archive:
        archive_path = out_dir / outcome.archive_name
        archive_path.write_bytes(outcome.archive)
        print(f"  Archive: {archive_path} ({len(outcome.archive)} bytes)")

    counts = outcome.snapshot.counts()
    print(
        f"  Issues: {counts['issues']}, PRs: {counts['pulls']}, "
        f"Comments: {counts['issueComments']}, Reviews: {counts['reviews']}, "
        f"Review comments: {counts['reviewComments']}, Releases: {counts['releases']}"
    )
    return EXIT_SUCCESS


async def run_validate_token(args: argparse.Namespace, config: GitMetaConfig) -> int:
    token = args.token if args.token is not None else config.token_value()
    if not token or not token.strip():
        print("ERROR: no token given (use --token or set GITHUB_TOKEN)", file=sys.stderr)
        return EXIT_VALIDATION
    try:
        valid = await validate_token(token, config)
    except RequestFailure as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return EXIT_REQUEST_FAILURE

    if not valid:
        print("invalid")
        return EXIT_REQUEST_FAILURE
    upsert_token_entries(
        load_token_entries(config.token_cache_path), [token], config.token_cache_path
    )
    print("valid")
    return EXIT_SUCCESS


async def run_tokens(args: argparse.Namespace, config: GitMetaConfig) -> int:
    path = config.token_cache_path
    entries = load_token_entries(path)

    if args.tokens_command == "add":
        entries = upsert_token_entries(entries, args.values, path)
    elif args.tokens_command == "remove":
        entries = remove_token_entries(entries, args.values, path)
    elif args.tokens_command == "prune":
        entries = await prune_invalid_tokens(
            lambda token: validate_token(token, config), path
        )

    if not entries:
        print("No cached tokens")
    for entry in entries:
        print(f"{_mask(entry.value)}  added {entry.added_at}")
    return EXIT_SUCCESS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitmeta",
        description="Export GitHub repository metadata for language models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ingest octocat/hello-world
  %(prog)s ingest https://github.com/octocat/hello-world --out exports
  %(prog)s validate-token --token ghp_xxx
  %(prog)s tokens list

Configuration (.env or environment):
  GITHUB_TOKEN=ghp_your_token_here
  OUTPUT_DIR=.gitmeta
        """,
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    parser.add_argument(
        "--metrics-file", help="Write Prometheus metrics to this file on exit"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Export a repository")
    ingest.add_argument("repo", help="owner/name or https://github.com/owner/name")
    ingest.add_argument("--token", help="GitHub token (overrides GITHUB_TOKEN)")
    ingest.add_argument("--out", help="Output directory (default: OUTPUT_DIR)")
    ingest.add_argument(
        "--no-archive", action="store_true", help="Only write gitmeta.txt"
    )

    check = sub.add_parser("validate-token", help="Check a token against GitHub")
    check.add_argument("--token", help="Token to check (default: GITHUB_TOKEN)")

    tokens = sub.add_parser("tokens", help="Manage the token cache")
    tokens_sub = tokens.add_subparsers(dest="tokens_command", required=True)
    tokens_sub.add_parser("list", help="Show cached tokens (masked)")
    add = tokens_sub.add_parser("add", help="Cache tokens")
    add.add_argument("values", nargs="+")
    remove = tokens_sub.add_parser("remove", help="Forget tokens")
    remove.add_argument("values", nargs="+")
    tokens_sub.add_parser("prune", help="Remove tokens GitHub rejects")

    return parser


_COMMANDS = {
    "ingest": run_ingest,
    "validate-token": run_validate_token,
    "tokens": run_tokens,
}


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    config = get_config()
    configure_logging(args.log_level or config.log_level, config.log_format)

    try:
        return asyncio.run(_COMMANDS[args.command](args, config))
    finally:
        if args.metrics_file:
            write_metrics(args.metrics_file)


if __name__ == "__main__":
    sys.exit(main())
