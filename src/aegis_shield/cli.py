"""CLI interface for aegis-shield.

Usage:
    # Scrub text (stdin) and save the mapping for a later restore
    echo 'Mail jane@example.com' | aegis-shield scrub
    # -> Mail [EMAIL]

    # Restore placeholders in a reply (stdin)
    echo 'Sent to [EMAIL]' | aegis-shield restore
    # -> Sent to jane@example.com

    # Inspect without saving anything
    echo 'Call 555-123-4567' | aegis-shield detect
    echo 'Call 555-123-4567' | aegis-shield summary

The mapping is persisted in SQLite so it survives across calls.
"""

from __future__ import annotations
import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path

from .config import create_redactor, load_config, load_from_yaml
from .errors import AegisShieldError, NothingToRestoreError
from .redactor import redact
from .sanitizer import sanitize
from .session import ScrubSession
from .store_sqlite import SqliteStore

logger = logging.getLogger(__name__)

DEFAULT_DB = os.environ.get(
    "AEGIS_SHIELD_DB",
    str(Path.home() / ".aegis-shield" / "store.db"),
)


def _store_location(args: argparse.Namespace, cfg: dict) -> tuple[str, str]:
    """Flags win; otherwise a sqlite store section from --config; else defaults."""
    db, namespace = DEFAULT_DB, "default"
    if args.config and cfg["store_backend"] == "sqlite":
        db = str(Path(cfg["store_path"]).expanduser())
        namespace = cfg["store_namespace"]
    return args.db or db, args.namespace or namespace


def _build_session(args: argparse.Namespace) -> ScrubSession:
    cfg = load_from_yaml(args.config) if args.config else load_config({})
    if args.semantic:
        cfg["semantic_enabled"] = True
    if args.skip_types:
        cfg["skip_types"] |= set(args.skip_types.split(","))
    if args.allow_list:
        cfg["allow_list"] |= set(args.allow_list.split(","))
    # The CLI always persists to SQLite so restore works across calls
    db, namespace = _store_location(args, cfg)
    args.db, args.namespace = db, namespace
    store = SqliteStore(namespace, db_path=db)
    return ScrubSession(redactor=create_redactor(cfg), store=store)


def cmd_detect(args: argparse.Namespace, session: ScrubSession) -> int:
    """Print structural matches as JSON."""
    matches = session.redactor.detect(sys.stdin.read())
    json.dump([asdict(m) for m in matches], sys.stdout, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


def cmd_scrub(args: argparse.Namespace, session: ScrubSession) -> int:
    """Scrub stdin and save the mapping."""
    text = sys.stdin.read()
    if session.redactor.semantic is not None:
        result = asyncio.run(session.scrub_result_async(text))
        if result.semantic_error is not None:
            sys.stderr.write(f"warning: semantic detection unavailable: {result.semantic_error}\n")
    else:
        result = session.scrub_result(text)
    sys.stdout.write(result.scrubbed)
    return 0


def cmd_scrub_text(args: argparse.Namespace, session: ScrubSession) -> int:
    """Irreversible scrub; nothing is saved."""
    text = sanitize(sys.stdin.read())
    sys.stdout.write(redact(text, session.redactor.detect(text)))
    return 0


def cmd_restore(args: argparse.Namespace, session: ScrubSession) -> int:
    """Restore placeholders on stdin using the saved mapping."""
    try:
        sys.stdout.write(session.restore(sys.stdin.read()))
    except NothingToRestoreError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1
    return 0


def cmd_summary(args: argparse.Namespace, session: ScrubSession) -> int:
    """Print type → count for stdin as JSON."""
    json.dump(session.summary(sys.stdin.read()), sys.stdout)
    sys.stdout.write("\n")
    return 0


def cmd_dump(args: argparse.Namespace, session: ScrubSession) -> int:
    """Print the saved mapping as JSON."""
    json.dump(session.mapping, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


def cmd_clear(args: argparse.Namespace, session: ScrubSession) -> int:
    """Forget the saved mapping."""
    session.clear()
    sys.stderr.write(f"Cleared mapping for {args.namespace}\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aegis-shield",
        description="Reversible PII redaction for text sent to third-party services",
    )
    parser.add_argument("--db", default=None,
                        help=f"SQLite store path (overrides config store.path; default {DEFAULT_DB})")
    parser.add_argument("--namespace", default=None,
                        help="Store namespace (overrides config store.namespace; default 'default')")
    parser.add_argument("--config", default=None,
                        help="YAML config file (enabled, filters, semantic and sqlite store settings)")
    parser.add_argument("--semantic", action="store_true", help="Enable Presidio NER layer")
    parser.add_argument("--skip-types", default="", help="Comma-separated types to skip")
    parser.add_argument("--allow-list", default="", help="Comma-separated values to never redact")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("detect", help="Print matches (JSON)")
    sub.add_parser("scrub", help="Scrub stdin and save the mapping")
    sub.add_parser("scrub-text", help="Scrub stdin without saving a mapping")
    sub.add_parser("restore", help="Restore placeholders on stdin")
    sub.add_parser("summary", help="Print type counts (JSON)")
    sub.add_parser("dump", help="Print the saved mapping")
    sub.add_parser("clear", help="Forget the saved mapping")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    cmds = {
        "detect": cmd_detect,
        "scrub": cmd_scrub,
        "scrub-text": cmd_scrub_text,
        "restore": cmd_restore,
        "summary": cmd_summary,
        "dump": cmd_dump,
        "clear": cmd_clear,
    }
    try:
        session = _build_session(args)
    except AegisShieldError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 2
    logger.debug("Running %s (namespace=%s)", args.command, args.namespace)
    try:
        return cmds[args.command](args, session)
    finally:
        session.store.close()


if __name__ == "__main__":
    sys.exit(main())
