# =============================================================================
# dropnote/cli/run.py: scan / watch commands
# =============================================================================
#
# Runs the indexer from the command line and prints every decoded note,
# announcement and indexing error to stdout.
#
#   python -m dropnote.cli scan  --network cosmoshub --address cosmos1...
#   python -m dropnote.cli scan  --network osmosis --from 100 --to 200 --json
#   python -m dropnote.cli watch --network cosmoshub --address cosmos1... --address cosmos1...
#
# Logs go to stderr so stdout carries only indexer output.  With --json each
# event is printed as one JSON object per line.
# =============================================================================

"""Command line entry point for scanning and watching dropnotes."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from dropnote.config.settings import Settings
from dropnote.models.dispatch import AnnounceEvent, NoteEvent
from dropnote.utils.errors import DropnoteError, IndexingError
from dropnote.utils.logging import configure_logging, get_logger


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def format_note(event: NoteEvent) -> str:
    note = event.note
    return (
        f"[{note.chain}] {note.timestamp.isoformat()} note {note.txhash}#{note.index} "
        f"{' <-> '.join(event.members)}: {note.message}"
    )


def format_announcement(event: AnnounceEvent) -> str:
    ann = event.announcement
    return (
        f"[{ann.chain}] {ann.timestamp.isoformat()} announce {ann.txhash}#{ann.index} "
        f"from {ann.sender}: {ann.message}"
    )


def format_error(error: IndexingError) -> str:
    where = error.txhash or "-"
    if error.event_index is not None:
        where = f"{where}#{error.event_index}"
    return f"[{error.network}] error ({error.kind.value}) {where}: {error.message}"


def error_as_dict(error: IndexingError) -> dict[str, Any]:
    return {
        "type": "error",
        "kind": error.kind.value,
        "network": error.network,
        "txhash": error.txhash,
        "event_index": error.event_index,
        "message": error.message,
        "encryption_unsupported": error.is_encryption_unsupported,
    }


def _attach_printers(indexer: Any, as_json: bool) -> None:
    def _emit(line: str) -> None:
        print(line, flush=True)

    if as_json:
        indexer.on_note(lambda e: _emit(json.dumps({"type": "note", **e.model_dump(mode="json")})))
        indexer.on_announce(
            lambda e: _emit(json.dumps({"type": "announce", **e.model_dump(mode="json")}))
        )
        indexer.on_error(lambda e: _emit(json.dumps(error_as_dict(e))))
    else:
        indexer.on_note(lambda e: _emit(format_note(e)))
        indexer.on_announce(lambda e: _emit(format_announcement(e)))
        indexer.on_error(lambda e: _emit(format_error(e)))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Any] = {}
    if args.network:
        overrides["network"] = args.network
    if args.rest_url:
        overrides["rest_url"] = args.rest_url
    if getattr(args, "checkpoint_backend", None):
        overrides["checkpoint_backend"] = args.checkpoint_backend
    return Settings(**overrides)


async def _run_scan(args: argparse.Namespace) -> int:
    from dropnote.main import build_indexer

    components = build_indexer(_settings_from_args(args))
    indexer = components["indexer"]
    network = components["network"]
    _attach_printers(indexer, args.json)

    addresses = args.address or components["settings"].get_watch_addresses() or [None]
    try:
        for address in addresses:
            await indexer.scan(network, address, args.from_height, args.to_height)
    finally:
        await components["client"].aclose()
        await components["store"].close()
    return 0


async def _run_watch(args: argparse.Namespace) -> int:
    from dropnote.main import build_indexer

    components = build_indexer(_settings_from_args(args))
    indexer = components["indexer"]
    network = components["network"]
    logger = get_logger(__name__)
    _attach_printers(indexer, args.json)

    addresses = args.address or components["settings"].get_watch_addresses() or None
    unsubscribe = None
    try:
        unsubscribe = await indexer.watch(network, addresses)
        logger.info("watching", network=network.name)
        await asyncio.Event().wait()
    finally:
        if unsubscribe is not None:
            unsubscribe()
        await components["client"].aclose()
        await components["store"].close()
        logger.info("watch_stopped", network=network.name)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dropnote",
        description="Index dropnote messages embedded in ledger transactions.",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    def _common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--network", default=None, help="Network name from config.yaml")
        p.add_argument("--rest-url", default=None, help="Override the network's REST URL")
        p.add_argument(
            "--address",
            action="append",
            default=None,
            help="Recipient address to index (repeatable)",
        )
        p.add_argument("--json", action="store_true", help="Print events as JSON lines")

    scan = sub.add_parser("scan", help="Scan a block range once and exit")
    _common(scan)
    scan.add_argument("--from", dest="from_height", type=int, default=None)
    scan.add_argument("--to", dest="to_height", type=int, default=None)

    watch = sub.add_parser("watch", help="Catch up from the checkpoint and follow new blocks")
    _common(watch)
    watch.add_argument(
        "--checkpoint-backend",
        choices=["memory", "json", "sqlite"],
        default=None,
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(
        log_level=args.log_level or Settings().log_level,
        stream=sys.stderr,
    )
    runner = _run_scan if args.command == "scan" else _run_watch
    try:
        return asyncio.run(runner(args))
    except KeyboardInterrupt:
        return 130
    except DropnoteError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
