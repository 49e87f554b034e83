"""Administration CLI for the shelter subsystem."""

from __future__ import annotations

import argparse
import json
import logging
import time
from pathlib import Path

from shelters import env
from shelters.errors import ConfigError
from shelters.registries.json_store import JSONRecordPersistence
from shelters.registries.sqlite_store import SQLiteConnectionManager, SQLiteRecordPersistence
from shelters.registries.storage import get_persistence
from shelters.services.config import config_to_document, load_shelter_config
from shelters.state import state_path


def _setup_logging() -> None:
    if not env.logging_enabled():
        # Silence root logger and clear any default handlers when logging is disabled.
        logging.disable(logging.CRITICAL)
        logging.getLogger().handlers.clear()
        return

    level = logging.DEBUG if env.debug_enabled() else logging.INFO
    log_dir = state_path("logs")
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "shelters.log"

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.FileHandler(log_file, encoding="utf-8")],
    )


def _persistence(args: argparse.Namespace):
    if args.records_file is not None:
        return JSONRecordPersistence(args.records_file)
    if args.database is not None:
        return SQLiteRecordPersistence(SQLiteConnectionManager(args.database))
    return get_persistence()


def _command_config(args: argparse.Namespace) -> int:
    """Load (and migrate) the configuration, then print it."""

    path = Path(args.config) if args.config else env.get_config_path()
    try:
        config = load_shelter_config(path)
    except ConfigError as exc:
        print(f"Config error: {exc}")
        return 1
    print(json.dumps(config_to_document(config), indent=2, ensure_ascii=False))
    return 0


def _command_records(args: argparse.Namespace) -> int:
    """List persisted shelters with their remaining lifetime."""

    records = _persistence(args).load()
    now = time.time()
    if not records:
        print("No shelter records")
        return 0
    for structure_id in sorted(records):
        payload = records[structure_id]
        remaining = float(payload.get("Removal Timer", 0.0)) - now
        subs = payload.get("Interior Entities") or []
        state = "overdue" if remaining <= 0 else f"{remaining:.0f}s left"
        print(f"{structure_id}: sub_objects={len(subs)} {state}")
    return 0


def _command_purge(args: argparse.Namespace) -> int:
    """Forget every persisted record without touching the world."""

    persistence = _persistence(args)
    count = len(persistence.load())
    persistence.save({})
    print(f"Purged {count} shelter records")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="shelters", description=__doc__)
    parser.add_argument(
        "--database",
        "-d",
        metavar="PATH",
        help="Use the SQLite record database at PATH.",
    )
    parser.add_argument(
        "--records-file",
        metavar="PATH",
        help="Use the JSON record file at PATH.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    config_parser = subparsers.add_parser("config", help="Load, migrate and print the configuration.")
    config_parser.add_argument("--config", metavar="PATH", help="Configuration file (defaults to state config).")
    config_parser.set_defaults(func=_command_config)

    records_parser = subparsers.add_parser("records", help="List persisted shelter records.")
    records_parser.set_defaults(func=_command_records)

    purge_parser = subparsers.add_parser("purge", help="Drop all shelter records (after a map wipe).")
    purge_parser.set_defaults(func=_command_purge)

    return parser


def main(argv: list[str] | None = None) -> int:
    _setup_logging()
    parser = _build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
