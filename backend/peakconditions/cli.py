"""Command line entry points for manual refreshes and classifier diagnostics."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
import uuid
from pathlib import Path
from typing import Sequence

from peakconditions.config.logging_config import setup_logging
from peakconditions.db.session import AsyncSessionLocal
from peakconditions.db.snapshots import SnapshotStore
from peakconditions.jobs.refresh import run_refresh, run_refresh_kind
from peakconditions.schemas.status import SOURCE_KINDS
from peakconditions.scoring.classifier import classify

logger = logging.getLogger(__name__)


def _store() -> SnapshotStore:
    return SnapshotStore(AsyncSessionLocal)


def _cmd_refresh(args: argparse.Namespace) -> int:
    conditions = run_refresh(_store(), args.point_id, force=args.force)
    if conditions is None:
        logger.error("Point %s not found", args.point_id)
        return 1
    print(conditions.model_dump_json(indent=2))
    return 0


def _cmd_refresh_kind(args: argparse.Namespace) -> int:
    result = run_refresh_kind(_store(), args.kind, force=args.force)
    print(result.model_dump_json(indent=2))
    return 0 if result.failed == 0 else 1


def _cmd_classify(args: argparse.Namespace) -> int:
    raw_text = Path(args.file).read_text(encoding="utf-8")
    classified = classify(raw_text, max_length=args.max_length, dynamic_map=args.dynamic_map)
    print(json.dumps(dataclasses.asdict(classified), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="peakconditions")
    subparsers = parser.add_subparsers(dest="command", required=True)

    refresh = subparsers.add_parser("refresh", help="Refresh the sources of one point")
    refresh.add_argument("point_id", type=uuid.UUID)
    refresh.add_argument("--force", action="store_true", help="Refresh fresh sources too")
    refresh.set_defaults(handler=_cmd_refresh)

    refresh_kind = subparsers.add_parser("refresh-kind", help="Refresh one source kind for all points")
    refresh_kind.add_argument("kind", choices=SOURCE_KINDS)
    refresh_kind.add_argument("--force", action="store_true")
    refresh_kind.set_defaults(handler=_cmd_refresh_kind)

    classify_parser = subparsers.add_parser("classify", help="Classify a saved page")
    classify_parser.add_argument("file")
    classify_parser.add_argument("--max-length", type=int, default=None)
    classify_parser.add_argument("--dynamic-map", action="store_true")
    classify_parser.set_defaults(handler=_cmd_classify)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
