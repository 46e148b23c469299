"""Command-line entry point: quantify a fault tree stored as JSON."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Sequence

from .api import analyze
from .config import EngineSettings
from .logging_utils import configure_logging
from .models import load_tree_json
from .nodes import update_failure_data

logger = logging.getLogger(__name__)


def _parse_edit(value: str) -> tuple[str, float, float | None]:
    """Parse ID=RATE or ID=RATE:TIME."""

    node_id, sep, params = value.partition("=")
    if not sep or not node_id:
        raise argparse.ArgumentTypeError(f"expected ID=RATE[:TIME], got {value!r}")
    rate, _, time = params.partition(":")
    try:
        return node_id, float(rate), float(time) if time else None
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number in {value!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Quantify a fault tree: probabilities, cut sets, importance")
    parser.add_argument("tree", help="Path to a JSON fault tree")
    parser.add_argument("--config", help="Path to TOML configuration file")
    parser.add_argument(
        "--set",
        dest="edits",
        action="append",
        default=[],
        type=_parse_edit,
        metavar="ID=RATE[:TIME]",
        help="Override a basic event's failure rate (and exposure time)",
    )
    parser.add_argument("--indent", type=int, default=2, help="JSON indentation")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = EngineSettings.from_toml(args.config) if args.config else EngineSettings()
    configure_logging(settings.logging)

    try:
        tree = load_tree_json(args.tree)
        for node_id, rate, time in args.edits:
            tree = update_failure_data(tree, node_id, failure_rate=rate, exposure_time=time)
        result = analyze(tree, settings=settings)
    except (OSError, ValueError, KeyError) as exc:
        # FaultTreeError, pydantic ValidationError and bad JSON are all ValueErrors.
        logger.error("analysis_failed", extra={"error": str(exc)})
        return 2

    print(json.dumps(result.as_dict(), indent=args.indent))
    return 0


if __name__ == "__main__":
    sys.exit(main())
