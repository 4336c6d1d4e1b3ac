"""Command-line entry point: validate, resolve or export a JSON edit file."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from src.common.errors import SchemaValidationError, StudioError
from src.edit_session.session import EditSession
from src.export.otio_exporter import OtioExporter

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(prog="studio-edit", description="Edit document resolution engine")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="check an edit file against the schema")
    validate.add_argument("edit_file", type=Path)

    resolve = subparsers.add_parser("resolve", help="print the resolved form of an edit file")
    resolve.add_argument("edit_file", type=Path)
    resolve.add_argument("-o", "--output", dest="output_file", type=Path, help="write JSON here instead of stdout")

    export = subparsers.add_parser("export-otio", help="export the resolved edit as OpenTimelineIO")
    export.add_argument("edit_file", type=Path)
    export.add_argument("-o", "--output", dest="output_file", type=Path, required=True, help="target .otio file")

    return parser.parse_args(argv)


def _read_edit(path: Path) -> Any:
    with path.open(encoding="utf-8") as f:
        return json.load(f)


async def _resolve(edit: dict[str, Any]) -> dict[str, Any]:
    session = EditSession()
    await session.load(edit)
    return session.get_resolved_edit()


def run(args: argparse.Namespace) -> int:
    edit = _read_edit(args.edit_file)

    if args.command == "validate":
        result = EditSession.validate_edit(edit)
        if result.valid:
            print(f"{args.edit_file}: valid")
            return 0
        for issue in result.errors:
            print(f"{args.edit_file}: {issue.path or '<root>'}: {issue.message}", file=sys.stderr)
        return 1

    try:
        resolved = asyncio.run(_resolve(edit))
    except SchemaValidationError as e:
        for issue in e.errors:
            print(f"{args.edit_file}: {issue.path or '<root>'}: {issue.message}", file=sys.stderr)
        return 1

    if args.command == "resolve":
        text = json.dumps(resolved, indent=2)
        if args.output_file:
            args.output_file.write_text(text + "\n", encoding="utf-8")
        else:
            print(text)
        return 0

    OtioExporter().export(resolved, args.output_file)
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        return run(args)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("[cli] Cannot process %s: %s", args.edit_file, e)
        return 2
    except StudioError as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
