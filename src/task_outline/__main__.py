"""
Command-line entry point.

This module provides the command-line interface for parsing markdown task
files and toggling task status with parent completion propagation.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import PropagationSettings, load_settings
from .converter import TaskListConverter, toggle_task
from .models import MetadataFormat

__version__ = "1.0.0"

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="task-outline",
        description="Parse markdown task lists and propagate task completion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Parse all tasks of a markdown file to JSON:
  python -m task_outline parse tasks.md
  python -m task_outline parse tasks.md tasks.json --format dataview

  # Complete the task on line 3 and update its parent:
  python -m task_outline toggle tasks.md 3
  python -m task_outline toggle tasks.md 3 --status " " --in-place
  python -m task_outline toggle tasks.md 3 --settings settings.json

Metadata formats:
  tasks     Inline emoji metadata: 📅 2024-05-01 🔁 every week ⏫ #project/work @home
  dataview  Bracketed fields: [due:: 2024-05-01] [priority:: high] [context:: home]
  Either format is always understood; the choice only sets which one is tried first.
        """,
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log propagation decisions"
    )
    parser.add_argument(
        "--version", action="version", version=f"task-outline {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_cmd = subparsers.add_parser("parse", help="Convert a markdown file to JSON tasks")
    parse_cmd.add_argument("input_file", type=str, help="Path to the markdown file")
    parse_cmd.add_argument(
        "output_file",
        type=str,
        nargs="?",
        help="Path to the output JSON file (prints to stdout if omitted)",
    )
    parse_cmd.add_argument(
        "--format",
        choices=[member.value for member in MetadataFormat],
        default=MetadataFormat.TASKS.value,
        help="Preferred metadata format (default: tasks)",
    )
    parse_cmd.add_argument(
        "--indent", type=int, default=2, help="JSON indentation level (default: 2)"
    )

    toggle_cmd = subparsers.add_parser(
        "toggle", help="Set a task's status and update its parent task"
    )
    toggle_cmd.add_argument("input_file", type=str, help="Path to the markdown file")
    toggle_cmd.add_argument("line", type=int, help="1-based line number of the task")
    toggle_cmd.add_argument(
        "--status", default="x", help="New status character (default: x)"
    )
    toggle_cmd.add_argument(
        "--settings",
        type=str,
        metavar="SETTINGS_FILE",
        help="JSON file with propagation settings",
    )
    toggle_cmd.add_argument(
        "--in-place",
        action="store_true",
        help="Write the result back to the input file instead of stdout",
    )

    return parser


def _run_parse(args: argparse.Namespace) -> None:
    converter = TaskListConverter(args.input_file, MetadataFormat(args.format))

    if args.output_file:
        converter.convert_to_file(args.output_file, args.indent)
        return

    data = converter.convert()
    print(json.dumps(data, indent=args.indent, ensure_ascii=False))

    # Summary goes to stderr so it doesn't interfere with JSON output
    summary = data["summary"]
    print("\nConversion Summary:", file=sys.stderr)
    print(f"  Tasks: {summary['tasks']}", file=sys.stderr)
    print(f"  Completed tasks: {summary['completed']}", file=sys.stderr)


def _run_toggle(args: argparse.Namespace) -> None:
    input_path = Path(args.input_file)
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    settings = load_settings(Path(args.settings)) if args.settings else PropagationSettings()
    text = input_path.read_text(encoding="utf-8")

    new_text, transaction = toggle_task(text, args.line, args.status, settings)
    if len(transaction.changes) > 1:
        logger.info(f"Parent task updated ({transaction.annotations[-1].value})")

    if args.in_place:
        input_path.write_text(new_text, encoding="utf-8")
        print(f"Updated {input_path}")
    else:
        sys.stdout.write(new_text)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point for the CLI."""
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    try:
        if args.command == "parse":
            _run_parse(args)
        else:
            _run_toggle(args)

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
