"""CLI entry point for the structural AST diff engine."""
import argparse
import json
import os
import sys
import traceback
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from ast_diff.models import ActionKind, DiffConfig, FailedPair, ProjectDiff
from ast_diff.orchestrator.exceptions import OrchestratorError

load_dotenv()

# Exit codes
EXIT_SUCCESS = 0
EXIT_INVALID_INPUT = 1
EXIT_PAIRS_FAILED = 2
EXIT_UNEXPECTED = 5
EXIT_KEYBOARD_INTERRUPT = 130

ENV_PREFIX = "AST_DIFF_"

# Config field -> environment variable suffix
_ENV_FIELDS = {
    "max_workers": "WORKERS",
    "min_height": "MIN_HEIGHT",
    "top_down_threshold": "TOP_DOWN_THRESHOLD",
    "bottom_up_threshold": "BOTTOM_UP_THRESHOLD",
    "size_ratio_cap": "SIZE_RATIO_CAP",
}


def _ratio_cap(value: str) -> Optional[float]:
    """Parse a size ratio cap; "none" disables the cap."""
    if value.strip().lower() in ("none", "off", ""):
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid size ratio cap: {value!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ast-diff",
        description="Structural AST diff between two versions of a file or source tree",
    )
    parser.add_argument("before", type=str, help="File or directory before the change")
    parser.add_argument("after", type=str, help="File or directory after the change")
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help=f"Worker threads for file pairs (env: {ENV_PREFIX}WORKERS, default: 4)",
    )
    parser.add_argument(
        "--min-height",
        type=int,
        default=None,
        help="Smallest subtree height anchored by top-down matching (default: 1)",
    )
    parser.add_argument(
        "--top-down-threshold",
        type=float,
        default=None,
        help="Minimum isomorphic similarity for top-down matches (default: 0.8)",
    )
    parser.add_argument(
        "--bottom-up-threshold",
        type=float,
        default=None,
        help="Minimum Dice score for bottom-up matches (default: 0.5)",
    )
    parser.add_argument(
        "--size-ratio-cap",
        type=_ratio_cap,
        default=argparse.SUPPRESS,
        help='Largest subtree size ratio for bottom-up candidates, or "none" (default: 10)',
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--dry-run", action="store_true", help="Print config and file pairs and exit"
    )
    parser.add_argument(
        "--output-json", action="store_true", help="Output results as JSON"
    )
    parser.add_argument(
        "--records",
        type=str,
        default="",
        help="Write mapping and action records as JSON lines to this path",
    )
    return parser


def build_config(args: argparse.Namespace) -> DiffConfig:
    """Resolve tunables from flags, then AST_DIFF_* environment variables, then defaults.

    Raises:
        ValidationError: If a resolved value is out of range.
        ValueError: If an environment value cannot be parsed.
    """
    flags = {
        "max_workers": args.workers,
        "min_height": args.min_height,
        "top_down_threshold": args.top_down_threshold,
        "bottom_up_threshold": args.bottom_up_threshold,
    }
    values: dict = {key: value for key, value in flags.items() if value is not None}
    if hasattr(args, "size_ratio_cap"):
        values["size_ratio_cap"] = args.size_ratio_cap

    for field_name, suffix in _ENV_FIELDS.items():
        if field_name in values:
            continue
        raw = os.getenv(ENV_PREFIX + suffix)
        if raw is None or raw == "":
            continue
        if field_name == "size_ratio_cap":
            try:
                values[field_name] = _ratio_cap(raw)
            except argparse.ArgumentTypeError as exc:
                raise ValueError(f"{ENV_PREFIX}{suffix}: {exc}") from exc
        else:
            values[field_name] = raw  # pydantic coerces numeric strings

    return DiffConfig(**values)


def collect_pairs(before: str, after: str) -> tuple[list[tuple[str, str, str]], list[str], list[str]]:
    """Resolve CLI paths into (relative path, before file, after file) triples.

    Returns:
        (pairs, added, removed); added and removed are only non-empty in
        directory mode.

    Raises:
        SystemExit: If the paths are missing or mix a file with a directory.
    """
    from ast_diff.frontend import discover_file_pairs, is_supported_file

    before_path = Path(before)
    after_path = Path(after)
    if before_path.is_file() and after_path.is_file():
        for path in (before_path, after_path):
            if not is_supported_file(str(path)):
                print(f"Error: unsupported file type '{path}'.", file=sys.stderr)
                raise SystemExit(EXIT_INVALID_INPUT)
        return [(after_path.name, str(before_path), str(after_path))], [], []

    if before_path.is_dir() and after_path.is_dir():
        found = discover_file_pairs(before, after)
        pairs = [
            (rel, str(before_path / rel), str(after_path / rel)) for rel in found.modified
        ]
        return pairs, found.added, found.removed

    print(
        f"Error: '{before}' and '{after}' must both be files or both be directories.",
        file=sys.stderr,
    )
    raise SystemExit(EXIT_INVALID_INPUT)


def parse_pairs(pairs: list[tuple[str, str, str]]) -> tuple[list, list[FailedPair]]:
    """Parse both sides of each (relative path, before file, after file) triple.

    A file that cannot be read or parsed is reported as a FailedPair and the
    remaining pairs are still parsed.

    Returns:
        (tree_pairs, failures)
    """
    from ast_diff.frontend import parse_file
    from ast_diff.orchestrator.project import TreePair

    tree_pairs = []
    failures: list[FailedPair] = []
    for rel, before_file, after_file in pairs:
        try:
            tree_pairs.append(TreePair(rel, parse_file(before_file), parse_file(after_file)))
        except (OSError, UnicodeError, ValueError) as exc:
            print(f"Failed to parse {rel}: {exc}", file=sys.stderr)
            failures.append(
                FailedPair(file_path=rel, error_type=type(exc).__name__, message=str(exc))
            )
    return tree_pairs, failures


def format_result_json(result: ProjectDiff, added: list[str], removed: list[str]) -> str:
    """Format a ProjectDiff as a JSON string."""
    payload = result.model_dump(mode="json")
    payload["added"] = added
    payload["removed"] = removed
    return json.dumps(payload, indent=2, sort_keys=True)


def print_result_human(result: ProjectDiff, added: list[str], removed: list[str]) -> None:
    """Print results in human-readable format."""
    print(f"\n{'='*60}")
    print("AST Diff Results")
    print(f"{'='*60}")

    for file_diff in result.file_diffs:
        if not file_diff.actions:
            print(f"\n{file_diff.file_path}: unchanged ({len(file_diff.mappings)} nodes)")
            continue
        counts = ", ".join(
            f"{kind.value}: {file_diff.count(kind)}" for kind in ActionKind
        )
        print(f"\n{file_diff.file_path}: {len(file_diff.mappings)} mappings, {counts}")
        for warning in file_diff.warnings:
            print(f"  warning: {warning}")

    if added:
        print(f"\nAdded files ({len(added)}):")
        for path in added:
            print(f"  + {path}")
    if removed:
        print(f"\nRemoved files ({len(removed)}):")
        for path in removed:
            print(f"  - {path}")

    if result.failed:
        print(f"\nFailed ({len(result.failed)}):")
        for failed in result.failed:
            print(f"  - {failed.file_path}: {failed.error_type}: {failed.message}")

    if result.cancelled:
        print(f"\nCancelled ({len(result.cancelled)}):")
        for path in result.cancelled:
            print(f"  - {path}")

    print(f"\n{'='*60}")


def determine_exit_code(result: ProjectDiff) -> int:
    """Determine the exit code from the project diff."""
    if result.cancelled:
        return EXIT_KEYBOARD_INTERRUPT
    if result.failed:
        return EXIT_PAIRS_FAILED
    return EXIT_SUCCESS


def print_config_human(config: DiffConfig, pairs: list[tuple[str, str, str]]) -> None:
    """Print configuration and the file pairs that would be diffed."""
    print("\nConfiguration:")
    print(f"{'='*40}")
    for key, value in config.model_dump().items():
        print(f"  {key}: {value}")
    print(f"{'='*40}")
    print(f"File pairs ({len(pairs)}):")
    for rel, _, _ in pairs:
        print(f"  {rel}")


def _handle_error(label: str, exc: BaseException, verbose: bool, exit_code: int) -> int:
    """Print error message to stderr and return the exit code."""
    print(f"{label}: {exc}", file=sys.stderr)
    if verbose:
        traceback.print_exc(file=sys.stderr)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code integer.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    from ast_diff.logging import configure_logging

    configure_logging(args.verbose)

    try:
        config = build_config(args)
    except (ValidationError, ValueError) as exc:
        return _handle_error("Invalid configuration", exc, args.verbose, EXIT_INVALID_INPUT)

    try:
        pairs, added, removed = collect_pairs(args.before, args.after)
    except SystemExit as exc:
        return exc.code

    if args.dry_run:
        if args.output_json:
            print(
                json.dumps(
                    {"config": config.model_dump(), "pairs": [rel for rel, _, _ in pairs]},
                    indent=2,
                )
            )
        else:
            print_config_human(config, pairs)
        return EXIT_SUCCESS

    try:
        # Lazy imports keep --help and --dry-run free of tree-sitter grammar loading
        from ast_diff.orchestrator.project import ProjectDiffer
        from ast_diff.utils.serialization import write_records

        tree_pairs, parse_failures = parse_pairs(pairs)
        result = ProjectDiffer(config).diff(tree_pairs)
        if parse_failures:
            result.failed = sorted(
                [*result.failed, *parse_failures], key=lambda failure: failure.file_path
            )

        if args.output_json:
            print(format_result_json(result, added, removed))
        else:
            print_result_human(result, added, removed)

        if args.records:
            try:
                write_records(args.records, result)
            except OSError as exc:
                return _handle_error("Failed to write records", exc, args.verbose, EXIT_UNEXPECTED)
            if args.verbose:
                print(f"Records written: {args.records}")

        return determine_exit_code(result)

    except OrchestratorError as exc:
        return _handle_error("Orchestrator error", exc, args.verbose, EXIT_UNEXPECTED)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_KEYBOARD_INTERRUPT

    except Exception as exc:
        return _handle_error("Unexpected error", exc, args.verbose, EXIT_UNEXPECTED)


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
