"""Command-line interface for wdngraph."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from time import perf_counter
from typing import List, Optional

from wdngraph.config import ModelConfig, load_config
from wdngraph.inp import build_inp, parse_inp
from wdngraph.logging import get_logger, set_global_log_level
from wdngraph.model.assets import AssetType

logger = get_logger(__name__)


def _format_table(
    headers: List[str], rows: List[List[str]], min_width: int = 8
) -> str:
    """Format rows as a simple ASCII table.

    Args:
        headers: Column headers
        rows: Data rows
        min_width: Minimum column width

    Returns:
        Formatted table string
    """
    if not rows:
        return ""
    all_data = [headers] + rows
    widths = [
        max(max(len(str(row[i])) for row in all_data), min_width)
        for i in range(len(headers))
    ]

    def format_row(row: List[str]) -> str:
        return "   " + " | ".join(
            f"{str(item):<{widths[i]}}" for i, item in enumerate(row)
        )

    lines = [format_row(headers)]
    lines.append("   " + "-+-".join("-" * width for width in widths))
    lines.extend(format_row(row) for row in rows)
    return "\n".join(lines)


def _load_model(path: Path, config_path: Optional[Path]):
    config: Optional[ModelConfig] = None
    if config_path is not None:
        config = load_config(config_path)
    text = path.read_text(encoding="utf-8", errors="replace")
    return parse_inp(text, config=config)


def _inspect(path: Path, config_path: Optional[Path], detail: bool = False) -> None:
    """Parse an INP file and print asset counts and import issues.

    Args:
        path: INP file.
        config_path: Optional YAML engine configuration.
        detail: Print every issue instead of a per-kind summary.
    """
    logger.info("Inspecting INP file: %s", path)
    start = perf_counter()
    try:
        model, issues = _load_model(path, config_path)
    except FileNotFoundError:
        print(f"ERROR: INP file not found: {path}")
        sys.exit(1)
    except Exception as e:
        logger.error("Failed to read INP file: %s", e)
        print("ERROR: Failed to read INP file")
        print(f"  {type(e).__name__}: {e}")
        sys.exit(1)

    print("=" * 60)
    print(f"NETWORK: {path.name}")
    print("=" * 60)
    if model.title:
        print(f"Title: {model.title[0]}")
    print(f"Units: {model.units}   Headloss: {model.headloss_formula}")
    rows = [
        [asset_type.value, str(sum(1 for _ in model.assets.by_type(asset_type)))]
        for asset_type in AssetType
    ]
    print(_format_table(["Asset type", "Count"], rows))
    components = model.topology.connected_components()
    print(f"Connected components: {len(components)}")
    print(f"Patterns: {len(model.patterns)}   Curves: {len(model.curves)}")

    if not issues:
        print("No issues found")
    elif detail:
        print(f"Issues ({len(issues)}):")
        for issue in issues:
            print(f"  [{issue.kind.value}] {issue}")
    else:
        summary = sorted(issues.summary().items())
        print(f"Issues ({len(issues)}):")
        print(_format_table(["Kind", "Count"], [[k, str(v)] for k, v in summary]))
    logger.info("Inspection completed in %.3f s", perf_counter() - start)


def _export(
    path: Path,
    output: Path,
    config_path: Optional[Path],
    use_labels: bool = False,
    customer_demands: bool = False,
) -> None:
    """Parse an INP file and write it back in normalised form."""
    logger.info("Exporting %s to %s", path, output)
    try:
        model, issues = _load_model(path, config_path)
    except FileNotFoundError:
        print(f"ERROR: INP file not found: {path}")
        sys.exit(1)
    except Exception as e:
        logger.error("Failed to read INP file: %s", e)
        print("ERROR: Failed to read INP file")
        print(f"  {type(e).__name__}: {e}")
        sys.exit(1)

    for issue in issues:
        logger.warning("%s", issue)
    text = build_inp(model, customer_demands=customer_demands, use_labels=use_labels)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    print(f"Wrote {output} ({len(model.assets)} assets, {len(issues)} issues)")


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``wdngraph`` command.

    Args:
        argv: Optional list of command-line arguments. If ``None``, ``sys.argv``
            is used.
    """
    parser = argparse.ArgumentParser(
        prog="wdngraph",
        description="Inspect and convert water network INP files.",
    )

    # Global options
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--quiet", action="store_true", help="Suppress console output (logs only)"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        title="Available commands",
        metavar="{inspect,export}",
        help="Available commands",
    )

    inspect_parser = subparsers.add_parser(
        "inspect", help="Show asset counts and import issues"
    )
    inspect_parser.add_argument("inp", type=Path, help="Path to INP file")
    inspect_parser.add_argument(
        "--detail",
        "-d",
        action="store_true",
        help="List every issue instead of counts per kind",
    )

    export_parser = subparsers.add_parser(
        "export", help="Re-export an INP file in normalised form"
    )
    export_parser.add_argument("inp", type=Path, help="Path to INP file")
    export_parser.add_argument(
        "--output", "-o", type=Path, required=True, help="Destination INP file"
    )
    export_parser.add_argument(
        "--labels", action="store_true", help="Write labels instead of asset ids"
    )
    export_parser.add_argument(
        "--customer-demands",
        action="store_true",
        help="Write demands computed from allocated customer points",
    )

    for p in (inspect_parser, export_parser):
        p.add_argument(
            "--config",
            "-c",
            type=Path,
            default=None,
            help="YAML file with model engine settings",
        )

    effective_args = sys.argv[1:] if argv is None else argv

    # If no arguments are provided, show help and exit cleanly
    if not effective_args:
        parser.print_help()
        raise SystemExit(0)

    args = parser.parse_args(effective_args)

    if args.verbose:
        set_global_log_level(logging.DEBUG)
        logger.debug("Debug logging enabled")
    elif args.quiet:
        set_global_log_level(logging.WARNING)
    else:
        set_global_log_level(logging.INFO)

    if args.command == "inspect":
        _inspect(args.inp, args.config, args.detail)
    elif args.command == "export":
        _export(
            args.inp,
            args.output,
            args.config,
            use_labels=args.labels,
            customer_demands=args.customer_demands,
        )


if __name__ == "__main__":
    main()
