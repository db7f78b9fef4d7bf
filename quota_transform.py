#!/usr/bin/env python3
"""Command-line quota request normalizer.

Reads a ticketing export (tab/comma/semicolon text, Excel, HTML or Word table),
normalizes it into the canonical quota request schema and prints a per-category
summary. Optionally writes the normalized records to CSV or XLSX.

Examples
--------
```
python quota_transform.py transform export.xlsx --sheet Requests --output normalized.xlsx
python quota_transform.py transform pasted.tsv --rdquota --output normalized.csv -v
```
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from quota_browser.quota_data import (
    RDQUOTA_HEADERS,
    frame_to_csv_bytes,
    load_text_from_upload,
    records_to_excel_bytes,
    records_to_frame,
    sorted_groups,
    with_rdquota,
)
from quota_common import FINAL_HEADERS, ConfigError, TransformError, load_options, transform

LOGGER = logging.getLogger(__name__)


def write_records(records, headers: Sequence[str], output_path: Path) -> None:
    """Write records as CSV or XLSX depending on the output suffix."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    if output_path.suffix.lower() == ".xlsx":
        output_path.write_bytes(records_to_excel_bytes(records, headers))
    else:
        output_path.write_bytes(frame_to_csv_bytes(records_to_frame(records, headers)))
    LOGGER.info("Wrote %d records to %s", len(records), output_path)


def cmd_transform(args: argparse.Namespace) -> int:
    input_path: Path = args.input
    if not input_path.exists():
        LOGGER.error("Input file not found: %s", input_path)
        return 1

    try:
        options = load_options(args.config)
        raw_text = load_text_from_upload(input_path.name, input_path.read_bytes(), sheet_name=args.sheet)
        result = transform(raw_text, options)
    except (TransformError, ConfigError, ValueError) as exc:
        LOGGER.error("%s", exc)
        return 1

    report = result.report
    LOGGER.info(
        "Header at line %d (%s strategy), %s input, separator %r; dropped %d empty rows",
        report.header_index + 1,
        report.header_strategy_used,
        report.input_mode,
        report.separator,
        report.dropped_row_count,
    )
    for label, items in sorted_groups(result.groups):
        print(f"{label}: {len(items)}")
    print(f"Total: {len(result.records)}")

    if args.output:
        records = result.records
        headers: Sequence[str] = FINAL_HEADERS
        if args.rdquota:
            records = with_rdquota(records)
            headers = RDQUOTA_HEADERS
        write_records(records, headers, args.output)
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Normalize cloud quota request exports and group them by request type.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (repeatable).",
    )
    subparsers = parser.add_subparsers(dest="command")

    run = subparsers.add_parser(
        "transform",
        help="Normalize an export and print a per-category summary.",
    )
    run.add_argument("input", type=Path, help="Export file (.tsv/.csv/.txt/.xlsx/.html/.docx)")
    run.add_argument("--sheet", help="Worksheet name for Excel inputs (default: first sheet)")
    run.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to YAML options (default: quota_config.yaml when present)",
    )
    run.add_argument("--output", type=Path, help="Optional .csv or .xlsx path for normalized records.")
    run.add_argument(
        "--rdquota",
        action="store_true",
        help="Prefix exported rows with an RDQuota column holding the original ticket id.",
    )
    run.set_defaults(func=cmd_transform)

    return parser


def configure_logging(verbosity: int) -> None:
    level = logging.DEBUG if verbosity > 0 else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        parser.print_help()
        return 0

    configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
