#!/usr/bin/env python3
"""Convert an osquery pack (.conf/.json) or a SQL file to FleetDM query YAML.

Input format is picked from the file extension:
- .conf / .json: osquery pack, {"queries": {"name": {"query": ...}}}
- .sql: one query per ";"-terminated statement (sql_query_1, ...)

The output file is overwritten with one "apiVersion: v1 / kind: query"
document per query. It is written to a temporary file first and renamed
into place, so a failed run never leaves a truncated output behind.

Usage:
    python3 convert_queries.py <input_file> <output_file> [--dry-run]
        [--legacy-framing] [--strip-comments]
"""

import argparse
import os
import sys
import tempfile

from conversion_errors import ConversionError, FileReadError, FileWriteError
from query_parsers import detect_format, parse
from query_transform import parse_interval, serialize, transform

OUTPUT_MODE = 0o644


def warn_data_quality(raws):
    """Print a warning for records that will be defaulted or are empty."""
    for raw in raws:
        if not raw.query.strip():
            print(f"WARN: Query {raw.name} has no query text", file=sys.stderr)
        if raw.interval not in (None, "") and parse_interval(raw.interval) is None:
            print(
                f"WARN: Query {raw.name} has invalid interval {raw.interval!r}, using default",
                file=sys.stderr,
            )


def read_input(path):
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise FileReadError(f"failed to read input file {path}") from e


def write_output(path, data):
    """Atomically replace path with data (mode 0644)."""
    out_dir = os.path.dirname(os.path.abspath(path))
    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=out_dir, prefix="." + os.path.basename(path) + ".", suffix=".tmp"
        )
    except OSError as e:
        raise FileWriteError(f"failed to write output file {path}") from e

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp_path, OUTPUT_MODE)
        os.replace(tmp_path, path)
    except OSError as e:
        try:
            os.remove(tmp_path)
        except OSError:
            pass
        raise FileWriteError(f"failed to write output file {path}") from e


def convert_file(input_path, output_path, legacy_framing=False, strip_comments=False,
                 dry_run=False):
    """Run the whole conversion and return the number of queries converted."""
    fmt = detect_format(input_path)
    raws = parse(read_input(input_path), fmt, strip_comments=strip_comments)
    warn_data_quality(raws)

    canonicals = transform(raws)
    data = serialize(canonicals, legacy_framing=legacy_framing)

    if not dry_run:
        write_output(output_path, data)
    return len(canonicals)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Convert an osquery pack or SQL file to FleetDM query YAML."
    )
    parser.add_argument("input_file", help="osquery pack (.conf/.json) or SQL file (.sql)")
    parser.add_argument("output_file", help="YAML file to write (overwritten)")
    parser.add_argument("--dry-run", action="store_true", help="Don't write the output file")
    parser.add_argument(
        "--legacy-framing",
        action="store_true",
        help="Start the output with a doubled '---' and blank-line separators, "
             "as older converters did",
    )
    parser.add_argument(
        "--strip-comments",
        action="store_true",
        help="Remove -- and /* */ comments from SQL input before splitting",
    )
    args = parser.parse_args(argv)

    try:
        count = convert_file(
            args.input_file,
            args.output_file,
            legacy_framing=args.legacy_framing,
            strip_comments=args.strip_comments,
            dry_run=args.dry_run,
        )
    except ConversionError as e:
        print(f"ERROR ({e.kind.value}): {e}", file=sys.stderr)
        sys.exit(1)

    if args.dry_run:
        print(f"Would convert {count} queries to FleetDM format ({args.output_file}).")
    else:
        print(f"Converted {count} queries to FleetDM format. Saved to {args.output_file}.")


if __name__ == "__main__":
    main()
