# src/replica_top/core/handlers/export_handler.py
import argparse
import logging
from typing import List, Optional

import pandas as pd

from dashboard_parser.model import DashboardParseError
from replica_top.core.services.dashboard_fetch_service import DashboardFetchError
from replica_top.core.services.dataframe_service import canisters_to_dataframe
from replica_top.core.utils.path_utils import PathUtils
from replica_top.core.utils.snapshot_source import SourceError, add_source_arguments, load_snapshot

logger = logging.getLogger(__name__)

export_help_text = """
  export [--url <url> | --port <port> | --file <path>] -o <path>
                      Writes the canister table to CSV or JSON. The format is
                      taken from the file extension (.csv or .json).
""".strip()

SUPPORTED_SUFFIXES = (".csv", ".json")


def write_dataframe(df: pd.DataFrame, output_file) -> None:
    if output_file.suffix.lower() == ".csv":
        df.to_csv(output_file, index=False)
    else:
        df.to_json(output_file, orient="records", indent=2)


def handle_export(args: List[str], _stdin: Optional[str] = None) -> int:
    """
    Exports the canisters of one dashboard snapshot to a file.

    Returns:
        0 for success, 1 for errors.
    """
    parser = argparse.ArgumentParser(prog="export", description="Export the canister table.")
    add_source_arguments(parser)
    parser.add_argument("--output", "-o", required=True, help="Output file (.csv or .json).")
    try:
        parsed_args = parser.parse_args(args)
    except SystemExit:
        return 1

    output_file = PathUtils.resolve_output_path(parsed_args.output)
    if output_file.suffix.lower() not in SUPPORTED_SUFFIXES:
        print(f"❌ Unsupported export format '{output_file.suffix}'. Use .csv or .json.")
        return 1

    try:
        snapshot = load_snapshot(parsed_args)
    except (DashboardFetchError, DashboardParseError, SourceError) as e:
        print(f"❌ Error: {e}")
        return 1

    df = canisters_to_dataframe(snapshot)
    try:
        PathUtils.ensure_parent_dir(output_file)
        write_dataframe(df, output_file)
    except OSError as e:
        logger.error("Failed to write export to %s: %s", output_file, e, exc_info=True)
        print(f"❌ Could not write {output_file}: {e}")
        return 1

    print(f"✅ Exported {len(df)} canisters to {output_file}")
    return 0
