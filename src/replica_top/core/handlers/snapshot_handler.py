# src/replica_top/core/handlers/snapshot_handler.py
import argparse
import logging
from typing import List, Optional

from dashboard_parser.model import DashboardParseError, ReplicaSnapshot
from replica_top.core.services.dashboard_fetch_service import DashboardFetchError
from replica_top.core.utils.snapshot_source import SourceError, add_source_arguments, load_snapshot

logger = logging.getLogger(__name__)

snapshot_help_text = """
  snapshot [--url <url> | --port <port> | --file <path>] [--json]
                      Fetches the replica dashboard once and prints the subnet
                      settings and the list of canisters.
""".strip()


def format_snapshot(snapshot: ReplicaSnapshot) -> str:
    lines = [
        f"Replica version:          {snapshot.replica_version or '-'}",
        f"Subnet type:              {snapshot.subnet_type or '-'}",
        f"Total compute allocation: {snapshot.total_compute_allocation or '-'}",
    ]
    if not snapshot.canisters:
        lines.append("No canisters found, try deploying some first.")
        return "\n".join(lines)

    lines.append(f"Canisters ({len(snapshot.canisters)}):")
    width = max(len(c.canister_id) for c in snapshot.canisters)
    for c in snapshot.canisters:
        lines.append(
            f"  {c.canister_id:<{width}}  {c.status or '-':<8}  "
            f"{c.memory_allocation or '-':<12}  round {c.last_execution_round or '-'}"
        )
    return "\n".join(lines)


def handle_snapshot(args: List[str], _stdin: Optional[str] = None) -> int:
    """Prints one parsed dashboard snapshot. Returns 0 on success, 1 on errors."""
    parser = argparse.ArgumentParser(prog="snapshot", description="Show a replica dashboard snapshot.")
    add_source_arguments(parser)
    parser.add_argument("--json", action="store_true", help="Print the snapshot as JSON.")
    try:
        parsed_args = parser.parse_args(args)
    except SystemExit:
        return 1

    try:
        snapshot = load_snapshot(parsed_args)
    except (DashboardFetchError, DashboardParseError, SourceError) as e:
        print(f"❌ Error: {e}")
        return 1

    if parsed_args.json:
        print(snapshot.model_dump_json(indent=2))
    else:
        print(format_snapshot(snapshot))
    return 0
