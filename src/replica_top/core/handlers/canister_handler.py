# src/replica_top/core/handlers/canister_handler.py
import argparse
from typing import List, Optional

from dashboard_parser.model import CanisterRecord, DashboardParseError
from replica_top.core.managers.config_manager import config_manager
from replica_top.core.services.dashboard_fetch_service import DashboardFetchError
from replica_top.core.utils.snapshot_source import SourceError, add_source_arguments, load_snapshot

canister_help_text = """
  canister <canister_id> [--url <url> | --port <port> | --file <path>] [--webserver-port <port>]
                      Shows the full state the dashboard reports for one canister,
                      including its local HTTP endpoint if it serves http_request.
""".strip()

# (label, attribute) pairs in display order
DETAIL_FIELDS = [
    ("Status", "status"),
    ("Memory Allocation", "memory_allocation"),
    ("Last Execution Round", "last_execution_round"),
    ("Controllers", "controllers"),
    ("Certified Data Length", "certified_data_length"),
    ("Canister History Memory Usage", "canister_history_memory_usage"),
    ("Execution State", "execution_state"),
    ("Last Full Execution Round", "last_full_execution_round"),
    ("Compute Allocation", "compute_allocation"),
    ("Freeze Threshold", "freeze_threshold"),
    ("Memory Usage", "memory_usage"),
    ("Accumulated Priority", "accumulated_priority"),
    ("Cycles Balance", "cycles_balance"),
]


def format_canister(canister: CanisterRecord, webserver_port) -> str:
    lines = [f"Canister ID: {canister.canister_id}"]
    endpoint = canister.http_endpoint(webserver_port)
    if endpoint:
        lines.append(f"  HTTP Endpoint: {endpoint}")
    for label, attr in DETAIL_FIELDS:
        lines.append(f"  {label}: {getattr(canister, attr)}")

    exports = canister.exports
    lines.append(f"  Query functions: {', '.join(exports.query_functions) or '-'}")
    lines.append(f"  Update functions: {', '.join(exports.update_functions) or '-'}")
    lines.append(f"  System functions: {', '.join(exports.system_functions) or '-'}")
    lines.append(f"  Exports heartbeat: {exports.exports_heartbeat}")
    lines.append(f"  Exports global timer: {exports.exports_global_timer}")
    return "\n".join(lines)


def handle_canister(args: List[str], _stdin: Optional[str] = None) -> int:
    parser = argparse.ArgumentParser(prog="canister", description="Show one canister from the dashboard.")
    parser.add_argument("canister_id", help="The canister principal, e.g. bnz7o-iuaaa-aaaaa-qaaaa-cai.")
    add_source_arguments(parser)
    parser.add_argument("--webserver-port", type=int, help="Port of the local HTTP gateway.")
    try:
        parsed_args = parser.parse_args(args)
    except SystemExit:
        return 1

    try:
        snapshot = load_snapshot(parsed_args)
    except (DashboardFetchError, DashboardParseError, SourceError) as e:
        print(f"❌ Error: {e}")
        return 1

    canister = snapshot.find_canister(parsed_args.canister_id)
    if canister is None:
        print(f"❌ Canister '{parsed_args.canister_id}' is not on the dashboard.")
        return 1

    webserver_port = parsed_args.webserver_port or config_manager.get_replica_settings().webserver_port
    print(format_canister(canister, webserver_port))
    return 0
