# src/replica_top/core/handlers/watch_handler.py
import argparse
import logging
from typing import List, Optional

from replica_top.core.managers.snapshot_manager import SnapshotManager
from replica_top.core.utils.snapshot_source import SourceError, add_source_arguments, resolve_dashboard_url

logger = logging.getLogger(__name__)

watch_help_text = """
  watch [--url <url> | --port <port>] [--interval <seconds>] [--iterations <n>]
                      Polls the dashboard and prints one status line per refresh.
                      Runs until interrupted unless --iterations is given.
""".strip()


def format_status_line(manager: SnapshotManager) -> str:
    snapshot = manager.latest()
    error = manager.last_error
    if snapshot is None:
        return f"⏳ Replica not reachable: {error}" if error else "⏳ Loading..."

    stamp = manager.refreshed_at.strftime("%H:%M:%S") if manager.refreshed_at else "--:--:--"
    running = sum(1 for c in snapshot.canisters if c.status == "Running")
    line = (
        f"[{stamp}] replica {snapshot.replica_version or '?'} ({snapshot.subnet_type or '?'}) - "
        f"{len(snapshot.canisters)} canisters, {running} running"
    )
    if error:
        line += f" (stale: {error})"
    return line


def handle_watch(args: List[str], _stdin: Optional[str] = None) -> int:
    parser = argparse.ArgumentParser(prog="watch", description="Poll the replica dashboard.")
    add_source_arguments(parser, allow_file=False)
    parser.add_argument("--interval", type=float, help="Seconds between refreshes (defaults to replica.refresh_interval).")
    parser.add_argument("--iterations", type=int, help="Stop after this many refreshes.")
    try:
        parsed_args = parser.parse_args(args)
    except SystemExit:
        return 1

    if parsed_args.interval is not None and parsed_args.interval < 0:
        print("❌ Error: --interval must be zero or more seconds.")
        return 1

    try:
        url = resolve_dashboard_url(parsed_args)
    except SourceError as e:
        print(f"❌ Error: {e}")
        return 1

    manager = SnapshotManager(url, refresh_interval=parsed_args.interval)
    try:
        manager.run(
            iterations=parsed_args.iterations,
            on_refresh=lambda m: print(format_status_line(m)),
        )
    except KeyboardInterrupt:
        logger.debug("Watch interrupted by user.")
    finally:
        manager.fetch_service.close()
    return 0
