# src/replica_top/core/utils/snapshot_source.py
import argparse
import logging
from pathlib import Path
from typing import Optional

from dashboard_parser.model import ReplicaSnapshot
from dashboard_parser.services.dashboard_parse_service import parse_dashboard
from replica_top.core.managers.config_manager import config_manager
from replica_top.core.services.dashboard_fetch_service import DashboardFetchService
from replica_top.model import ReplicaEndpoints

logger = logging.getLogger(__name__)


class SourceError(ValueError):
    """Raised when the command line does not point at a usable dashboard."""


def add_source_arguments(parser: argparse.ArgumentParser, allow_file: bool = True) -> None:
    """Adds the mutually exclusive --url / --port / --file options to a command parser."""
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--url", help="Full dashboard URL, e.g. http://localhost:4943/_/dashboard.")
    group.add_argument("--port", type=int, help="Port of the local replica (defaults to replica.port).")
    if allow_file:
        group.add_argument("--file", help="Read a saved dashboard HTML file instead of fetching.")


def endpoints_from_config(port: Optional[int] = None) -> ReplicaEndpoints:
    return config_manager.get_replica_settings().endpoints(port)


def resolve_dashboard_url(parsed_args: argparse.Namespace) -> str:
    """Picks the explicit --url, or builds the dashboard URL for the configured network."""
    if getattr(parsed_args, "url", None):
        return parsed_args.url
    endpoints = endpoints_from_config(getattr(parsed_args, "port", None))
    if not endpoints.fetch_dashboard:
        raise SourceError(f"The '{endpoints.network}' network has no replica dashboard.")
    return endpoints.dashboard_url


def load_snapshot(
        parsed_args: argparse.Namespace,
        fetch_service: Optional[DashboardFetchService] = None,
) -> ReplicaSnapshot:
    """
    Produces a snapshot from --file, or fetches it from the resolved URL.
    Fetch and parse errors propagate to the calling handler.
    """
    file_path = getattr(parsed_args, "file", None)
    if file_path:
        path = Path(file_path).expanduser()
        if not path.is_file():
            raise SourceError(f"Dashboard file not found: {path}")
        logger.debug("Reading dashboard from %s", path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise SourceError(f"Could not read dashboard file {path}: {e}") from e
        return parse_dashboard(content)

    url = resolve_dashboard_url(parsed_args)
    if fetch_service is not None:
        return fetch_service.fetch_snapshot(url)
    with DashboardFetchService() as service:
        return service.fetch_snapshot(url)
