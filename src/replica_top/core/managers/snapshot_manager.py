# src/replica_top/core/managers/snapshot_manager.py
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from dashboard_parser.model import DashboardParseError, ReplicaSnapshot
from replica_top.core.managers.config_manager import config_manager
from replica_top.core.services.dashboard_fetch_service import DashboardFetchError, DashboardFetchService

logger = logging.getLogger(__name__)


class SnapshotManager:
    """
    Polls the replica dashboard and keeps the most recent ReplicaSnapshot.

    Every refresh replaces the snapshot wholesale. A fetch failure clears it
    (the replica is not reachable, nothing to show), while a parse failure
    keeps the previous snapshot and records the error so callers can tell
    a changed page layout apart from a stopped replica.
    """

    def __init__(
            self,
            url: str,
            fetch_service: Optional[DashboardFetchService] = None,
            refresh_interval: Optional[float] = None,
    ):
        self.url = url
        self.fetch_service = fetch_service or DashboardFetchService()
        self.refresh_interval = max(0.0, float(
            refresh_interval if refresh_interval is not None
            else config_manager.get_replica_settings().refresh_interval
        ))

        self._lock = threading.Lock()
        self._snapshot: Optional[ReplicaSnapshot] = None
        self._last_error: Optional[Exception] = None
        self._refreshed_at: Optional[datetime] = None

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # -------- State access --------

    def latest(self) -> Optional[ReplicaSnapshot]:
        with self._lock:
            return self._snapshot

    @property
    def last_error(self) -> Optional[Exception]:
        with self._lock:
            return self._last_error

    @property
    def refreshed_at(self) -> Optional[datetime]:
        with self._lock:
            return self._refreshed_at

    # -------- Refresh --------

    def refresh(self) -> bool:
        """Fetches and parses the dashboard once. Returns True if a new snapshot was stored."""
        try:
            snapshot = self.fetch_service.fetch_snapshot(self.url)
        except DashboardFetchError as e:
            logger.warning("Dashboard fetch failed: %s", e)
            with self._lock:
                self._snapshot = None
                self._last_error = e
            return False
        except DashboardParseError as e:
            logger.error("Dashboard at %s could not be parsed: %s", self.url, e)
            with self._lock:
                self._last_error = e
            return False

        with self._lock:
            self._snapshot = snapshot
            self._last_error = None
            self._refreshed_at = datetime.now()
        logger.debug("Snapshot refreshed: %d canisters.", len(snapshot.canisters))
        return True

    def run(
            self,
            iterations: Optional[int] = None,
            on_refresh: Optional[Callable[["SnapshotManager"], None]] = None,
            stop_event: Optional[threading.Event] = None,
    ) -> int:
        """
        Refreshes every `refresh_interval` seconds until `iterations` is reached
        or `stop_event` is set. Returns the number of refreshes performed.
        """
        stop = stop_event or self._stop_event
        done = 0
        if iterations is not None and iterations <= 0:
            return done
        while not stop.is_set():
            self.refresh()
            done += 1
            if on_refresh:
                on_refresh(self)
            if iterations is not None and done >= iterations:
                break
            stop.wait(self.refresh_interval)
        return done

    def start(self) -> None:
        """Runs the refresh loop on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, daemon=True)
        self._thread.start()
        logger.debug("Snapshot polling started for %s every %.1fs", self.url, self.refresh_interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
