# src/replica_top/model.py (Shell Layer)
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

RELEASE_URL = "https://dashboard.internetcomputer.org/release/{rev}"
RELEASES_URL = "https://dashboard.internetcomputer.org/releases"
MAINNET_URL = "http://ic0.app"
NOT_AVAILABLE = "N/A"


class ReplicaEndpoints(BaseModel):
    """URLs of the replica for the selected dfx network."""
    model_config = ConfigDict(frozen=True)

    network: str
    dashboard_url: str
    webserver_url: str
    replica_revision_url: str
    fetch_dashboard: bool = True

    @classmethod
    def for_network(
            cls,
            network: str,
            replica_port: str | int = "",
            webserver_port: str | int = "",
            replica_rev: str = "",
            host: str = "localhost",
    ) -> "ReplicaEndpoints":
        """
        Builds the endpoint set for `local` or `ic`. The mainnet has no
        dashboard to scrape, so `fetch_dashboard` is False there.
        """
        if network == "local":
            return cls(
                network=network,
                dashboard_url=f"http://{host}:{replica_port}/_/dashboard",
                webserver_url=f"http://{host}:{webserver_port}",
                replica_revision_url=RELEASE_URL.format(rev=str(replica_rev).strip()),
            )
        if network == "ic":
            return cls(
                network=network,
                dashboard_url=MAINNET_URL,
                webserver_url=NOT_AVAILABLE,
                replica_revision_url=RELEASES_URL,
                fetch_dashboard=False,
            )
        raise ValueError(f"Unknown network '{network}'. Expected 'local' or 'ic'.")


class ReplicaSettings(BaseModel):
    """The validated `replica` section of settings.json."""
    model_config = ConfigDict(extra="forbid")

    network: Literal["local", "ic"] = "local"
    host: str = "localhost"
    port: int = Field(4943, ge=1, le=65535)
    webserver_port: int = Field(4943, ge=1, le=65535)
    replica_rev: str = ""
    refresh_interval: float = Field(2.0, ge=0)

    def endpoints(self, port: Optional[int] = None) -> ReplicaEndpoints:
        return ReplicaEndpoints.for_network(
            self.network,
            replica_port=port or self.port,
            webserver_port=self.webserver_port,
            replica_rev=self.replica_rev,
            host=self.host,
        )
