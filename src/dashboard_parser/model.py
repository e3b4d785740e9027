# ============================================
# file: src/dashboard_parser/model.py
# ============================================
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DashboardParseError(ValueError):
    """Raised when the dashboard HTML cannot be turned into a document at all."""


class ExportsDescriptor(BaseModel):
    """
    Decomposition of a canister's `ExportedFunctions { ... }` debug literal.
    The default instance (all lists empty, both flags False) doubles as the
    fallback whenever the literal is missing or fails to parse.
    """
    model_config = ConfigDict(frozen=True)

    query_functions: List[str] = Field(default_factory=list)
    update_functions: List[str] = Field(default_factory=list)
    system_functions: List[str] = Field(default_factory=list)
    exports_heartbeat: bool = False
    exports_global_timer: bool = False


class CanisterRecord(BaseModel):
    """One canister section of the replica dashboard."""
    model_config = ConfigDict(frozen=True)

    canister_id: str
    status: str = ""
    memory_allocation: str = ""
    last_execution_round: str = ""
    controllers: str = ""
    certified_data_length: str = ""
    canister_history_memory_usage: str = ""
    execution_state: str = ""
    last_full_execution_round: str = ""
    compute_allocation: str = ""
    freeze_threshold: str = ""
    memory_usage: str = ""
    accumulated_priority: str = ""
    cycles_balance: str = ""
    exports: ExportsDescriptor = Field(default_factory=ExportsDescriptor)

    def http_endpoint(self, webserver_port: str | int) -> Optional[str]:
        """Returns the local HTTP gateway URL if the canister serves `http_request`."""
        if "http_request" not in self.exports.query_functions:
            return None
        return f"http://{self.canister_id}.localhost:{webserver_port}"


class ReplicaSnapshot(BaseModel):
    """Everything extracted from a single dashboard page."""
    model_config = ConfigDict(frozen=True)

    replica_version: str = ""
    subnet_type: str = ""
    total_compute_allocation: str = ""
    http_server_config: str = ""
    canisters: List[CanisterRecord] = Field(default_factory=list)

    def find_canister(self, canister_id: str) -> Optional[CanisterRecord]:
        for canister in self.canisters:
            if canister.canister_id == canister_id:
                return canister
        return None
