from __future__ import annotations

from typing import Dict, List

import pandas as pd

from dashboard_parser.model import CanisterRecord, ReplicaSnapshot

# Column order of the canister table, matching the dashboard's own layout
CANISTER_COLUMNS: List[str] = [
    "canister_id",
    "status",
    "memory_allocation",
    "last_execution_round",
    "controllers",
    "certified_data_length",
    "canister_history_memory_usage",
    "execution_state",
    "last_full_execution_round",
    "compute_allocation",
    "freeze_threshold",
    "memory_usage",
    "accumulated_priority",
    "cycles_balance",
    "query_functions",
    "update_functions",
    "system_functions",
    "exports_heartbeat",
    "exports_global_timer",
]


def canister_row(canister: CanisterRecord) -> Dict[str, object]:
    """Flattens a canister into one table row; export lists become comma-joined text."""
    row = canister.model_dump(exclude={"exports"})
    exports = canister.exports
    row.update({
        "query_functions": ", ".join(exports.query_functions),
        "update_functions": ", ".join(exports.update_functions),
        "system_functions": ", ".join(exports.system_functions),
        "exports_heartbeat": exports.exports_heartbeat,
        "exports_global_timer": exports.exports_global_timer,
    })
    return row


def canisters_to_dataframe(snapshot: ReplicaSnapshot) -> pd.DataFrame:
    """One row per canister, in dashboard order. An empty snapshot yields an empty frame with all columns."""
    rows = [canister_row(c) for c in snapshot.canisters]
    return pd.DataFrame(rows, columns=CANISTER_COLUMNS)


def snapshot_header(snapshot: ReplicaSnapshot) -> Dict[str, str]:
    return {
        "replica_version": snapshot.replica_version,
        "subnet_type": snapshot.subnet_type,
        "total_compute_allocation": snapshot.total_compute_allocation,
        "http_server_config": snapshot.http_server_config,
    }
