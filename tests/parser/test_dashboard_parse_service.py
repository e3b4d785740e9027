# tests/parser/test_dashboard_parse_service.py
from pathlib import Path

import pytest
from bs4 import BeautifulSoup

from dashboard_parser.model import CanisterRecord, DashboardParseError, ExportsDescriptor, ReplicaSnapshot
from dashboard_parser.services.dashboard_parse_service import (
    DashboardParseService,
    collect_fields,
    enclosing_row_group,
    parse_dashboard,
    trailing_cells,
)

FIXTURES = Path(__file__).parent / "fixtures"

HTTP_CONFIG = (
    'Config { listen_addr: 127.0.0.1:0, port_file_path: Some("/Users/mnl/Library/Application Support/'
    'org.dfinity.dfx/network/local/replica-configuration/replica-1.port"), connection_read_timeout_seconds: 1200, '
    'request_timeout_seconds: 300, http_max_concurrent_streams: 256, max_request_size_bytes: 5242880, '
    'max_delegation_certificate_size_bytes: 1048576, max_request_receive_seconds: 300, '
    'max_read_state_concurrent_requests: 100, max_status_concurrent_requests: 100, '
    'max_catch_up_package_concurrent_requests: 100, max_dashboard_concurrent_requests: 100, '
    'max_call_concurrent_requests: 50, max_query_concurrent_requests: 400, max_pprof_concurrent_requests: 5 }'
)

WALLET_UPDATES = [
    "add_address", "add_controller", "authorize", "deauthorize", "remove_address", "remove_controller",
    "set_name", "set_short_name", "wallet_call", "wallet_call128", "wallet_create_canister",
    "wallet_create_canister128", "wallet_create_wallet", "wallet_create_wallet128", "wallet_receive",
    "wallet_send", "wallet_send128", "wallet_store_wallet_wasm",
]
WALLET_QUERIES = [
    "get_chart", "get_controllers", "get_custodians", "get_events", "get_events128",
    "get_managed_canister_events", "get_managed_canister_events128", "http_request", "list_addresses",
    "list_managed_canisters", "name", "wallet_api_version", "wallet_balance", "wallet_balance128",
]
LIFECYCLE = ["CanisterInit", "CanisterPreUpgrade", "CanisterPostUpgrade"]


def _canister_row(canister_id: str, detail_rows: str, status: str, memory: str, round_: str) -> str:
    return f"""
    <tr>
        <td class="text">
            <details>
                <summary>{canister_id}</summary>
                <div class="verbose">
                    <table><tbody>{detail_rows}</tbody></table>
                </div>
            </details>
        </td>
        <td class="text">{status}</td>
        <td class="number">{memory}</td>
        <td class="number">{round_}</td>
    </tr>"""


def _page(rows: str, headers=("0.9.0", "System", "0 %"), config: str = "Config{...}") -> str:
    header_rows = "".join(f'<tr><td>label</td><td class="debug">{h}</td></tr>' for h in headers)
    config_block = f'<div class="debug">\n    <pre>  {config}  </pre>\n</div>' if config is not None else ""
    return f"""
<html><body>
<table><tbody>{header_rows}</tbody></table>
{config_block}
<div class="debug"><table><tbody>
    <tr><th>Canister id</th><th>Status</th><th>Memory allocation</th><th>Last Execution Round</th></tr>
    {rows}
</tbody></table></div>
</body></html>"""


def _kv(key: str, value: str) -> str:
    return f"<tr><td>{key}</td><td>{value}</td></tr>"


@pytest.fixture
def dashboard_html():
    return (FIXTURES / "replica_dashboard.html").read_text(encoding="utf-8")


@pytest.fixture
def application_html():
    return (FIXTURES / "replica_dashboard_application.html").read_text(encoding="utf-8")


# --- Full dashboard pages ---

def test_parse_saved_dashboard(dashboard_html):
    """Test een volledig opgeslagen dashboard met vier canisters."""
    snapshot = parse_dashboard(dashboard_html)

    assert snapshot.replica_version == "0.9.0"
    assert snapshot.subnet_type == "System"
    assert snapshot.total_compute_allocation == "0 %"
    assert snapshot.http_server_config == HTTP_CONFIG
    assert [c.canister_id for c in snapshot.canisters] == [
        "bnz7o-iuaaa-aaaaa-qaaaa-cai",
        "bkyz2-fmaaa-aaaaa-qaaaq-cai",
        "bd3sg-teaaa-aaaaa-qaaba-cai",
        "be2us-64aaa-aaaaa-qaabq-cai",
    ]

    wallet = snapshot.canisters[0]
    assert wallet == CanisterRecord(
        canister_id="bnz7o-iuaaa-aaaaa-qaaaa-cai",
        status="Running",
        memory_allocation="best-effort",
        last_execution_round="0",
        controllers="trg6r-vqw4x-tcu5z-pgm4z-nmas4-ailxn-rjavv-zbzhi-jy2oy-wjrpf-hqe",
        certified_data_length="32 bytes",
        canister_history_memory_usage="238 bytes",
        execution_state="",
        last_full_execution_round="104",
        compute_allocation="0%",
        freeze_threshold="2592000",
        memory_usage="7345934",
        accumulated_priority="0",
        cycles_balance="93_800_000_000_000",
        exports=ExportsDescriptor(
            query_functions=WALLET_QUERIES,
            update_functions=WALLET_UPDATES,
            system_functions=LIFECYCLE,
        ),
    )


def test_parse_saved_dashboard_status_columns_from_row_group(dashboard_html):
    """De statuskolommen komen van het einde van de tabel, dus van de laatste rij."""
    snapshot = parse_dashboard(dashboard_html)
    rounds = [c.last_execution_round for c in snapshot.canisters]
    assert rounds == ["0", "0", "0", "0"]
    assert all(c.status == "Running" for c in snapshot.canisters)
    assert all(c.memory_allocation == "best-effort" for c in snapshot.canisters)


def test_parse_saved_dashboard_motoko_canister(dashboard_html):
    snapshot = parse_dashboard(dashboard_html)
    second = snapshot.canisters[1]
    assert second.exports == ExportsDescriptor(
        query_functions=["__get_candid_interface_tmp_hack", "__motoko_stable_var_info", "greet"],
        update_functions=["__motoko_async_helper", "__motoko_gc_trigger"],
        system_functions=[
            "CanisterStart", "CanisterInit", "CanisterPreUpgrade", "CanisterPostUpgrade", "CanisterGlobalTimer",
        ],
        exports_global_timer=True,
    )
    assert second.controllers == (
        "bnz7o-iuaaa-aaaaa-qaaaa-cai trg6r-vqw4x-tcu5z-pgm4z-nmas4-ailxn-rjavv-zbzhi-jy2oy-wjrpf-hqe"
    )
    assert second.cycles_balance == "3_100_000_000_000"


def test_parse_application_dashboard(application_html):
    snapshot = parse_dashboard(application_html)

    assert snapshot.subnet_type == "Application"
    assert [c.last_execution_round for c in snapshot.canisters] == ["0", "0", "0", "0"]

    motoko = snapshot.canisters[1]
    assert motoko.exports.query_functions == [
        "__get_candid_interface_tmp_hack", "__motoko_stable_var_info", "greet",
    ]
    assert motoko.exports.update_functions == ["__motoko_async_helper", "__motoko_gc_trigger"]
    assert motoko.exports.system_functions == [
        "CanisterStart", "CanisterInit", "CanisterPreUpgrade", "CanisterPostUpgrade", "CanisterGlobalTimer",
    ]
    assert motoko.exports.exports_global_timer is True
    assert motoko.exports.exports_heartbeat is False

    candid_ui = snapshot.canisters[3]
    assert candid_ui.exports.query_functions == [
        "binding", "did_to_js", "http_request", "merge_init_args", "subtype",
    ]
    assert candid_ui.http_endpoint(4943) == "http://be2us-64aaa-aaaaa-qaabq-cai.localhost:4943"
    assert motoko.http_endpoint(4943) is None


def test_parse_is_idempotent(dashboard_html):
    assert parse_dashboard(dashboard_html) == parse_dashboard(dashboard_html)


# --- Minimal documents ---

def test_parse_two_record_document():
    """End-to-end: twee canisters met elk een deel van de sleutels."""
    rows = (
        _canister_row(
            "aaaaa-aa",
            _kv("controllers", "me") + _kv("certified_data length", "0 bytes") + _kv("Cycles balance", "1_000"),
            "Running", "best-effort", "7",
        )
        + _canister_row(
            "bbbbb-bb",
            _kv("freeze_threshold (seconds)", "2592000") + _kv("memory_usage", "123"),
            "Stopped", "10 MiB", "9",
        )
    )
    snapshot = parse_dashboard(_page(rows))

    assert snapshot.replica_version == "0.9.0"
    assert snapshot.subnet_type == "System"
    assert snapshot.total_compute_allocation == "0 %"
    assert snapshot.http_server_config == "Config{...}"
    assert snapshot.canisters == [
        CanisterRecord(
            canister_id="aaaaa-aa", status="Stopped", memory_allocation="10 MiB",
            last_execution_round="9", controllers="me", certified_data_length="0 bytes",
            cycles_balance="1_000",
        ),
        CanisterRecord(
            canister_id="bbbbb-bb", status="Stopped", memory_allocation="10 MiB",
            last_execution_round="9", freeze_threshold="2592000", memory_usage="123",
        ),
    ]


def test_positional_columns_read_from_row_end():
    snapshot = parse_dashboard(_page(_canister_row("aaaaa-aa", "", "Running", "best-effort", "42")))
    canister = snapshot.canisters[0]
    assert canister.status == "Running"
    assert canister.memory_allocation == "best-effort"
    assert canister.last_execution_round == "42"


def test_canisters_in_one_row_group_share_the_last_row_columns():
    """Twee canisters in dezelfde tbody krijgen allebei de kolommen van de laatste rij."""
    rows = _canister_row("aaaaa-aa", "", "Stopped", "10 MiB", "7") + _canister_row(
        "bbbbb-bb", "", "Running", "best-effort", "42"
    )
    snapshot = parse_dashboard(_page(rows))
    assert [(c.status, c.memory_allocation, c.last_execution_round) for c in snapshot.canisters] == [
        ("Running", "best-effort", "42"),
        ("Running", "best-effort", "42"),
    ]


def test_blank_exports_cell_gives_default_descriptor():
    snapshot = parse_dashboard(_page(_canister_row("aaaaa-aa", _kv("exports", ""), "Running", "x", "1")))
    assert snapshot.canisters[0].exports == ExportsDescriptor()


def test_missing_exports_key_gives_default_descriptor():
    snapshot = parse_dashboard(_page(_canister_row("aaaaa-aa", _kv("controllers", "me"), "Running", "x", "1")))
    assert snapshot.canisters[0].exports == ExportsDescriptor()


def test_bad_global_timer_only_affects_its_own_canister():
    good = '{Query("greet")}, exports_heartbeat: false, exports_global_timer: true }'
    bad = '{Query("greet")}, exports_heartbeat: false, exports_global_timer: maybe }'
    rows = (
        _canister_row("aaaaa-aa", _kv("exports", bad) + _kv("memory_usage", "5"), "Running", "x", "1")
        + _canister_row("bbbbb-bb", _kv("exports", good), "Running", "x", "2")
    )
    snapshot = parse_dashboard(_page(rows))

    broken, healthy = snapshot.canisters
    assert broken.exports == ExportsDescriptor()
    assert broken.memory_usage == "5"
    assert healthy.exports.query_functions == ["greet"]
    assert healthy.exports.exports_global_timer is True


def test_duplicate_keys_last_occurrence_wins():
    rows = _canister_row(
        "aaaaa-aa",
        _kv("memory_usage", "1") + _kv("controllers", "me") + _kv("memory_usage", "2"),
        "Running", "x", "1",
    )
    assert parse_dashboard(_page(rows)).canisters[0].memory_usage == "2"


def test_summary_without_id_is_dropped():
    rows = _canister_row("   ", _kv("controllers", "me"), "Running", "x", "1") + _canister_row(
        "bbbbb-bb", "", "Running", "x", "2"
    )
    snapshot = parse_dashboard(_page(rows))
    assert [c.canister_id for c in snapshot.canisters] == ["bbbbb-bb"]


def test_summary_outside_table_keeps_record_without_positional_fields():
    html = """
    <details>
        <summary>loose-canister</summary>
        <table><tr><td>controllers</td><td>me</td></tr></table>
    </details>"""
    snapshot = parse_dashboard(html)
    assert snapshot.canisters == [CanisterRecord(canister_id="loose-canister", controllers="me")]


def test_missing_headers_and_config_degrade_to_empty():
    snapshot = parse_dashboard(_page("", headers=("0.9.0",), config=None))
    assert snapshot.replica_version == "0.9.0"
    assert snapshot.subnet_type == ""
    assert snapshot.total_compute_allocation == ""
    assert snapshot.http_server_config == ""
    assert snapshot.canisters == []


def test_empty_document_is_valid_empty_snapshot():
    assert parse_dashboard("") == ReplicaSnapshot()


def test_unclosed_tags_do_not_abort():
    html = '<table><tr><td class="debug">0.9.0<td class="debug">System'
    snapshot = parse_dashboard(html)
    assert snapshot.replica_version.startswith("0.9.0")


@pytest.mark.parametrize("content", [None, 42, ["<html>"]])
def test_non_text_input_raises_parse_error(content):
    with pytest.raises(DashboardParseError):
        DashboardParseService(content)


# --- Helpers ---

def test_trailing_cells_returns_none_when_too_few():
    row = BeautifulSoup("<table><tr><td>a</td><td>b</td></tr></table>", "html.parser").tr
    assert trailing_cells(row, 3) is None
    assert trailing_cells(row, 2) == ["a", "b"]


def test_trailing_cells_includes_nested_cells_in_document_order():
    row = BeautifulSoup(
        "<table><tr><td><table><tr><td>k</td><td>v</td></tr></table></td>"
        "<td> Running </td><td>best-effort</td><td>42</td></tr></table>",
        "html.parser",
    ).tr
    assert trailing_cells(row, 3) == ["Running", "best-effort", "42"]


def test_enclosing_row_group_requires_a_table():
    soup = BeautifulSoup(
        "<div><div><div><details><summary>x</summary></details></div></div></div>", "html.parser"
    )
    assert enclosing_row_group(soup.summary) is None


def test_enclosing_row_group_walks_up_from_details():
    soup = BeautifulSoup(
        "<table><tbody><tr><td><details><summary>x</summary></details></td></tr></tbody></table>",
        "html.parser",
    )
    assert enclosing_row_group(soup.summary) is soup.tbody


def test_enclosing_row_group_missing_level():
    soup = BeautifulSoup("<td><details><summary>x</summary></details></td>", "html.parser")
    assert enclosing_row_group(soup.summary) is None


def test_collect_fields_last_write_wins():
    assert collect_fields([("a", "1"), ("b", "2"), ("a", "3")]) == {"a": "3", "b": "2"}
