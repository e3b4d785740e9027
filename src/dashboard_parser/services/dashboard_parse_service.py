from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from bs4 import BeautifulSoup, ParserRejectedMarkup, Tag

from dashboard_parser.model import (
    CanisterRecord,
    DashboardParseError,
    ExportsDescriptor,
    ReplicaSnapshot,
)
from dashboard_parser.services.exports_parse_service import exports_parse_service

logger = logging.getLogger(__name__)

HEADER_SELECTOR = "td.debug"
CONFIG_SELECTOR = "div.debug > pre"
SUMMARY_TAG = "summary"

# details -> td -> tr -> tbody
ROW_GROUP_ANCESTOR_LEVELS = 3
ROW_GROUP_TAGS = ("tbody", "thead", "tfoot", "table")

# Keyed canister fields mapped to the exact row labels the replica emits
FIELD_KEYS: Dict[str, str] = {
    "controllers": "controllers",
    "certified_data_length": "certified_data length",
    "canister_history_memory_usage": "canister_history_memory_usage",
    "execution_state": "execution_state",
    "last_full_execution_round": "last_full_execution_round",
    "compute_allocation": "compute_allocation",
    "freeze_threshold": "freeze_threshold (seconds)",
    "memory_usage": "memory_usage",
    "accumulated_priority": "accumulated_priority",
    "cycles_balance": "Cycles balance",
}
EXPORTS_KEY = "exports"

# The canister table ends with: Status | Memory allocation | Last Execution Round
POSITIONAL_FIELDS = ("status", "memory_allocation", "last_execution_round")


def _text(el: Tag) -> str:
    return el.get_text().strip()


def trailing_cells(container: Tag, count: int) -> Optional[List[str]]:
    """
    Returns the trimmed text of the last `count` <td> cells under `container`,
    in document order, or None if it holds fewer than `count` cells.
    """
    cells = container.find_all("td")
    if len(cells) < count:
        return None
    return [_text(cell) for cell in cells[len(cells) - count:]]


def enclosing_row_group(summary: Tag) -> Optional[Tag]:
    """
    Walks up from the <details> holding a <summary> to the row group of the
    canister table. The status columns are read from the end of that group,
    so every canister in one group shares the values of its last row.
    """
    node = summary.parent
    if not isinstance(node, Tag):
        return None
    for _ in range(ROW_GROUP_ANCESTOR_LEVELS):
        node = node.parent
        if not isinstance(node, Tag):
            return None
    return node if node.name in ROW_GROUP_TAGS else None


def collect_fields(pairs: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """Folds (key, value) rows into a mapping; a repeated key keeps its last value."""
    return dict(pairs)


def key_value_rows(container: Tag) -> Iterable[Tuple[str, str]]:
    """Yields (key, value) from the first two cells of every row under `container`."""
    for tr in container.find_all("tr"):
        cells = tr.find_all("td", limit=2)
        if len(cells) == 2:
            yield _text(cells[0]), _text(cells[1])


class DashboardParseService:
    """
    Extracts a ReplicaSnapshot from the replica's `/_/dashboard` HTML page.

    The page is meant for humans: header values are only recognisable by
    their position among the `td.debug` cells, and three canister columns
    have no label at all. Every missing piece degrades to an empty value;
    only markup that BeautifulSoup refuses outright raises
    DashboardParseError.
    """

    def __init__(self, page_content: Union[str, bytes]):
        if not isinstance(page_content, (str, bytes)):
            raise DashboardParseError(
                f"Dashboard content must be text, got {type(page_content).__name__}."
            )
        try:
            self.soup = BeautifulSoup(page_content, "html.parser")
        except ParserRejectedMarkup as e:
            raise DashboardParseError(f"Dashboard HTML could not be parsed: {e}") from e

    # -------- Replica header --------

    def extract_header_values(self) -> Tuple[str, str, str]:
        """Returns (replica_version, subnet_type, total_compute_allocation)."""
        values = [_text(td) for td in self.soup.select(HEADER_SELECTOR)]
        values += [""] * (3 - len(values))
        return values[0], values[1], values[2]

    def extract_http_server_config(self) -> str:
        pre = self.soup.select_one(CONFIG_SELECTOR)
        return _text(pre) if pre else ""

    # -------- Canisters --------

    @staticmethod
    def extract_positional_fields(summary: Tag) -> Dict[str, str]:
        group = enclosing_row_group(summary)
        values = trailing_cells(group, len(POSITIONAL_FIELDS)) if group is not None else None
        if values is None:
            logger.debug("No status columns found for canister '%s'.", _text(summary))
            return {}
        return dict(zip(POSITIONAL_FIELDS, values))

    @staticmethod
    def extract_exports(fields: Mapping[str, str], canister_id: str) -> ExportsDescriptor:
        raw = fields.get(EXPORTS_KEY)
        if raw is None:
            return ExportsDescriptor()
        exports = exports_parse_service.parse(raw)
        if exports is None:
            logger.debug("Could not parse exports of canister '%s', using defaults.", canister_id)
            return ExportsDescriptor()
        return exports

    def extract_canister(self, summary: Tag) -> Optional[CanisterRecord]:
        canister_id = _text(summary)
        if not canister_id:
            return None

        details = summary.parent
        fields = collect_fields(key_value_rows(details)) if isinstance(details, Tag) else {}

        values = {name: fields.get(key, "") for name, key in FIELD_KEYS.items()}
        values.update(self.extract_positional_fields(summary))

        return CanisterRecord(
            canister_id=canister_id,
            exports=self.extract_exports(fields, canister_id),
            **values,
        )

    def extract_canisters(self) -> List[CanisterRecord]:
        canisters: List[CanisterRecord] = []
        for summary in self.soup.find_all(SUMMARY_TAG):
            canister = self.extract_canister(summary)
            if canister is None:
                logger.debug("Skipping canister section without an id.")
                continue
            canisters.append(canister)
        return canisters

    def parse(self) -> ReplicaSnapshot:
        replica_version, subnet_type, total_compute_allocation = self.extract_header_values()
        return ReplicaSnapshot(
            replica_version=replica_version,
            subnet_type=subnet_type,
            total_compute_allocation=total_compute_allocation,
            http_server_config=self.extract_http_server_config(),
            canisters=self.extract_canisters(),
        )


def parse_dashboard(page_content: Union[str, bytes]) -> ReplicaSnapshot:
    """Parses a dashboard page in one call. Raises DashboardParseError on unusable input."""
    return DashboardParseService(page_content).parse()
