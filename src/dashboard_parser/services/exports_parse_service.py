import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from dashboard_parser.model import ExportsDescriptor

logger = logging.getLogger(__name__)

# Token kinds produced by the lexer
LBRACE, RBRACE, LPAREN, RPAREN, COMMA, COLON = "{", "}", "(", ")", ",", ":"
WORD, STRING = "WORD", "STRING"

_DELIMITERS = {LBRACE, RBRACE, LPAREN, RPAREN, COMMA, COLON}

FUNCTIONS_LABEL = "exported_functions"
HEARTBEAT_LABEL = "exports_heartbeat"
GLOBAL_TIMER_LABEL = "exports_global_timer"

# Literal tokens the replica emits for its Rust `bool` fields
TRUE_TOKEN = "true"
FALSE_TOKEN = "false"

# Maps the variant tag to the ExportsDescriptor list it lands in
TAG_FIELDS: Dict[str, str] = {
    "Query": "query_functions",
    "Update": "update_functions",
    "System": "system_functions",
}


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    pos: int


def tokenize(text: str) -> List[Token]:
    """
    Splits a debug literal into delimiter, quoted-string and bare-word tokens.

    There is no escaping in the producer's format: a string runs from one
    double quote to the next, and an unterminated string swallows the rest
    of the input.
    """
    tokens: List[Token] = []
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if ch.isspace():
            i += 1
        elif ch in _DELIMITERS:
            tokens.append(Token(ch, ch, i))
            i += 1
        elif ch == '"':
            end = text.find('"', i + 1)
            if end == -1:
                end = n
            tokens.append(Token(STRING, text[i + 1:end], i))
            i = end + 1
        else:
            start = i
            while i < n and not text[i].isspace() and text[i] not in _DELIMITERS and text[i] != '"':
                i += 1
            tokens.append(Token(WORD, text[start:i], start))
    return tokens


class ExportsParseService:
    """
    Recursive-descent reader for the `exports` cell of the replica dashboard:

        ExportedFunctions { exported_functions: {Query("a"), System(CanisterInit)},
                            exports_heartbeat: false, exports_global_timer: false }

    The parse is tolerant: a missing item set, unknown items and an
    unrecognised heartbeat value all fall back to defaults. The only hard
    failure is an `exports_global_timer` value that is neither `true` nor
    `false`, which makes `parse` return None.
    """

    def parse(self, raw: str) -> Optional[ExportsDescriptor]:
        tokens = tokenize(raw or "")

        grouped: Dict[str, List[str]] = {field: [] for field in TAG_FIELDS.values()}
        for tag, name in self._parse_item_set(tokens):
            field = TAG_FIELDS.get(tag)
            if field:
                grouped[field].append(name)

        heartbeat = self._parse_heartbeat(tokens)
        global_timer = self._parse_global_timer(tokens)
        if global_timer is None:
            logger.debug("Rejecting exports literal, unrecognised %s value: %r", GLOBAL_TIMER_LABEL, raw)
            return None

        return ExportsDescriptor(
            exports_heartbeat=heartbeat,
            exports_global_timer=global_timer,
            **grouped,
        )

    # -------- Item set --------

    @staticmethod
    def _find_label(tokens: List[Token], label: str) -> Optional[int]:
        """Index of the first token after `label:`, or None if the label is absent."""
        for idx in range(len(tokens) - 1):
            if tokens[idx].kind == WORD and tokens[idx].value == label and tokens[idx + 1].kind == COLON:
                return idx + 2
        return None

    def _item_set_bounds(self, tokens: List[Token]) -> Optional[Tuple[int, int]]:
        """Locates the `{ ... }` holding the tagged items as (first, end) token indices."""
        start = self._find_label(tokens, FUNCTIONS_LABEL)
        if start is not None:
            if start >= len(tokens) or tokens[start].kind != LBRACE:
                return None
            open_idx = start
        else:
            # Bare `{ items }, exports_heartbeat: ...` without the field label
            open_idx = next((i for i, t in enumerate(tokens) if t.kind == LBRACE), None)
            if open_idx is None:
                return None

        close_idx = next((i for i in range(open_idx + 1, len(tokens)) if tokens[i].kind == RBRACE), None)
        if close_idx is None:
            return None
        return open_idx + 1, close_idx

    def _parse_item_set(self, tokens: List[Token]) -> List[Tuple[str, str]]:
        bounds = self._item_set_bounds(tokens)
        if bounds is None:
            return []
        first, end = bounds

        items: List[Tuple[str, str]] = []
        chunk: List[Token] = []
        for token in tokens[first:end] + [Token(COMMA, COMMA, -1)]:
            if token.kind == COMMA:
                item = self._parse_item(chunk)
                if item:
                    items.append(item)
                chunk = []
            else:
                chunk.append(token)
        return items

    @staticmethod
    def _parse_item(chunk: List[Token]) -> Optional[Tuple[str, str]]:
        """Reads `Tag(Name)` or `Tag("Name")`; anything else is skipped."""
        if len(chunk) == 1 and chunk[0].kind == STRING:
            # A whole item wrapped in quotes: strip that layer and retry
            return ExportsParseService._parse_item(tokenize(chunk[0].value))
        if len(chunk) != 4:
            return None
        tag, lparen, name, rparen = chunk
        if tag.kind != WORD or lparen.kind != LPAREN or rparen.kind != RPAREN:
            return None
        if name.kind not in (WORD, STRING):
            return None
        return tag.value, name.value

    # -------- Trailing flags --------

    def _parse_heartbeat(self, tokens: List[Token]) -> bool:
        start = self._find_label(tokens, HEARTBEAT_LABEL)
        if start is None:
            return False
        value: List[Token] = []
        for token in tokens[start:]:
            if token.kind == COMMA:
                return len(value) == 1 and value[0].kind == WORD and value[0].value == TRUE_TOKEN
            value.append(token)
        # No terminating comma: the field is treated as unset
        return False

    def _parse_global_timer(self, tokens: List[Token]) -> Optional[bool]:
        start = self._find_label(tokens, GLOBAL_TIMER_LABEL)
        if start is None:
            return False
        value = [t for t in tokens[start:] if t.kind != RBRACE]
        if len(value) == 1 and value[0].kind == WORD:
            if value[0].value == TRUE_TOKEN:
                return True
            if value[0].value == FALSE_TOKEN:
                return False
        return None


exports_parse_service = ExportsParseService()
