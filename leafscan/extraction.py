from __future__ import annotations
import locale
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, NamedTuple, Optional, Tuple

import sqlparse
from sqlparse.tokens import Comment, Punctuation

from leafscan.consts import DEFAULT_FIELD_ROLES, DEFAULT_START_PAGE
from leafscan.header import parse_header
from leafscan.pages import ScanStats, scan_pages
from leafscan.rows import Record

logger = logging.getLogger(__name__)

URL = "url"
USERNAME = "username"
SECRET = "secret"
ROLES = (URL, USERNAME, SECRET)

# reveal(protected_bytes, scope_hint) -> plaintext bytes, raises when not accessible
Reveal = Callable[[bytes, Optional[bytes]], bytes]


class OutputRecord(NamedTuple):
    url: str
    username: str
    secret: str


@dataclass(frozen=True)
class RevealOutcome:
    plaintext: Optional[bytes] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def reveal_secret(reveal: Reveal, protected: bytes, scope_hint: bytes = None) -> RevealOutcome:
    """
    Runs the secret-reveal callable and reports how it went instead of raising.
    Every failure means the same thing to us: the secret isn't available.
    """
    try:
        return RevealOutcome(plaintext=reveal(protected, scope_hint))
    except Exception as e:
        return RevealOutcome(error=e)


class FieldLayout:
    """
    Which semantic role, if any, the field at each position of a record plays.
    The row layout comes from configuration, never from the database itself.
    """

    roles: Tuple[Optional[str], ...]

    def __init__(self, roles):
        roles = tuple(roles)
        for role in ROLES:
            if roles.count(role) != 1:
                raise ValueError(f"Layout must place role '{role}' exactly once, got {roles}")
        unknown = [role for role in roles if role is not None and role not in ROLES]
        if unknown:
            raise ValueError(f"Unknown roles {unknown}, expected one of {ROLES}")

        self.roles = roles

    def __repr__(self) -> str:
        return f"FieldLayout({self.roles!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, FieldLayout) and self.roles == other.roles

    def position(self, role: str) -> int:
        return self.roles.index(role)

    @staticmethod
    def from_create_table(sql_creation_query: str, columns: Dict[str, str]) -> FieldLayout:
        """
        Builds a layout from the table's CREATE TABLE statement, given which column
        plays which role, e.g. {"origin_url": "url", "username_value": "username",
        "password_value": "secret"}
        """
        column_names = get_column_names_from_creation_query(sql_creation_query)
        missing = set(columns) - set(column_names)
        if missing:
            raise ValueError(
                f"Columns {sorted(missing)} are not part of the table, which has {column_names}"
            )

        return FieldLayout(columns.get(name) for name in column_names)


DEFAULT_LAYOUT = FieldLayout(DEFAULT_FIELD_ROLES)


def get_column_names_from_creation_query(sql_creation_query: str) -> List[str]:
    """
    Creation query will look like

    CREATE TABLE logins
    (
        origin_url VARCHAR NOT NULL,
        action_url VARCHAR,
        username_value VARCHAR,
        ...
        UNIQUE (origin_url, username_element)
    )

    sqlparse groups the column definitions inconsistently, so we walk the flat token
    stream instead: every comma separated definition inside the outer parenthesis
    starts with the column name, except table constraints, which we drop.
    """
    table_constraint_keywords = {"constraint", "primary", "unique", "check", "foreign"}

    statements = sqlparse.parse(sql_creation_query)
    if not statements:
        raise ValueError("No column definitions in sql creation query.", sql_creation_query)
    statement = statements[0]

    definitions = []
    depth = 0
    for token in statement.flatten():
        if token.is_whitespace or token.ttype in Comment:
            continue
        if token.match(Punctuation, "("):
            depth += 1
            if depth == 1:
                definitions.append([])
                continue
        elif token.match(Punctuation, ")"):
            depth -= 1
            if depth == 0:
                break
        elif depth == 1 and token.match(Punctuation, ","):
            definitions.append([])
            continue

        if depth >= 1:
            definitions[-1].append(token)

    if not definitions:
        raise ValueError("No column definitions in sql creation query.", sql_creation_query)

    column_names = []
    for definition in definitions:
        if not definition:
            continue
        first = definition[0].value
        if first.split()[0].lower() in table_constraint_keywords:
            continue
        column_names.append(first.strip('"`[]'))

    return column_names


class Extractor:
    """
    Projects decoded records onto (url, username, secret), revealing the secret
    field through the given callable.
    """

    def __init__(self, reveal: Reveal, layout: FieldLayout = DEFAULT_LAYOUT, stats: ScanStats = None):
        self.reveal = reveal
        self.layout = layout
        self.stats = stats if stats is not None else ScanStats()

    def _raw(self, record: Record, role: str) -> bytes:
        position = self.layout.position(role)
        if position >= len(record):
            return b""
        return record[position].raw

    def extract(self, record: Record) -> Optional[OutputRecord]:
        url = self._raw(record, URL).decode("latin-1")
        username = self._raw(record, USERNAME).decode("latin-1")

        if self.layout.position(SECRET) >= len(record):
            self.stats.dropped_records["no secret field"] += 1
            return None

        secret = ""
        outcome = reveal_secret(self.reveal, self._raw(record, SECRET))
        if outcome.ok:
            secret = (outcome.plaintext or b"").decode(
                locale.getpreferredencoding(False), errors="replace"
            )
        else:
            self.stats.reveal_failures += 1
            logger.debug("Could not reveal secret of row %s: %s", record.row_id, outcome.error)

        if not username:
            self.stats.dropped_records["no username"] += 1
            return None
        if not secret:
            self.stats.dropped_records["no secret"] += 1
            return None

        self.stats.records_emitted += 1
        return OutputRecord(url, username, secret)


def extract(record: Record, reveal: Reveal, layout: FieldLayout = DEFAULT_LAYOUT) -> Optional[OutputRecord]:
    return Extractor(reveal, layout).extract(record)


def extract_from_bytes(
    data: bytes,
    reveal: Reveal,
    layout: FieldLayout = DEFAULT_LAYOUT,
    start_page: int = DEFAULT_START_PAGE,
    stats: ScanStats = None,
) -> Iterator[OutputRecord]:
    """
    Reads every (url, username, secret) out of a database file's bytes.

    The header is checked before anything is yielded, so a file that isn't a
    database fails straight away.
    """
    header = parse_header(data)
    logger.debug(
        "Page size %d, %d pages, %d reserved bytes per page",
        header.page_size,
        header.page_count,
        header.reserved_space,
    )
    return scan_pages(data, header, Extractor(reveal, layout, stats), start_page)
