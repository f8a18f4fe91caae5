from __future__ import annotations
import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from leafscan.consts import (
    CELL_COUNT_OFFSET,
    CELL_POINTER_SIZE,
    DB_FILE_HEADER_SIZE,
    DEFAULT_START_PAGE,
    LEAF_PAGE_HEADER_SIZE,
    MAX_LOCAL_PAYLOAD_MARGIN,
)
from leafscan.errors import (
    InvalidCellPointer,
    OverflowNotSupported,
    StructuralError,
)
from leafscan.header import FileHeader
from leafscan.reading import decode_varint, page_start
from leafscan.rows import Record, decode_record

from typing import TYPE_CHECKING, Iterator, List, Optional, Tuple

if TYPE_CHECKING:
    from leafscan.extraction import Extractor, OutputRecord

logger = logging.getLogger(__name__)


class PageType(Enum):
    INTERIOR_INDEX = 0x02
    INTERIOR_TABLE = 0x05
    LEAF_INDEX = 0x0A
    LEAF_TABLE = 0x0D
    """
    The only page type we read rows from. Its cells hold the whole record inline
    unless it spills into overflow pages:

    | payload size (varint) | row id (varint) | payload | [first overflow page] |
    """

    @staticmethod
    def classify(type_byte: int) -> Optional[PageType]:
        try:
            return PageType(type_byte)
        except ValueError:
            return None


@dataclass
class ScanStats:
    """Counts what the scan read, skipped and dropped, keyed by reason."""

    pages_scanned: int = 0
    records_decoded: int = 0
    records_emitted: int = 0
    reveal_failures: int = 0
    skipped_pages: Counter = field(default_factory=Counter)
    skipped_cells: Counter = field(default_factory=Counter)
    dropped_records: Counter = field(default_factory=Counter)


@dataclass(frozen=True)
class Cell:
    payload_length: int
    row_id: int
    payload: bytes


def decode_cell(cell_bytes: bytes, usable_size: int = None) -> Cell:
    """
    Decodes a table leaf cell, see https://www.sqlite.org/fileformat.html#b_tree_pages

    A payload that isn't fully stored in the cell continues on overflow pages, which
    we don't follow, so such cells raise OverflowNotSupported instead of being cut.
    """
    payload_length, i = decode_varint(cell_bytes)
    row_id, count = decode_varint(cell_bytes, i)
    i += count

    available = len(cell_bytes) - i
    if payload_length > available:
        raise OverflowNotSupported(
            f"Payload of row {row_id} declares {payload_length} bytes but the cell holds {available}"
        )
    if usable_size is not None and payload_length > usable_size - MAX_LOCAL_PAYLOAD_MARGIN:
        raise OverflowNotSupported(
            f"Payload of row {row_id} is {payload_length} bytes and spills into overflow pages"
        )

    return Cell(payload_length, row_id, bytes(cell_bytes[i : i + payload_length]))


class Page:
    index: int
    data: bytes
    page_type: Optional[PageType]
    type_byte: int
    header_start: int

    def __init__(self, index: int, data: bytes, header_start: int = 0):
        self.index = index
        self.data = data
        self.header_start = header_start
        self.type_byte = data[header_start]
        self.page_type = PageType.classify(self.type_byte)

    @staticmethod
    def from_bytes(database: bytes, index: int, page_size: int) -> Optional[Page]:
        """
        Slices the page at `index` out of the database, None when the file ends
        before the page does. The first page starts after the 100 byte database header.
        """
        start = page_start(index, page_size)
        data = database[start : start + page_size]
        if len(data) < page_size:
            return None

        return Page(index, data, DB_FILE_HEADER_SIZE if index == 0 else 0)

    @property
    def cell_count(self) -> int:
        start = self.header_start + CELL_COUNT_OFFSET
        return int.from_bytes(self.data[start : start + 2], "big")

    @property
    def cell_pointer_array_end(self) -> int:
        return (
            self.header_start
            + LEAF_PAGE_HEADER_SIZE
            + CELL_POINTER_SIZE * self.cell_count
        )

    #  The cell pointer array consists of K 2-byte integer offsets to the cell contents.
    def cell_pointers(self) -> List[int]:
        start = self.header_start + LEAF_PAGE_HEADER_SIZE
        return [
            int.from_bytes(self.data[offset : offset + CELL_POINTER_SIZE], "big")
            for offset in range(start, self.cell_pointer_array_end, CELL_POINTER_SIZE)
        ]

    def cell_bytes(self, pointer: int, usable_size: int) -> bytes:
        if not self.cell_pointer_array_end <= pointer < usable_size:
            raise InvalidCellPointer(
                f"Cell pointer {pointer} on page {self.index} is outside the cell area "
                f"[{self.cell_pointer_array_end}, {usable_size})"
            )
        return self.data[pointer:usable_size]

    def read_cells(self, usable_size: int, stats: ScanStats = None) -> Iterator[Cell]:
        """Yields the page cells in pointer array order, skipping unreadable ones."""
        for cell_index, pointer in enumerate(self.cell_pointers()):
            try:
                cell = decode_cell(self.cell_bytes(pointer, usable_size), usable_size)
            except StructuralError as e:
                logger.debug("Skipping cell %d of page %d: %s", cell_index, self.index, e)
                if stats is not None:
                    stats.skipped_cells[type(e).__name__] += 1
                continue

            yield cell


def classify_pages(data: bytes, header: FileHeader) -> Iterator[Tuple[int, Optional[PageType]]]:
    for index in range(header.page_count):
        page = Page.from_bytes(data, index, header.page_size)
        if page is None:
            return
        yield index, page.page_type


def iter_table_records(
    data: bytes,
    header: FileHeader,
    start_page: int = DEFAULT_START_PAGE,
    stats: ScanStats = None,
) -> Iterator[Record]:
    """
    Walks pages `start_page` to the last one and yields the records of every table
    leaf page, in page order and then cell pointer order.

    Anything that isn't a table leaf page is passed over, as are pages and cells
    that cannot be decoded. Interior and overflow pages are never followed.
    """
    stats = stats if stats is not None else ScanStats()

    for index in range(start_page, header.page_count):
        page = Page.from_bytes(data, index, header.page_size)
        if page is None:
            logger.debug("File ends before page %d, stopping", index)
            stats.skipped_pages["truncated"] += 1
            break

        stats.pages_scanned += 1
        if page.page_type != PageType.LEAF_TABLE:
            stats.skipped_pages["not a table leaf"] += 1
            continue

        if page.cell_pointer_array_end > header.usable_size:
            logger.debug(
                "Page %d declares %d cells, more than the page can point to",
                index,
                page.cell_count,
            )
            stats.skipped_pages["cell pointer array overrun"] += 1
            continue

        for cell in page.read_cells(header.usable_size, stats):
            try:
                record = decode_record(cell.payload, cell.row_id)
            except StructuralError as e:
                logger.debug("Skipping row %d of page %d: %s", cell.row_id, index, e)
                stats.skipped_cells[type(e).__name__] += 1
                continue

            stats.records_decoded += 1
            yield record


def scan_pages(
    data: bytes,
    header: FileHeader,
    extractor: Extractor,
    start_page: int = DEFAULT_START_PAGE,
) -> Iterator[OutputRecord]:
    for record in iter_table_records(data, header, start_page, extractor.stats):
        output = extractor.extract(record)
        if output is not None:
            yield output
