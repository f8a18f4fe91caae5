from __future__ import annotations
import logging
from dataclasses import dataclass

from leafscan.consts import (
    DB_FILE_HEADER_SIZE,
    MAGIC,
    MAX_PAGE_SIZE,
    MIN_PAGE_SIZE,
    PAGE_COUNT_OFFSET,
    PAGE_SIZE_OFFSET,
    RESERVED_SPACE_OFFSET,
)
from leafscan.errors import BadMagic, UnsupportedPageSize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileHeader:
    magic: bytes
    page_size: int
    page_count: int
    reserved_space: int = 0

    @property
    def usable_size(self) -> int:
        return self.page_size - self.reserved_space


def parse_header(data: bytes) -> FileHeader:
    """
    Validates the file signature and reads the page geometry out of the 100 byte
    database header, see https://www.sqlite.org/fileformat.html#the_database_header

    Only the signature, page size, reserved space and page count are consulted.
    """
    if len(data) < DB_FILE_HEADER_SIZE:
        raise BadMagic(
            f"Expected at least {DB_FILE_HEADER_SIZE} header bytes but got {len(data)}"
        )

    magic = bytes(data[: len(MAGIC)])
    if magic != MAGIC:
        raise BadMagic(f"Not a database file, signature was {magic!r}")

    page_size = int.from_bytes(
        data[PAGE_SIZE_OFFSET : PAGE_SIZE_OFFSET + 2], byteorder="big"
    )
    # 1 stands for 65536, which we don't read
    if (
        page_size < MIN_PAGE_SIZE
        or page_size > MAX_PAGE_SIZE
        or page_size & (page_size - 1)
    ):
        raise UnsupportedPageSize(f"Unsupported page size {page_size}")

    reserved_space = data[RESERVED_SPACE_OFFSET]
    page_count = int.from_bytes(
        data[PAGE_COUNT_OFFSET : PAGE_COUNT_OFFSET + 4], byteorder="big"
    )
    if page_count == 0:
        # legacy writers leave the in-header size empty
        page_count = len(data) // page_size
        logger.debug("Header page count is 0, using %d from file size", page_count)

    return FileHeader(
        magic=magic,
        page_size=page_size,
        page_count=page_count,
        reserved_space=reserved_space,
    )
