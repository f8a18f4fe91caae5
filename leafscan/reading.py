import logging
from typing import Tuple

from leafscan.consts import (
    CONTINUATION_BIT,
    LAST_SEVEN_BITS_MASK,
    MAX_VARINT_SIZE,
)
from leafscan.errors import TruncatedInput, UnreadableFile

logger = logging.getLogger(__name__)


def page_start(page_index: int, page_size: int) -> int:
    return page_index * page_size


def decode_varint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """
    Decodes the varint starting at `offset` and returns (value, bytes consumed).

    https://www.sqlite.org/fileformat.html#varint
    The first 8 bytes carry 7 bits each and flag a continuation in their high bit,
    a 9th byte always terminates and contributes all 8 of its bits.
    """
    value = 0
    for c in range(MAX_VARINT_SIZE):
        if offset + c >= len(data):
            raise TruncatedInput(
                f"Varint at offset {offset} needs more than the {len(data) - offset} available bytes"
            )

        byte = data[offset + c]
        if c == MAX_VARINT_SIZE - 1:
            return (value << 8) | byte, MAX_VARINT_SIZE

        value = (value << 7) | (byte & LAST_SEVEN_BITS_MASK)
        if (byte & CONTINUATION_BIT) == 0:
            return value, c + 1

    # unreachable, the 9th byte always returns
    return value, MAX_VARINT_SIZE


def load_database(path: str) -> bytes:
    """
    Reads the whole database file in one go.

    The file is opened read-only so it can still be read while the process owning
    it keeps it open, wherever the platform allows shared reads.
    """
    try:
        with open(path, "rb") as database_file:
            data = database_file.read()
    except OSError as e:
        raise UnreadableFile(f"Could not read database file {path}: {e}") from e

    logger.debug("Read %d bytes from %s", len(data), path)
    return data
