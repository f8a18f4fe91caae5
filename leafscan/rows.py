# record format
# https://www.sqlite.org/fileformat.html#record_format
# A record contains a header and a body, in that order
from __future__ import annotations
import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, NamedTuple

from leafscan.errors import MalformedRecord, TruncatedInput
from leafscan.reading import decode_varint

# content sizes of serial types 0 to 11, 10 and 11 are reserved
FIXED_CONTENT_SIZES = {0: 0, 1: 1, 2: 2, 3: 3, 4: 4, 5: 6, 6: 8, 7: 8, 8: 0, 9: 0, 10: 0, 11: 0}


class ContentKind(Enum):
    FIXED = "fixed"
    BLOB = "blob"
    TEXT = "text"


class ContentLength(NamedTuple):
    kind: ContentKind
    size: int


def content_length(serial_type: int) -> ContentLength:
    if serial_type < 0:
        raise MalformedRecord(f"Negative serial type {serial_type}")
    if serial_type in FIXED_CONTENT_SIZES:
        return ContentLength(ContentKind.FIXED, FIXED_CONTENT_SIZES[serial_type])
    if serial_type % 2 == 0:
        return ContentLength(ContentKind.BLOB, (serial_type - 12) // 2)
    return ContentLength(ContentKind.TEXT, (serial_type - 13) // 2)


@dataclass(frozen=True)
class Field:
    serial_type: int
    raw: bytes

    def value(self) -> Any:
        """
        Converts the raw bytes to the python value their serial type describes.
        Blobs and text are left as bytes since the encoding is up to the caller.
        """
        serial_type = self.serial_type
        if serial_type == 0:
            return None
        elif 1 <= serial_type <= 6:
            return int.from_bytes(self.raw, "big", signed=True)
        elif serial_type == 7:
            return struct.unpack(">d", self.raw)[0]
        elif serial_type == 8:
            return 0
        elif serial_type == 9:
            return 1
        elif serial_type in (10, 11):
            return None

        return self.raw


@dataclass
class Record:
    fields: List[Field] = field(default_factory=list)
    row_id: int = None

    def __len__(self) -> int:
        return len(self.fields)

    def __getitem__(self, index: int) -> Field:
        return self.fields[index]

    def values(self) -> List[Any]:
        return [f.value() for f in self.fields]


def decode_record(payload: bytes, row_id: int = None) -> Record:
    """
    Splits a record payload into its fields.

    The header starts with its own size as a varint (that varint included), followed
    by one serial type varint per column. The column contents follow the header
    back to back, in the same order.
    """
    if not payload:
        return Record(row_id=row_id)

    try:
        header_size, i = decode_varint(payload)
    except TruncatedInput as e:
        raise MalformedRecord(f"Unreadable record header size: {e}") from e

    if header_size < i or header_size > len(payload):
        raise MalformedRecord(
            f"Record header size {header_size} does not fit a {len(payload)} byte payload"
        )

    # read all the other bytes past the bytes used to declare the header size
    serial_types = []
    while i < header_size:
        try:
            serial_type, bytes_used = decode_varint(payload[:header_size], i)
        except TruncatedInput as e:
            raise MalformedRecord(f"Serial type crosses the record header: {e}") from e
        i += bytes_used
        serial_types.append(serial_type)

    fields = []
    offset = header_size
    for serial_type in serial_types:
        size = content_length(serial_type).size
        if offset + size > len(payload):
            raise MalformedRecord(
                f"Field of serial type {serial_type} ends at {offset + size}, past the {len(payload)} byte payload"
            )
        fields.append(Field(serial_type, bytes(payload[offset : offset + size])))
        offset += size

    return Record(fields=fields, row_id=row_id)
