from typing import List, Tuple

PAGE_SIZE = 512

Field = Tuple[int, bytes]


def encode_varint(value: int) -> bytes:
    if value > 0x00FF_FFFF_FFFF_FFFF:
        last = value & 0xFF
        value >>= 8
        groups = [(value >> (7 * i)) & 0x7F for i in reversed(range(8))]
        return bytes(g | 0x80 for g in groups) + bytes([last])

    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append((value & 0x7F) | 0x80)
        value >>= 7
    return bytes(reversed(groups))


def text_field(value: str) -> Field:
    raw = value.encode("latin-1")
    return 13 + 2 * len(raw), raw


def blob_field(raw: bytes) -> Field:
    return 12 + 2 * len(raw), raw


def int_field(value: int) -> Field:
    return 1, value.to_bytes(1, "big", signed=True)


def build_payload(fields: List[Field]) -> bytes:
    serial_types = b"".join(encode_varint(serial_type) for serial_type, _ in fields)
    # a header size below 128 takes a single varint byte
    header = encode_varint(len(serial_types) + 1) + serial_types
    return header + b"".join(raw for _, raw in fields)


def build_cell(payload: bytes, row_id: int = 1) -> bytes:
    return encode_varint(len(payload)) + encode_varint(row_id) + payload


def build_leaf_page(cells: List[bytes], page_size: int = PAGE_SIZE, page_type: int = 0x0D) -> bytes:
    """Lays cells out from the end of the page backwards, like the format does."""
    page = bytearray(page_size)
    page[0] = page_type
    page[3:5] = len(cells).to_bytes(2, "big")

    content_start = page_size
    for i, cell in enumerate(cells):
        content_start -= len(cell)
        page[content_start : content_start + len(cell)] = cell
        page[8 + 2 * i : 10 + 2 * i] = content_start.to_bytes(2, "big")
    page[5:7] = (content_start % 65536).to_bytes(2, "big")

    return bytes(page)


def build_header(page_size: int = PAGE_SIZE, page_count: int = 0, reserved_space: int = 0) -> bytes:
    header = bytearray(100)
    header[0:16] = b"SQLite format 3\x00"
    header[16:18] = page_size.to_bytes(2, "big")
    header[20] = reserved_space
    header[28:32] = page_count.to_bytes(4, "big")
    return bytes(header)


def build_database(pages: List[bytes], page_size: int = PAGE_SIZE, reserved_space: int = 0) -> bytes:
    """
    Prepends the schema page and a filler page to the given pages, so the given
    pages land at index 2 onwards.
    """
    first_page = bytearray(page_size)
    header = build_header(page_size, len(pages) + 2, reserved_space)
    first_page[: len(header)] = header
    first_page[100] = 0x0D
    filler_page = bytes([0x05]) + bytes(page_size - 1)
    return bytes(first_page) + filler_page + b"".join(pages)


def login_fields(url: str = "https", username: str = "user", secret: bytes = b"\x01\x02\x03\x04\x05\x06\x07\x08") -> List[Field]:
    """A six field row with field lengths [5, 5, 1, 4, 1, 8] by default."""
    return [
        text_field(url),
        text_field("https"),
        int_field(1),
        text_field(username),
        int_field(2),
        blob_field(secret),
    ]
