import pytest

from leafscan.errors import TruncatedInput, UnreadableFile
from leafscan.reading import decode_varint, load_database, page_start
from tests.utils import encode_varint


def test_single_byte_varint():
    assert decode_varint(bytes([0x7F])) == (127, 1)


def test_two_byte_varint():
    assert decode_varint(bytes([0x81, 0x01])) == (129, 2)


def test_nine_byte_varint_uses_every_bit_of_the_last_byte():
    value, consumed = decode_varint(bytes([0xFF] * 8 + [0x01]))

    assert consumed == 9
    assert value == ((2**56 - 1) << 8) | 0x01


def test_nine_byte_varint_stops_even_when_last_byte_has_high_bit():
    value, consumed = decode_varint(bytes([0xFF] * 9 + [0x42]))

    assert consumed == 9
    assert value == 2**64 - 1


def test_varint_at_offset_reports_only_its_own_bytes():
    data = bytes([0x00, 0x81, 0x00, 0x05])

    assert decode_varint(data, 1) == (128, 2)
    assert decode_varint(data, 3) == (5, 1)


@pytest.mark.parametrize("value", [0, 1, 127, 128, 240, 2287, 67823, 2**32, 2**56 + 3])
def test_varint_decodes_what_the_format_encodes(value):
    encoded = encode_varint(value)

    assert decode_varint(encoded) == (value, len(encoded))


@pytest.mark.parametrize("data", [b"", bytes([0x81]), bytes([0xFF] * 8)])
def test_truncated_varint_raises(data):
    with pytest.raises(TruncatedInput):
        decode_varint(data)


def test_varint_offset_past_the_end_raises():
    with pytest.raises(TruncatedInput):
        decode_varint(bytes([0x01]), 1)


def test_page_start():
    assert page_start(0, 4096) == 0
    assert page_start(3, 4096) == 12288


def test_load_database_reads_whole_file(tmp_path):
    path = tmp_path / "Login Data"
    path.write_bytes(b"SQLite format 3\x00" + bytes(200))

    assert load_database(str(path)) == b"SQLite format 3\x00" + bytes(200)


def test_load_database_missing_file_is_fatal(tmp_path):
    with pytest.raises(UnreadableFile):
        load_database(str(tmp_path / "missing"))
