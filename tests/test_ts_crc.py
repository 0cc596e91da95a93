import pytest

from livecast.ts.crc import gen_crc32


def test_check_value():
    assert gen_crc32(b"123456789") == 0x0376E6E7


def test_empty_input_is_initial_value():
    assert gen_crc32(b"") == 0xFFFFFFFF


@pytest.mark.parametrize(
    "data",
    [
        b"\x00",
        b"123456789",
        bytes((0x00, 0xB0, 0x0D, 0x00, 0x01, 0xC1, 0x00, 0x00, 0x00, 0x01, 0xF0, 0x01)),
        bytes(range(256)),
    ],
)
def test_appending_crc_gives_zero_residue(data):
    crc = gen_crc32(data)
    assert gen_crc32(data + crc.to_bytes(4, "big")) == 0


def test_accepts_bytearray_and_result_fits_32_bits():
    data = bytearray(b"livecast")
    crc = gen_crc32(data)
    assert crc == gen_crc32(bytes(data))
    assert 0 <= crc <= 0xFFFFFFFF


def test_single_bit_change_changes_crc():
    assert gen_crc32(b"\x00\x00") != gen_crc32(b"\x00\x01")
    assert gen_crc32(b"\x00\x00") == gen_crc32(b"\x00\x00")