import pytest

from lspkit.checksum import bytes_checksum, calculate_checksum, int_to_checksum


def test_empty_payload_sums_to_zero():
    assert bytes_checksum(b"") == 0


def test_all_zero_fields_give_all_ones():
    assert calculate_checksum(0, 0, 0, b"") == 0xFFFF


def test_words_are_little_endian():
    assert bytes_checksum(b"\x01\x02") == 0x0201


def test_odd_length_is_zero_padded():
    assert bytes_checksum(b"\x07\x08\x09") == bytes_checksum(b"\x07\x08\x09\x00")


def test_int_matches_byte_sum_when_no_overflow():
    value = 0x12345678
    assert int_to_checksum(value) == bytes_checksum(value.to_bytes(4, "little"))


def test_int_checksum_wraps_at_sixteen_bits():
    assert int_to_checksum(-1) == 0xFFFE


def test_int_checksum_only_sees_low_32_bits():
    assert int_to_checksum(1 << 32) == int_to_checksum(0)


@pytest.mark.parametrize(
    "fields",
    [
        (1, 2, 5, b"hello"),
        (7, 300, 3, b"abc"),
        (123456, 99999, 0, b""),
        (1, 1, 1000, bytes(range(256)) * 4),
    ],
)
def test_checksum_fits_in_sixteen_bits(fields):
    result = calculate_checksum(*fields)
    assert 0 <= result <= 0xFFFF


def test_checksum_pinned_value():
    assert calculate_checksum(3, 4, 2, b"hi") == 0x968E


def test_checksum_detects_flipped_byte():
    original = calculate_checksum(3, 4, 2, b"hi")
    corrupted = calculate_checksum(3, 4, 2, bytes([~ord("h") & 0xFF]) + b"i")
    assert original != corrupted
    assert original == calculate_checksum(3, 4, 2, bytearray(b"hi"))


def test_checksum_depends_on_header_fields():
    base = calculate_checksum(1, 1, 1, b"x")
    assert calculate_checksum(2, 1, 1, b"x") != base
    assert calculate_checksum(1, 2, 1, b"x") != base
    assert calculate_checksum(1, 1, 2, b"x") != base


def test_large_payload_sum_folds():
    payload = b"\xff" * 10000
    assert bytes_checksum(payload) == 0xFFFF * 5000
    assert 0 <= calculate_checksum(0, 0, len(payload), payload) <= 0xFFFF