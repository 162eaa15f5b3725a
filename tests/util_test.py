import pytest

from arbpatch.util import (
    TT160,
    TT256,
    add_mod_address,
    address_to_int,
    count_byte_weights,
    decode_words,
    encode_address_word,
    encode_uint256,
    encode_words,
    extract32,
    int_to_address,
    safe_decode,
    to_uint256,
)


@pytest.mark.parametrize(
    "value, expected",
    (
        (5, 5),
        ("10", 10),
        (" 42 ", 42),
        ("0x10", 16),
        ("0X1f", 31),
        (b"\x01\x00", 256),
        (b"", 0),
        (TT256 - 1, TT256 - 1),
    ),
)
def test_to_uint256(value, expected):
    assert to_uint256(value) == expected


@pytest.mark.parametrize(
    "value", (-1, TT256, True, "abc", "0xzz", 1.5, None, b"\x01" * 33)
)
def test_to_uint256_rejects(value):
    with pytest.raises(ValueError):
        to_uint256(value)


def test_encode_uint256():
    assert encode_uint256(1) == b"\x00" * 31 + b"\x01"
    assert encode_uint256(0) == b"\x00" * 32
    with pytest.raises(ValueError):
        encode_uint256(-1)
    with pytest.raises(ValueError):
        encode_uint256(TT256)


def test_encode_words_concatenates_words():
    data = encode_words([1, 2, 3])
    assert len(data) == 96
    assert data[31] == 1 and data[63] == 2 and data[95] == 3


def test_encode_address_word():
    assert encode_address_word(0x64) == b"\x00" * 31 + b"\x64"
    assert encode_address_word(b"\xff" * 20) == b"\x00" * 12 + b"\xff" * 20
    with pytest.raises(ValueError):
        encode_address_word(b"\xff" * 19)


def test_extract32_pads_past_the_end():
    assert extract32(b"\x01", 0) == 2 ** 248
    assert extract32(b"\x01", 1) == 0
    assert extract32(b"\x00" * 31 + b"\x07", 0) == 7


def test_decode_words():
    assert decode_words(encode_words([4, 5]), 2) == [4, 5]
    with pytest.raises(ValueError):
        decode_words(b"\x00" * 63, 2)


@pytest.mark.parametrize(
    "data, expected",
    ((b"", (0, 0)), (b"\x00\x01\x00\x02", (2, 2)), (b"\xff" * 5, (0, 5))),
)
def test_count_byte_weights(data, expected):
    assert count_byte_weights(data) == expected


def test_address_conversions():
    address = "0x00000000000000000000000000000000000000aa"
    assert address_to_int(address) == 0xAA
    assert address_to_int(b"\x00" * 19 + b"\xaa") == 0xAA
    assert int_to_address(0xAA) == address
    with pytest.raises(ValueError):
        int_to_address(TT160)
    with pytest.raises(ValueError):
        address_to_int("0x1234")


def test_add_mod_address_wraps():
    assert add_mod_address(TT160 - 1, 1) == 0
    assert add_mod_address(0, -1) == TT160 - 1


def test_safe_decode():
    assert safe_decode("0x0102") == b"\x01\x02"
    assert safe_decode("0102") == b"\x01\x02"
