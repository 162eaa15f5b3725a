"""This module contains various utility conversion functions and constants for
arbpatch."""
from typing import Iterable, List, Tuple, Union

import eth_abi
from eth_utils import big_endian_to_int, int_to_big_endian

TT64 = 2 ** 64
TT160 = 2 ** 160
TT256 = 2 ** 256
TT256M1 = 2 ** 256 - 1

WORD_SIZE = 32
ZERO_BYTE_COST = 4


def safe_decode(hex_encoded_string: str) -> bytes:
    """

    :param hex_encoded_string:
    :return:
    """
    if hex_encoded_string.startswith("0x"):
        return bytes.fromhex(hex_encoded_string[2:])
    else:
        return bytes.fromhex(hex_encoded_string)


def to_uint256(value: Union[int, str, bytes]) -> int:
    """Coerce an int, a decimal string, a 0x-prefixed hex string or big-endian
    bytes to an unsigned 256-bit integer.

    :param value:
    :return:
    :raises ValueError: if the value is negative, too large or unparsable
    """
    if isinstance(value, bool):
        raise ValueError("booleans are not uint256 values")
    if isinstance(value, (bytes, bytearray)):
        if len(value) > WORD_SIZE:
            raise ValueError("{} bytes do not fit a uint256".format(len(value)))
        return big_endian_to_int(bytes(value))
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x"):
            result = int(text, 16)
        else:
            result = int(text, 10)
    elif isinstance(value, int):
        result = value
    else:
        raise ValueError("cannot convert {!r} to uint256".format(value))

    if result < 0 or result > TT256M1:
        raise ValueError("{} is out of the uint256 range".format(result))
    return result


def encode_uint256(value: int) -> bytes:
    """Encode an integer as a 32 byte big-endian word.

    :param value:
    :return:
    """
    if value < 0 or value > TT256M1:
        raise ValueError("{} is out of the uint256 range".format(value))
    return int_to_big_endian(value).rjust(WORD_SIZE, b"\x00")


def encode_words(values: Iterable[int]) -> bytes:
    """ABI-encode a static sequence of uint256 values as concatenated words."""
    values = list(values)
    return eth_abi.encode(["uint256"] * len(values), values)


def encode_address_word(address: Union[int, bytes]) -> bytes:
    """Left-pad a 20 byte address to a full word."""
    if isinstance(address, int):
        address = address.to_bytes(20, byteorder="big")
    if len(address) != 20:
        raise ValueError("address must be 20 bytes, got {}".format(len(address)))
    return address.rjust(WORD_SIZE, b"\x00")


def extract32(data: bytes, i: int) -> int:
    """Read the word at offset i, zero-padding past the end of data.

    :param data:
    :param i:
    :return:
    """
    if i >= len(data):
        return 0
    o = bytearray(data[i : min(i + WORD_SIZE, len(data))])
    o.extend(bytearray(WORD_SIZE - len(o)))
    return big_endian_to_int(bytes(o))


def decode_words(data: bytes, count: int) -> List[int]:
    """Decode exactly count uint256 words.

    :param data:
    :param count:
    :return:
    :raises ValueError: if data is not exactly count words long
    """
    if len(data) != count * WORD_SIZE:
        raise ValueError(
            "expected {} bytes, got {}".format(count * WORD_SIZE, len(data))
        )
    return [extract32(data, i * WORD_SIZE) for i in range(count)]


def count_byte_weights(data: bytes) -> Tuple[int, int]:
    """Classify calldata bytes by weight.

    :param data:
    :return: (zero byte count, non-zero byte count)
    """
    zero_bytes = data.count(0)
    return zero_bytes, len(data) - zero_bytes


def address_to_int(address: Union[str, bytes]) -> int:
    """

    :param address: hex string or 20 raw bytes
    :return:
    """
    if isinstance(address, str):
        address = safe_decode(address)
    if len(address) != 20:
        raise ValueError("address must be 20 bytes, got {}".format(len(address)))
    return big_endian_to_int(address)


def int_to_address(value: int) -> str:
    """Format an integer below 2**160 as a lower-case 0x address."""
    if value < 0 or value >= TT160:
        raise ValueError("{} is out of the address range".format(value))
    return "0x" + value.to_bytes(20, byteorder="big").hex()


def add_mod_address(address: int, offset: int) -> int:
    """Modular address arithmetic, wrapping at 2**160."""
    return (address + offset) % TT160
