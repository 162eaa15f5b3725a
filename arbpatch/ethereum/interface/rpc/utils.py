"""This module contains various utility functions regarding the RPC data format
and validation."""
from .constants import BLOCK_TAGS


def hex_to_dec(x):
    """Convert hex to decimal.

    :param x:
    :return:
    """
    return int(x, 16)


def validate_block(block):
    """

    :param block:
    :return:
    """
    if isinstance(block, str):
        if block not in BLOCK_TAGS:
            raise ValueError("invalid block tag")
    if isinstance(block, int):
        block = hex(block)
    return block
