"""This module contains the codec of the deposit transaction envelope (type
0x7e), the L1-originated transactions applied on L2.

Wire format: 0x7e || rlp([source_hash, from, to, mint, value, gas_limit,
is_creation, data])
"""
import logging
from collections import namedtuple
from typing import List

import rlp
from eth_hash.auto import keccak
from eth_utils import from_wei, to_normalized_address
from rlp.exceptions import DecodingError, DeserializationError, SerializationError
from rlp.sedes import Binary, big_endian_int, binary, boolean

from arbpatch.exceptions import (
    FieldCountMismatch,
    FieldTypeMismatch,
    MalformedEnvelope,
    ValidationError,
)
from arbpatch.util import TT64

log = logging.getLogger(__name__)

DEPOSIT_TX_TYPE = 0x7E
DEPOSIT_TX_PREFIX = bytes([DEPOSIT_TX_TYPE])

ADDRESS_SIZE = 20
HASH_SIZE = 32

# Advisory thresholds, exceeding them does not invalidate a transaction.
LARGE_GAS_LIMIT = 1000000
LARGE_DATA_SIZE = 500

address = Binary.fixed_length(ADDRESS_SIZE)
hash32 = Binary.fixed_length(HASH_SIZE)
optional_address = Binary(min_length=0, max_length=ADDRESS_SIZE)


# Wire order. rlp.Serializable consumes the class level `fields`.
DEPOSIT_FIELDS = [
    ("source_hash", hash32),
    ("sender", address),
    ("to", optional_address),
    ("mint", big_endian_int),
    ("value", big_endian_int),
    ("gas_limit", big_endian_int),
    ("is_creation", boolean),
    ("data", binary),
]
DEPOSIT_FIELD_COUNT = len(DEPOSIT_FIELDS)


class DepositTransaction(rlp.Serializable):
    """A deposit transaction. Field order is the wire order."""

    fields = DEPOSIT_FIELDS

    def __repr__(self):
        return "<DepositTransaction {} -> {}>".format(
            _format_address(self.sender),
            _format_address(self.to) if self.to else "(creation)",
        )


ExecutionIntent = namedtuple(
    "ExecutionIntent", ["sender", "to", "value", "mint", "gas", "data"]
)


def _format_address(value: bytes) -> str:
    return to_normalized_address(value)


def _check_widths(tx: DepositTransaction) -> None:
    """Width rules the rlp sedes cannot express."""
    if len(tx.to) not in (0, ADDRESS_SIZE):
        raise FieldTypeMismatch(
            "to must be empty or {} bytes, got {}".format(ADDRESS_SIZE, len(tx.to))
        )
    if tx.gas_limit >= TT64:
        raise FieldTypeMismatch(
            "gas limit {} does not fit 64 bits".format(tx.gas_limit)
        )


def is_deposit_transaction(raw: bytes) -> bool:
    """Check the envelope marker only, the payload is not inspected."""
    return len(raw) > 0 and raw[0] == DEPOSIT_TX_TYPE


def encode(tx: DepositTransaction) -> bytes:
    """

    :param tx:
    :return: the type byte followed by the RLP payload
    :raises FieldTypeMismatch: if a field does not fit its wire type
    """
    _check_widths(tx)
    try:
        payload = rlp.encode(tx)
    except SerializationError as e:
        raise FieldTypeMismatch("cannot encode deposit transaction: {}".format(e))
    return DEPOSIT_TX_PREFIX + payload


def decode(raw: bytes) -> DepositTransaction:
    """

    :param raw: the complete envelope
    :return:
    :raises MalformedEnvelope:
    :raises FieldCountMismatch:
    :raises FieldTypeMismatch:
    """
    raw = bytes(raw)
    if not raw:
        raise MalformedEnvelope("empty transaction")
    if not is_deposit_transaction(raw):
        raise MalformedEnvelope(
            "expected type byte 0x{:02x}, got 0x{:02x}".format(DEPOSIT_TX_TYPE, raw[0])
        )
    try:
        items = rlp.decode(raw[1:])
    except DecodingError as e:
        raise MalformedEnvelope("invalid RLP payload: {}".format(e))
    if not isinstance(items, list):
        raise MalformedEnvelope("RLP payload is not a list")
    if len(items) != DEPOSIT_FIELD_COUNT:
        raise FieldCountMismatch(
            "expected {} fields, got {}".format(DEPOSIT_FIELD_COUNT, len(items))
        )
    try:
        tx = DepositTransaction.deserialize(items)
    except DeserializationError as e:
        raise FieldTypeMismatch("invalid field: {}".format(e))
    _check_widths(tx)
    log.debug("Decoded %r", tx)
    return tx


def validate(tx: DepositTransaction) -> None:
    """
    Check the semantic rules of a deposit transaction
    :param tx:
    :raises ValidationError: listing every violated rule
    """
    errors = []
    if not isinstance(tx.sender, bytes) or len(tx.sender) != ADDRESS_SIZE:
        errors.append("Invalid 'from' address")
    if tx.is_creation and tx.to:
        errors.append("Contract creation must not have a 'to' address")
    if not tx.is_creation and not tx.to:
        errors.append("Missing 'to' address for a non-creation transaction")
    if tx.gas_limit <= 0:
        errors.append("Gas limit must be positive")
    if errors:
        raise ValidationError(errors)


def parse(raw: bytes) -> DepositTransaction:
    """Decode and validate in one step."""
    tx = decode(raw)
    validate(tx)
    return tx


def transaction_hash(tx: DepositTransaction) -> str:
    """keccak256 of the complete envelope."""
    return "0x" + keccak(encode(tx)).hex()


def to_execution_intent(tx: DepositTransaction) -> ExecutionIntent:
    """
    The call a host executes for a deposit
    :param tx: a validated transaction
    :return:
    """
    return ExecutionIntent(
        sender=_format_address(tx.sender),
        to=None if tx.is_creation else _format_address(tx.to),
        value=tx.value,
        mint=tx.mint,
        gas=tx.gas_limit,
        data=tx.data,
    )


def warnings(tx: DepositTransaction) -> List[str]:
    """Non-fatal advisories for a transaction."""
    advisories = []
    if tx.gas_limit > LARGE_GAS_LIMIT:
        advisories.append(
            "High gas limit: {} > {}".format(tx.gas_limit, LARGE_GAS_LIMIT)
        )
    if len(tx.data) > LARGE_DATA_SIZE:
        advisories.append(
            "Large calldata: {} bytes > {}".format(len(tx.data), LARGE_DATA_SIZE)
        )
    return advisories


def summarize(tx: DepositTransaction) -> str:
    """Human readable multi-line summary."""
    lines = [
        "Deposit Transaction (0x7e):",
        "  Source Hash: 0x{}".format(tx.source_hash.hex()),
        "  From (L1): {}".format(_format_address(tx.sender)),
        "  To (L2): {}".format(
            _format_address(tx.to) if tx.to else "(contract creation)"
        ),
        "  Mint: {} ETH".format(from_wei(tx.mint, "ether")),
        "  Value: {} ETH".format(from_wei(tx.value, "ether")),
        "  Gas Limit: {:,}".format(tx.gas_limit),
        "  Is Creation: {}".format(tx.is_creation),
        "  Data Length: {} bytes".format(len(tx.data)),
    ]
    return "\n".join(lines)
