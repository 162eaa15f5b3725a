"""ArbSys precompile (0x64): chain identity, L2 to L1 messaging and address
aliasing."""
import logging

from eth_utils import to_normalized_address

from arbpatch.exceptions import InvalidArgument, InvalidCalldata
from arbpatch.messaging.l1_queue import L1MessageQueue
from arbpatch.precompiles.registry import (
    ExecutionContext,
    PrecompileHandler,
    decode_arguments,
)
from arbpatch.precompiles.selectors import SELECTOR_SIZE, ArbSysFunction
from arbpatch.util import (
    WORD_SIZE,
    add_mod_address,
    address_to_int,
    encode_address_word,
    encode_uint256,
    extract32,
    int_to_address,
)

log = logging.getLogger(__name__)

ARBSYS_ADDRESS = "0x0000000000000000000000000000000000000064"
ALIASING_CONSTANT = 0x1111000000000000000000000000000000001111

DEFAULT_CHAIN_ID = 42161  # Arbitrum One
DEFAULT_ARBOS_VERSION = 20

MOCK_BLOCK_HASH = b"\x42" * WORD_SIZE


def apply_l1_alias(l1_address) -> str:
    """Map an L1 contract address to its L2 alias, wrapping at 2**160.

    :param l1_address: hex string or 20 raw bytes
    :return: lower-case hex address
    """
    l2 = add_mod_address(address_to_int(l1_address), ALIASING_CONSTANT)
    return int_to_address(l2)


def undo_l1_alias(l2_address) -> str:
    """Inverse of apply_l1_alias."""
    l1 = add_mod_address(address_to_int(l2_address), -ALIASING_CONSTANT)
    return int_to_address(l1)


class ArbSysHandler(PrecompileHandler):
    """Answers ArbSys calls from configuration, the call context and an L1
    message queue."""

    address = ARBSYS_ADDRESS
    name = "ArbSys"
    tags = ["arbitrum", "precompile"]
    functions = ArbSysFunction

    def __init__(
        self,
        chain_id: int = DEFAULT_CHAIN_ID,
        arbos_version: int = DEFAULT_ARBOS_VERSION,
        message_queue: L1MessageQueue = None,
    ) -> None:
        self.chain_id = chain_id
        self.arbos_version = arbos_version
        if message_queue is None:
            message_queue = L1MessageQueue()
        self.message_queue = message_queue

    def handlers(self):
        return {
            ArbSysFunction.CHAIN_ID: (self._chain_id, 3),
            ArbSysFunction.BLOCK_NUMBER: (self._block_number, 3),
            ArbSysFunction.OS_VERSION: (self._os_version, 3),
            ArbSysFunction.SEND_TO_L1: (self._send_to_l1, 100),
            ArbSysFunction.MAP_L1_SENDER_TO_L2_ALIAS: (self._map_l1_sender, 5),
            ArbSysFunction.BLOCK_HASH: (self._block_hash, 10),
        }

    def _chain_id(self, calldata: bytes, context: ExecutionContext) -> bytes:
        return encode_uint256(self.chain_id)

    def _block_number(self, calldata: bytes, context: ExecutionContext) -> bytes:
        return encode_uint256(context.block_number)

    def _os_version(self, calldata: bytes, context: ExecutionContext) -> bytes:
        return encode_uint256(self.arbos_version)

    def _send_to_l1(self, calldata: bytes, context: ExecutionContext) -> bytes:
        destination, data = decode_arguments(["address", "bytes"], calldata)
        message = self.message_queue.append(
            sender=context.caller,
            to=to_normalized_address(destination),
            value=context.call_value,
            data=data,
            block_number=context.block_number,
            timestamp=context.timestamp,
            tx_hash=context.tx_hash,
        )
        log.info("L2 to L1 message %s sent to %s", message.id, message.to)
        return encode_uint256(message.numeric_id)

    def _map_l1_sender(self, calldata: bytes, context: ExecutionContext) -> bytes:
        (l1_address,) = decode_arguments(["address"], calldata)
        l2_address = apply_l1_alias(l1_address)
        return encode_address_word(bytes.fromhex(l2_address[2:]))

    def _block_hash(self, calldata: bytes, context: ExecutionContext) -> bytes:
        if len(calldata) < SELECTOR_SIZE + WORD_SIZE:
            raise InvalidCalldata("arbBlockHash expects a uint256 argument")
        requested = extract32(calldata, SELECTOR_SIZE)
        if requested >= context.block_number:
            raise InvalidArgument(
                "block {} is not older than the current block {}".format(
                    requested, context.block_number
                )
            )
        return MOCK_BLOCK_HASH
