"""This module contains the precompile registry and the types shared by all
precompile handlers."""
import logging
from abc import abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

import eth_abi
from eth_abi.exceptions import DecodingError
from eth_utils import to_normalized_address

from arbpatch.exceptions import (
    DuplicatePrecompileError,
    InvalidArgument,
    InvalidCalldata,
    PrecompileError,
    UnknownPrecompile,
    UnknownSelector,
)
from arbpatch.precompiles.selectors import SELECTOR_SIZE, FunctionTable

log = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "00" * 20


def decode_arguments(types: List[str], calldata: bytes) -> Tuple:
    """ABI-decode the arguments following the selector.

    :param types: ABI type strings
    :param calldata: full calldata including the selector
    :return:
    :raises InvalidArgument: on malformed argument data
    """
    try:
        return eth_abi.decode(types, calldata[SELECTOR_SIZE:])
    except (DecodingError, OverflowError, ValueError) as e:
        raise InvalidArgument(
            "cannot decode ({}) arguments: {}".format(",".join(types), e)
        )


class ExecutionContext:
    """Per-call environment supplied by the host. Immutable."""

    __slots__ = (
        "block_number",
        "chain_id",
        "gas_price",
        "caller",
        "call_stack",
        "call_value",
        "timestamp",
        "tx_hash",
        "tx_data",
    )

    def __init__(
        self,
        block_number: int = 0,
        chain_id: int = 0,
        gas_price: int = 0,
        caller: str = ZERO_ADDRESS,
        call_stack: Sequence[str] = (),
        call_value: int = 0,
        timestamp: Optional[int] = None,
        tx_hash: Optional[str] = None,
        tx_data: Optional[bytes] = None,
    ) -> None:
        """

        :param block_number: current L2 block number
        :param chain_id: chain id the host runs with
        :param gas_price: gas price of the enclosing transaction in wei
        :param caller: address of the account calling the precompile
        :param call_stack: addresses of the enclosing frames, outermost first
        :param call_value: wei sent along with the call
        :param timestamp: block timestamp, wall clock when omitted
        :param tx_hash: hash of the enclosing transaction
        :param tx_data: calldata of the enclosing transaction
        """
        object.__setattr__(self, "block_number", block_number)
        object.__setattr__(self, "chain_id", chain_id)
        object.__setattr__(self, "gas_price", gas_price)
        object.__setattr__(self, "caller", to_normalized_address(caller))
        object.__setattr__(
            self, "call_stack", tuple(to_normalized_address(a) for a in call_stack)
        )
        object.__setattr__(self, "call_value", call_value)
        object.__setattr__(self, "timestamp", timestamp)
        object.__setattr__(self, "tx_hash", tx_hash)
        object.__setattr__(
            self, "tx_data", bytes(tx_data) if tx_data is not None else None
        )

    def __setattr__(self, name, value):
        raise AttributeError("ExecutionContext is immutable")

    def __repr__(self):
        return "<ExecutionContext block={} chain={} caller={}>".format(
            self.block_number, self.chain_id, self.caller
        )


class PrecompileResult:
    """Outcome of a precompile call as seen by the host."""

    def __init__(
        self,
        success: bool,
        data: bytes = b"",
        gas_used: int = 0,
        error: Optional[PrecompileError] = None,
    ) -> None:
        self.success = success
        self.data = data
        self.gas_used = gas_used
        self.error = error

    @classmethod
    def failure(cls, error: PrecompileError) -> "PrecompileResult":
        return cls(False, b"", 0, error)

    def __repr__(self):
        if self.success:
            return "<PrecompileResult ok 0x{} gas={}>".format(
                self.data.hex(), self.gas_used
            )
        return "<PrecompileResult failed {}: {}>".format(
            type(self.error).__name__, self.error
        )


class PrecompileHandler:
    """Base class of the native logic answering calls to one address.

    Subclasses declare their FunctionTable and implement a method per table
    member, listed in `handlers()`.
    """

    address = ZERO_ADDRESS
    name = ""
    tags = []  # type: List[str]
    functions = FunctionTable

    @abstractmethod
    def handlers(self) -> Dict[FunctionTable, Tuple]:
        """Map every function of the table to (method, nominal gas cost).

        Methods are called with (calldata, context) and return the encoded
        result.
        """
        pass

    def handle_call(
        self, calldata: bytes, context: ExecutionContext
    ) -> Tuple[bytes, int]:
        """Decode the selector and run the matching function.

        :param calldata:
        :param context:
        :return: (return data, gas used)
        :raises PrecompileError:
        """
        calldata = bytes(calldata)
        if len(calldata) < SELECTOR_SIZE:
            raise InvalidCalldata(
                "calldata too short: {} bytes".format(len(calldata))
            )
        function = self.functions.from_calldata(calldata)
        if function is self.functions["UNMATCHED"]:
            raise UnknownSelector(
                "unknown function selector 0x{} for {}".format(
                    calldata[:SELECTOR_SIZE].hex(), self.name
                )
            )
        method, gas_used = self.handlers()[function]
        log.debug("%s.%s called by %s", self.name, function.signature, context.caller)
        return method(calldata, context), gas_used


class PrecompileRegistry:
    """Maps fixed addresses to precompile handlers."""

    def __init__(self) -> None:
        self._handlers = {}  # type: Dict[str, PrecompileHandler]

    @staticmethod
    def _normalize(address) -> Optional[str]:
        try:
            return to_normalized_address(address)
        except (TypeError, ValueError):
            return None

    def register(self, handler: PrecompileHandler) -> None:
        """

        :param handler:
        :raises DuplicatePrecompileError: if the address is already taken
        """
        address = self._normalize(handler.address)
        if address is None:
            raise ValueError("invalid precompile address {}".format(handler.address))
        if address in self._handlers:
            raise DuplicatePrecompileError(
                "Handler already registered for address {}".format(address)
            )
        self._handlers[address] = handler
        log.info("Registered %s at %s", handler.name, address)

    def get_handler(self, address) -> Optional[PrecompileHandler]:
        address = self._normalize(address)
        if address is None:
            return None
        return self._handlers.get(address)

    def has_handler(self, address) -> bool:
        return self.get_handler(address) is not None

    def list_handlers(self) -> List[PrecompileHandler]:
        return list(self._handlers.values())

    def dispatch(
        self, address, calldata: bytes, context: ExecutionContext
    ) -> PrecompileResult:
        """Run a call against the handler registered at address.

        Dispatch-time errors are returned as failed results and never raised.

        :param address:
        :param calldata:
        :param context:
        :return:
        """
        handler = self.get_handler(address)
        if handler is None:
            log.debug("No handler registered for address %s", address)
            return PrecompileResult.failure(
                UnknownPrecompile(
                    "No handler registered for address {}".format(address)
                )
            )
        try:
            data, gas_used = handler.handle_call(calldata, context)
        except PrecompileError as e:
            log.debug("%s call failed: %s", handler.name, e)
            return PrecompileResult.failure(e)
        return PrecompileResult(True, data, gas_used)

    def __contains__(self, address) -> bool:
        return self.has_handler(address)

    def __len__(self) -> int:
        return len(self._handlers)
