"""Function selector tables of the emulated precompiles.

The tables are the single source of truth for the wire selectors. The first
entries of each table are pinned values; functions outside the pinned set use
the keccak-256 selector of their signature.
"""
from enum import Enum

from eth_utils import function_signature_to_4byte_selector

SELECTOR_SIZE = 4


class FunctionTable(Enum):
    """Closed set of functions a precompile answers, plus UNMATCHED."""

    def __init__(self, selector: bytes, signature: str) -> None:
        self.selector = selector
        self.signature = signature

    @classmethod
    def from_calldata(cls, calldata: bytes) -> "FunctionTable":
        """Resolve the function addressed by the leading 4 bytes of calldata.

        :param calldata:
        :return: the matching member, or UNMATCHED
        """
        selector = bytes(calldata[:SELECTOR_SIZE])
        for member in cls:
            if member.selector == selector:
                return member
        return cls["UNMATCHED"]

    @property
    def selector_hex(self) -> str:
        return "0x" + self.selector.hex()


def _pinned(selector_hex: str, signature: str):
    return bytes.fromhex(selector_hex), signature


def _derived(signature: str):
    return function_signature_to_4byte_selector(signature), signature


class ArbSysFunction(FunctionTable):
    CHAIN_ID = _pinned("d127f54a", "arbChainID()")
    BLOCK_NUMBER = _pinned("a3b1b31d", "arbBlockNumber()")
    OS_VERSION = _pinned("051038f2", "arbOSVersion()")
    SEND_TO_L1 = _pinned("6e8c1d6f", "sendTxToL1(address,bytes)")
    MAP_L1_SENDER_TO_L2_ALIAS = _pinned(
        "a0c12269", "mapL1SenderContractAddressToL2Alias(address)"
    )
    BLOCK_HASH = _derived("arbBlockHash(uint256)")
    UNMATCHED = (b"", "")


class ArbGasInfoFunction(FunctionTable):
    GET_PRICES_IN_WEI = _pinned("41b247a8", "getPricesInWei()")
    GET_PRICES_IN_ARB_GAS = _pinned("02199f34", "getPricesInArbGas()")
    GET_CURRENT_TX_L1_GAS_FEES = _pinned("c6f7de0e", "getCurrentTxL1GasFees()")
    GET_L1_BASE_FEE_ESTIMATE = _pinned("f5d6ded7", "getL1BaseFeeEstimate()")
    GET_MINIMUM_GAS_PRICE = _derived("getMinimumGasPrice()")
    GET_GAS_ACCOUNTING_PARAMS = _derived("getGasAccountingParams()")
    GET_AMORTIZED_COST_CAP_BIPS = _derived("getAmortizedCostCapBips()")
    GET_L1_BLOB_BASE_FEE_ESTIMATE = _derived("getL1BlobBaseFeeEstimate()")
    SEED = _derived("__seed(uint256[6])")
    UNMATCHED = (b"", "")
