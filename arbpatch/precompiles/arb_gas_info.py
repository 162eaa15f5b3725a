"""ArbGasInfo precompile (0x6c): gas pricing and accounting queries."""
import logging
import threading
from typing import Iterable, Optional, Tuple

from arbpatch.gas.pricing import (
    DEFAULT_L1_BASE_FEE,
    DEFAULT_L1_BLOB_BASE_FEE,
    GasPriceComponents,
    PriceTuple,
    estimate_l1_fee,
    price_tuple_from_components,
    prices_in_arb_gas,
    to_price_tuple,
)
from arbpatch.precompiles.registry import (
    ExecutionContext,
    PrecompileHandler,
    decode_arguments,
)
from arbpatch.precompiles.selectors import ArbGasInfoFunction
from arbpatch.util import encode_uint256, encode_words, to_uint256

log = logging.getLogger(__name__)

ARBGASINFO_ADDRESS = "0x000000000000000000000000000000000000006c"

DEFAULT_MINIMUM_GAS_PRICE = 100000000  # 0.1 gwei
DEFAULT_SPEED_LIMIT_PER_SECOND = 7000000
DEFAULT_GAS_POOL_MAX = 32000000
DEFAULT_MAX_TX_GAS_LIMIT = 32000000
DEFAULT_AMORTIZED_COST_CAP_BIPS = 0


class ArbGasInfoHandler(PrecompileHandler):
    """Answers ArbGasInfo calls from a price tuple and configured constants.

    The handler has two fee modes. Until the first seed() the L1 fee of the
    current transaction is computed from its calldata. After a seed() the
    seeded L1 base fee estimate (tuple index 1) is returned verbatim, so tests
    driving the tuple get exactly the value they put in.
    """

    address = ARBGASINFO_ADDRESS
    name = "ArbGasInfo"
    tags = ["arbitrum", "gas", "pricing"]
    functions = ArbGasInfoFunction

    def __init__(
        self,
        components: Optional[GasPriceComponents] = None,
        l1_base_fee: int = DEFAULT_L1_BASE_FEE,
        l1_blob_base_fee: int = DEFAULT_L1_BLOB_BASE_FEE,
        minimum_gas_price: int = DEFAULT_MINIMUM_GAS_PRICE,
        speed_limit_per_second: int = DEFAULT_SPEED_LIMIT_PER_SECOND,
        gas_pool_max: int = DEFAULT_GAS_POOL_MAX,
        max_tx_gas_limit: int = DEFAULT_MAX_TX_GAS_LIMIT,
        amortized_cost_cap_bips: int = DEFAULT_AMORTIZED_COST_CAP_BIPS,
    ) -> None:
        self.components = components or GasPriceComponents()
        self.l1_base_fee = to_uint256(l1_base_fee)
        self.minimum_gas_price = to_uint256(minimum_gas_price)
        self.speed_limit_per_second = to_uint256(speed_limit_per_second)
        self.gas_pool_max = to_uint256(gas_pool_max)
        self.max_tx_gas_limit = to_uint256(max_tx_gas_limit)
        self.amortized_cost_cap_bips = to_uint256(amortized_cost_cap_bips)

        self._lock = threading.Lock()
        self._prices = price_tuple_from_components(
            self.components, self.l1_base_fee, l1_blob_base_fee
        )
        self._seeded = False

    @property
    def prices(self) -> PriceTuple:
        with self._lock:
            return self._prices

    @property
    def seeded(self) -> bool:
        with self._lock:
            return self._seeded

    def seed(self, values: Iterable) -> PriceTuple:
        """Atomically replace the whole price tuple and switch to the seeded
        fee mode.

        :param values: exactly six uint256 values in getPricesInWei() order
        :return: the new tuple
        :raises InvalidTupleLength: unless exactly six values are given
        :raises InvalidArgument: if a value is not a uint256
        """
        prices = to_price_tuple(values)
        with self._lock:
            self._prices = prices
            self._seeded = True
        log.info("Seeded getPricesInWei with %s", list(prices))
        return prices

    def current_tx_l1_fee(self, calldata: bytes) -> int:
        """The L1 fee estimate for a transaction carrying calldata."""
        with self._lock:
            prices, seeded = self._prices, self._seeded
        if seeded:
            return prices.l1_base_fee_estimate
        return estimate_l1_fee(
            calldata, self.components.l1_calldata_cost, self.l1_base_fee
        )

    def gas_accounting_params(self) -> Tuple[int, int, int]:
        """(speed limit per second, gas pool max, max tx gas limit)"""
        return (
            self.speed_limit_per_second,
            self.gas_pool_max,
            self.max_tx_gas_limit,
        )

    def handlers(self):
        functions = ArbGasInfoFunction
        return {
            functions.GET_PRICES_IN_WEI: (self._get_prices_in_wei, 10),
            functions.GET_PRICES_IN_ARB_GAS: (self._get_prices_in_arb_gas, 8),
            functions.GET_CURRENT_TX_L1_GAS_FEES: (self._get_tx_l1_fees, 8),
            functions.GET_L1_BASE_FEE_ESTIMATE: (self._get_l1_base_fee, 5),
            functions.GET_MINIMUM_GAS_PRICE: (self._get_minimum_gas_price, 3),
            functions.GET_GAS_ACCOUNTING_PARAMS: (self._get_accounting, 3),
            functions.GET_AMORTIZED_COST_CAP_BIPS: (self._get_cap_bips, 3),
            functions.GET_L1_BLOB_BASE_FEE_ESTIMATE: (self._get_blob_fee, 5),
            functions.SEED: (self._seed, 20),
        }

    def _get_prices_in_wei(
        self, calldata: bytes, context: ExecutionContext
    ) -> bytes:
        return encode_words(self.prices)

    def _get_prices_in_arb_gas(
        self, calldata: bytes, context: ExecutionContext
    ) -> bytes:
        return encode_words(prices_in_arb_gas(self.prices))

    def _get_tx_l1_fees(self, calldata: bytes, context: ExecutionContext) -> bytes:
        tx_data = context.tx_data if context.tx_data is not None else calldata
        return encode_uint256(self.current_tx_l1_fee(tx_data))

    def _get_l1_base_fee(self, calldata: bytes, context: ExecutionContext) -> bytes:
        return encode_uint256(self.prices.l1_base_fee_estimate)

    def _get_minimum_gas_price(
        self, calldata: bytes, context: ExecutionContext
    ) -> bytes:
        return encode_uint256(self.minimum_gas_price)

    def _get_accounting(self, calldata: bytes, context: ExecutionContext) -> bytes:
        return encode_words(self.gas_accounting_params())

    def _get_cap_bips(self, calldata: bytes, context: ExecutionContext) -> bytes:
        return encode_uint256(self.amortized_cost_cap_bips)

    def _get_blob_fee(self, calldata: bytes, context: ExecutionContext) -> bytes:
        return encode_uint256(self.prices.aux)

    def _seed(self, calldata: bytes, context: ExecutionContext) -> bytes:
        (values,) = decode_arguments(["uint256[6]"], calldata)
        self.seed(values)
        return b""
