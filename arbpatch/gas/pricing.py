"""This module implements the gas price model behind the ArbGasInfo
precompile.

Everything here is a pure function of its inputs: the price tuple layout, the
L1 calldata fee estimate and the conversions between tuple flavours.
"""
import logging
from collections import namedtuple
from typing import Dict, Iterable, Optional, Tuple

from arbpatch.exceptions import InvalidArgument, InvalidTupleLength
from arbpatch.util import TT256M1, ZERO_BYTE_COST, count_byte_weights, to_uint256

log = logging.getLogger(__name__)

GWEI = 10 ** 9

DEFAULT_L2_BASE_FEE = 1 * GWEI
DEFAULT_L1_CALLDATA_COST = 16
DEFAULT_L1_STORAGE_COST = 0
DEFAULT_CONGESTION_FEE = 0
DEFAULT_L1_BASE_FEE = 20 * GWEI
DEFAULT_L1_BLOB_BASE_FEE = 0

# Compression discount applied to raw L1 calldata units, as a fraction.
COMPRESSION_DISCOUNT_NUMERATOR = 9
COMPRESSION_DISCOUNT_DENOMINATOR = 10

# Wire order of getPricesInWei(). Consumers decode by position, so this
# order must never change.
PRICE_TUPLE_FIELDS = [
    "l2_base_fee",
    "l1_base_fee_estimate",
    "l1_calldata_cost",
    "l1_storage_cost",
    "congestion_fee",
    "aux",
]
PRICE_TUPLE_LENGTH = len(PRICE_TUPLE_FIELDS)

PriceTuple = namedtuple("PriceTuple", PRICE_TUPLE_FIELDS)

FALLBACK_PRICES_IN_WEI = PriceTuple(
    100000000, 1000000000, 2000000000000, 0, 0, 100000000
)


class GasPriceComponents:
    """The configurable gas price components of the L2."""

    def __init__(
        self,
        l2_base_fee=DEFAULT_L2_BASE_FEE,
        l1_calldata_cost=DEFAULT_L1_CALLDATA_COST,
        l1_storage_cost=DEFAULT_L1_STORAGE_COST,
        congestion_fee=DEFAULT_CONGESTION_FEE,
    ) -> None:
        self.l2_base_fee = to_uint256(l2_base_fee)
        self.l1_calldata_cost = to_uint256(l1_calldata_cost)
        self.l1_storage_cost = to_uint256(l1_storage_cost)
        self.congestion_fee = to_uint256(congestion_fee)

    @classmethod
    def from_dict(cls, values: Optional[Dict]) -> "GasPriceComponents":
        """Build components from a camelCase mapping, as found in the
        configuration file. Missing keys keep their defaults.

        :param values:
        :return:
        """
        values = values or {}
        return cls(
            l2_base_fee=values.get("l2BaseFee", DEFAULT_L2_BASE_FEE),
            l1_calldata_cost=values.get("l1CalldataCost", DEFAULT_L1_CALLDATA_COST),
            l1_storage_cost=values.get("l1StorageCost", DEFAULT_L1_STORAGE_COST),
            congestion_fee=values.get("congestionFee", DEFAULT_CONGESTION_FEE),
        )

    @property
    def as_dict(self) -> Dict[str, int]:
        return dict(
            l2_base_fee=self.l2_base_fee,
            l1_calldata_cost=self.l1_calldata_cost,
            l1_storage_cost=self.l1_storage_cost,
            congestion_fee=self.congestion_fee,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, GasPriceComponents):
            return NotImplemented
        return self.as_dict == other.as_dict

    def __repr__(self) -> str:
        return "GasPriceComponents({})".format(
            ", ".join("{}={}".format(k, v) for k, v in self.as_dict.items())
        )


def price_tuple_from_components(
    components: GasPriceComponents,
    l1_base_fee: int = DEFAULT_L1_BASE_FEE,
    aux: int = DEFAULT_L1_BLOB_BASE_FEE,
) -> PriceTuple:
    """Lay out configured components in getPricesInWei() order.

    :param components:
    :param l1_base_fee:
    :param aux: the L1 blob base fee estimate
    :return:
    """
    return PriceTuple(
        components.l2_base_fee,
        to_uint256(l1_base_fee),
        components.l1_calldata_cost,
        components.l1_storage_cost,
        components.congestion_fee,
        to_uint256(aux),
    )


def to_price_tuple(values: Iterable) -> PriceTuple:
    """Validate and coerce a sequence into a price tuple.

    :param values: six ints, decimal strings or hex strings
    :return:
    :raises InvalidTupleLength: unless exactly six values are given
    :raises InvalidArgument: if a value is not a uint256
    """
    values = list(values)
    if len(values) != PRICE_TUPLE_LENGTH:
        raise InvalidTupleLength(
            "price tuple must have {} elements, got {}".format(
                PRICE_TUPLE_LENGTH, len(values)
            )
        )
    try:
        return PriceTuple(*(to_uint256(v) for v in values))
    except ValueError as e:
        raise InvalidArgument("invalid price tuple element: {}".format(e))


def nitro_to_shim_tuple(values: Iterable) -> PriceTuple:
    """Reorder a tuple as returned by a Nitro node into shim order.

    Nitro answers [baseFee, l1BaseFee, l1Calldata, l2BaseFee, congestion,
    blobBaseFee] and has no storage component.

    :param values:
    :return:
    """
    nitro = to_price_tuple(values)
    (
        _base_fee,
        l1_base_fee_estimate,
        l1_calldata_cost,
        l2_base_fee,
        congestion_fee,
        blob_base_fee,
    ) = nitro
    return PriceTuple(
        l2_base_fee,
        l1_base_fee_estimate,
        l1_calldata_cost,
        0,
        congestion_fee,
        blob_base_fee,
    )


def compute_l1_units(calldata: bytes, l1_calldata_cost: int) -> Tuple[int, int]:
    """Weigh calldata in L1 gas units.

    :param calldata:
    :param l1_calldata_cost: cost of a non-zero byte
    :return: (raw units, units after the compression discount)
    """
    zero_bytes, non_zero_bytes = count_byte_weights(calldata)
    raw_units = zero_bytes * ZERO_BYTE_COST + non_zero_bytes * l1_calldata_cost
    discounted = (
        raw_units * COMPRESSION_DISCOUNT_NUMERATOR
    ) // COMPRESSION_DISCOUNT_DENOMINATOR
    return raw_units, discounted


def estimate_l1_fee(calldata: bytes, l1_calldata_cost: int, l1_base_fee: int) -> int:
    """Estimate the L1 fee in wei for posting calldata.

    Integer arithmetic only, so every host gets bit-identical results.

    :param calldata:
    :param l1_calldata_cost:
    :param l1_base_fee:
    :return:
    :raises InvalidArgument: if the fee does not fit 256 bits
    """
    _, discounted = compute_l1_units(calldata, l1_calldata_cost)
    fee = discounted * l1_base_fee
    if fee > TT256M1:
        raise InvalidArgument(
            "L1 fee estimate overflows uint256 ({} units at base fee {})".format(
                discounted, l1_base_fee
            )
        )
    return fee


def prices_in_arb_gas(prices: PriceTuple) -> Tuple[int, int, int]:
    """Express the calldata, storage and congestion prices in L2 gas units by
    dividing each by the L2 base fee (floor). A zero base fee yields zeros.

    :param prices:
    :return:
    """
    if prices.l2_base_fee == 0:
        return 0, 0, 0
    return (
        prices.l1_calldata_cost // prices.l2_base_fee,
        prices.l1_storage_cost // prices.l2_base_fee,
        prices.congestion_fee // prices.l2_base_fee,
    )
