import json
import logging
import os

from typing import Dict, Optional
from urllib.parse import urlparse

from arbpatch.exceptions import ArbPatchBaseException, CriticalError
from arbpatch.ethereum.interface.rpc.client import DEFAULT_TIMEOUT
from arbpatch.gas.pricing import (
    DEFAULT_L1_BASE_FEE,
    DEFAULT_L1_BLOB_BASE_FEE,
    GasPriceComponents,
    PriceTuple,
    to_price_tuple,
)
from arbpatch.precompiles.arb_gas_info import (
    DEFAULT_AMORTIZED_COST_CAP_BIPS,
    DEFAULT_MINIMUM_GAS_PRICE,
)
from arbpatch.precompiles.arb_sys import DEFAULT_ARBOS_VERSION
from arbpatch.util import to_uint256

log = logging.getLogger(__name__)

CONFIG_FILE_NAME = "precompiles.config.json"
CONFIG_PATH_ENV = "ARB_PRECOMPILES_CONFIG"
LIVE_RPC_ENV = "ARB_LIVE_RPC"

RUNTIME_STYLUS = "stylus"
RUNTIME_NITRO = "nitro"
RUNTIMES = (RUNTIME_STYLUS, RUNTIME_NITRO)
RUNTIME_RPC_ENV = {RUNTIME_STYLUS: "STYLUS_RPC", RUNTIME_NITRO: "NITRO_RPC"}
RUNTIME_RPC_KEY = {RUNTIME_STYLUS: "stylusRpc", RUNTIME_NITRO: "nitroRpc"}


class PatchConfig:
    """
    The arbpatch configuration class
    Responsible for merging the built-in defaults, the JSON configuration file
    and the environment
    """

    def __init__(self, values: Optional[Dict] = None, config_path: str = None):
        """

        :param values: an already loaded configuration object, the
            configuration file is not read when given
        :param config_path: overrides the configuration file location
        """
        self.config_path = config_path or self._init_config_path()
        self.enabled = True
        self.chain_id = None  # type: Optional[int]
        self.arbos_version = DEFAULT_ARBOS_VERSION
        self.l1_base_fee = DEFAULT_L1_BASE_FEE
        self.l1_blob_base_fee = DEFAULT_L1_BLOB_BASE_FEE
        self.gas_price_components = GasPriceComponents()
        self.minimum_gas_price = DEFAULT_MINIMUM_GAS_PRICE
        self.amortized_cost_cap_bips = DEFAULT_AMORTIZED_COST_CAP_BIPS
        self.prices_in_wei = None  # type: Optional[PriceTuple]
        self.runtime = RUNTIME_STYLUS
        self.live_rpc = None  # type: Optional[str]
        self.cache_ttl = 0.0
        self.rpc_timeout = DEFAULT_TIMEOUT

        if values is None:
            values = self._read_config_file(self.config_path)
        self._init_config(values)

    @staticmethod
    def _init_config_path() -> str:
        """
        Locates the configuration file
        :return: The configuration file's path
        """
        try:
            return os.environ[CONFIG_PATH_ENV]
        except KeyError:
            return os.path.join(os.getcwd(), CONFIG_FILE_NAME)

    @staticmethod
    def _read_config_file(config_path: str) -> Dict:
        """
        Reads the JSON configuration file. A missing file means defaults, an
        unreadable one is reported and ignored.
        :param config_path: The configuration file's path
        :return: The configuration object
        """
        if not os.path.exists(config_path):
            log.debug("No config file found at %s, using defaults", config_path)
            return {}
        try:
            with open(config_path, encoding="utf-8") as fp:
                values = json.load(fp)
        except (OSError, ValueError) as e:
            log.warning("Ignoring unreadable config file %s: %s", config_path, e)
            return {}
        if not isinstance(values, dict):
            log.warning("Ignoring config file %s: not a JSON object", config_path)
            return {}
        log.info("Loaded configuration from %s", config_path)
        return values

    def _init_config(self, values: Dict) -> None:
        """Apply a configuration object on top of the defaults.

        :param values: The configuration object
        """
        self.enabled = values.get("enabled", True)
        if not isinstance(self.enabled, bool):
            raise CriticalError(
                "Invalid configuration value: enabled must be true or false, "
                "got {!r}".format(self.enabled)
            )
        try:
            if values.get("chainId") is not None:
                self.chain_id = to_uint256(values["chainId"])
            self.arbos_version = to_uint256(
                values.get("arbOSVersion", DEFAULT_ARBOS_VERSION)
            )
            self.l1_base_fee = to_uint256(values.get("l1BaseFee", DEFAULT_L1_BASE_FEE))
            self.l1_blob_base_fee = to_uint256(
                values.get("l1BlobBaseFee", DEFAULT_L1_BLOB_BASE_FEE)
            )
            self.gas_price_components = GasPriceComponents.from_dict(
                values.get("gasPriceComponents")
            )
            self.minimum_gas_price = to_uint256(
                values.get("minimumGasPrice", DEFAULT_MINIMUM_GAS_PRICE)
            )
            self.amortized_cost_cap_bips = to_uint256(
                values.get("amortizedCostCapBips", DEFAULT_AMORTIZED_COST_CAP_BIPS)
            )
            self.cache_ttl = float(values.get("cacheTtl", 0))
            self.rpc_timeout = float(values.get("rpcTimeout", DEFAULT_TIMEOUT))
        except (TypeError, ValueError) as e:
            raise CriticalError("Invalid configuration value: {}".format(e))

        if self.cache_ttl < 0 or self.rpc_timeout <= 0:
            raise CriticalError("cacheTtl must be >= 0 and rpcTimeout > 0")

        self.runtime = values.get("runtime", RUNTIME_STYLUS)
        if self.runtime not in RUNTIMES:
            raise CriticalError(
                "Invalid runtime '{}', use one of {}".format(
                    self.runtime, ", ".join(RUNTIMES)
                )
            )

        gas = values.get("gas") or {}
        self.prices_in_wei = self._init_prices(gas.get("pricesInWei"))
        self.live_rpc = self._init_live_rpc(values)

    @staticmethod
    def _init_prices(prices) -> Optional[PriceTuple]:
        """Only a complete six element array is adopted."""
        if prices is None:
            return None
        if not isinstance(prices, list):
            log.warning("Ignoring gas.pricesInWei: not an array")
            return None
        try:
            return to_price_tuple(prices)
        except ArbPatchBaseException as e:
            log.warning("Ignoring gas.pricesInWei: %s", e)
            return None

    def _init_live_rpc(self, values: Dict) -> Optional[str]:
        """The environment wins over the file, the runtime specific keys are
        consulted when no generic RPC is set."""
        return (
            os.getenv(LIVE_RPC_ENV)
            or values.get("liveRpc")
            or os.getenv(RUNTIME_RPC_ENV[self.runtime])
            or values.get(RUNTIME_RPC_KEY[self.runtime])
            or None
        )

    def set_api_rpc(self, rpc: str = None) -> None:
        """
        Sets the RPC endpoint used for live network reads. Clients are built
        per fetch by the resolver.
        :param rpc: an http(s) URL, defaults to the configured live RPC
        """
        rpc = rpc or self.live_rpc
        if not rpc:
            log.info("No live RPC configured, network access is disabled")
            return

        parsed = urlparse(rpc)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise CriticalError(
                "Invalid RPC argument '{}', use an http(s)://HOST[:PORT] URL".format(
                    rpc
                )
            )
        log.info("Using RPC settings: %s" % rpc)
        self.live_rpc = rpc
