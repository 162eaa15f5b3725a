"""This module resolves the gas price tuple and the chain id from an ordered
list of sources: the live network, the configuration file and the built-in
fallback."""
import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from arbpatch.config.patch_config import RUNTIME_NITRO, PatchConfig
from arbpatch.ethereum.interface.rpc.client import EthJsonRpc
from arbpatch.ethereum.interface.rpc.exceptions import EthJsonRpcError
from arbpatch.exceptions import ConfigFetchFailed, PrecompileError
from arbpatch.gas.pricing import (
    FALLBACK_PRICES_IN_WEI,
    PRICE_TUPLE_LENGTH,
    PriceTuple,
    nitro_to_shim_tuple,
    to_price_tuple,
)
from arbpatch.precompiles.arb_gas_info import ARBGASINFO_ADDRESS
from arbpatch.precompiles.arb_sys import DEFAULT_CHAIN_ID
from arbpatch.precompiles.selectors import ArbGasInfoFunction
from arbpatch.util import decode_words, safe_decode

log = logging.getLogger(__name__)

# Followers of an in-flight fetch wait this long past the RPC timeout.
FOLLOWER_GRACE_PERIOD = 1.0


class ConfigSource(Enum):
    LIVE_NETWORK = "live-network"
    LOCAL_FILE = "local-file"
    BUILT_IN_FALLBACK = "built-in-fallback"


class ConfigResolver:
    """Resolves configuration values, first successful source wins.

    Live reads are cached per RPC URL for `cacheTtl` seconds and concurrent
    resolutions of the same URL share a single request.
    """

    def __init__(
        self,
        config: PatchConfig,
        client_factory: Callable = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """

        :param config:
        :param client_factory: builds an RPC client from (url, timeout)
        :param clock: monotonic time source used for cache expiry
        """
        self.config = config
        self._client_factory = client_factory or EthJsonRpc
        self._clock = clock
        self._lock = threading.Lock()
        self._cache = {}  # type: Dict[str, Tuple[float, PriceTuple]]
        self._in_flight = {}  # type: Dict[str, Future]

    def resolve(self) -> Tuple[PriceTuple, ConfigSource]:
        """
        Resolve the price tuple
        :return: the tuple and where it came from
        """
        for step in (self._from_live_network, self._from_local_file):
            resolved = step()
            if resolved is not None:
                log.info("Resolved gas prices from %s", resolved[1].value)
                return resolved
        log.info("Using the built-in fallback gas prices")
        return FALLBACK_PRICES_IN_WEI, ConfigSource.BUILT_IN_FALLBACK

    def resolve_chain_id(self) -> Tuple[int, ConfigSource]:
        """
        Resolve the chain id with the same source priority as the prices
        :return: the chain id and where it came from
        """
        url = self.config.live_rpc
        if url:
            try:
                return self.fetch_chain_id(url), ConfigSource.LIVE_NETWORK
            except ConfigFetchFailed as e:
                log.warning("Chain id fetch from %s failed: %s", url, e)
        if self.config.chain_id is not None:
            return self.config.chain_id, ConfigSource.LOCAL_FILE
        return DEFAULT_CHAIN_ID, ConfigSource.BUILT_IN_FALLBACK

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def _from_live_network(self) -> Optional[Tuple[PriceTuple, ConfigSource]]:
        url = self.config.live_rpc
        if not url:
            return None
        try:
            prices = self._cached_fetch(url)
        except ConfigFetchFailed as e:
            log.warning("Live gas price fetch from %s failed: %s", url, e)
            return None
        return prices, ConfigSource.LIVE_NETWORK

    def _from_local_file(self) -> Optional[Tuple[PriceTuple, ConfigSource]]:
        if self.config.prices_in_wei is None:
            return None
        return self.config.prices_in_wei, ConfigSource.LOCAL_FILE

    def _cached_fetch(self, url: str) -> PriceTuple:
        """Serve from the cache, join a running fetch or lead a new one."""
        ttl = self.config.cache_ttl
        with self._lock:
            if ttl > 0 and url in self._cache:
                fetched_at, prices = self._cache[url]
                if self._clock() - fetched_at < ttl:
                    log.debug("Gas price cache hit for %s", url)
                    return prices
            future = self._in_flight.get(url)
            leader = future is None
            if leader:
                future = Future()
                self._in_flight[url] = future

        if not leader:
            log.debug("Joining in-flight gas price fetch for %s", url)
            try:
                return future.result(
                    timeout=self.config.rpc_timeout + FOLLOWER_GRACE_PERIOD
                )
            except FutureTimeoutError:
                raise ConfigFetchFailed(
                    "timed out waiting for the in-flight fetch of {}".format(url)
                )

        try:
            prices = self.fetch_prices(url)
        except Exception as e:
            with self._lock:
                del self._in_flight[url]
            future.set_exception(e)
            raise
        with self._lock:
            if ttl > 0:
                self._cache[url] = (self._clock(), prices)
            del self._in_flight[url]
        future.set_result(prices)
        return prices

    def fetch_prices(self, url: str) -> PriceTuple:
        """
        Read getPricesInWei() from a live node
        :param url:
        :return:
        :raises ConfigFetchFailed: on any transport or decoding failure
        """
        client = self._client_factory(url, self.config.rpc_timeout)
        calldata = ArbGasInfoFunction.GET_PRICES_IN_WEI.selector_hex
        try:
            result = client.eth_call(ARBGASINFO_ADDRESS, calldata)
        except EthJsonRpcError as e:
            raise ConfigFetchFailed("eth_call failed: {}".format(e))
        finally:
            client.close()

        try:
            values = decode_words(safe_decode(result), PRICE_TUPLE_LENGTH)
            if self.config.runtime == RUNTIME_NITRO:
                return nitro_to_shim_tuple(values)
            return to_price_tuple(values)
        except (AttributeError, ValueError, PrecompileError) as e:
            raise ConfigFetchFailed(
                "undecodable getPricesInWei() result {!r}: {}".format(result, e)
            )

    def fetch_chain_id(self, url: str) -> int:
        """
        Read eth_chainId from a live node
        :param url:
        :return:
        :raises ConfigFetchFailed:
        """
        client = self._client_factory(url, self.config.rpc_timeout)
        try:
            return client.eth_chainId()
        except (EthJsonRpcError, TypeError, ValueError) as e:
            raise ConfigFetchFailed("eth_chainId failed: {}".format(e))
        finally:
            client.close()
