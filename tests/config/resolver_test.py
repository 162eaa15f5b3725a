import threading
import time
from concurrent.futures import Future

import pytest
import requests
from mock import patch

from arbpatch.config.patch_config import PatchConfig
from arbpatch.config.resolver import ConfigResolver, ConfigSource
from arbpatch.ethereum.interface.rpc.exceptions import (
    BadStatusCodeError,
    RequestTimeoutError,
)
from arbpatch.gas.pricing import FALLBACK_PRICES_IN_WEI, PriceTuple
from arbpatch.util import encode_words

URL = "http://localhost:8547"
LIVE_PRICES = [11, 22, 33, 44, 55, 66]
FILE_PRICES = ["1", "2", "3", "4", "5", "6"]


class StubClient:
    """Stands in for EthJsonRpc, counts the requests it answers."""

    def __init__(self, result=None, error=None, chain_id=42170, gate=None):
        self.result = result if result is not None else encoded(LIVE_PRICES)
        self.error = error
        self.chain_id = chain_id
        self.gate = gate
        self.calls = []
        self.closed = 0
        self._lock = threading.Lock()

    def factory(self, url, timeout):
        self.url = url
        self.timeout = timeout
        return self

    def eth_call(self, to_address, data):
        with self._lock:
            self.calls.append((to_address, data))
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return self.result

    def eth_chainId(self):
        if self.error is not None:
            raise self.error
        return self.chain_id

    def close(self):
        self.closed += 1


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def encoded(values):
    return "0x" + encode_words(values).hex()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("ARB_LIVE_RPC", "STYLUS_RPC", "NITRO_RPC"):
        monkeypatch.delenv(name, raising=False)


def make_resolver(stub=None, clock=None, **values):
    config = PatchConfig(values=values)
    stub = stub or StubClient()
    resolver = ConfigResolver(
        config, client_factory=stub.factory, clock=clock or time.monotonic
    )
    return resolver, stub


def test_live_network_wins():
    resolver, stub = make_resolver(liveRpc=URL, gas={"pricesInWei": FILE_PRICES})

    prices, source = resolver.resolve()

    assert source == ConfigSource.LIVE_NETWORK
    assert prices == PriceTuple(*LIVE_PRICES)
    assert stub.calls == [
        ("0x000000000000000000000000000000000000006c", "0x41b247a8")
    ]
    assert stub.closed == 1


def test_file_wins_over_fallback():
    resolver, stub = make_resolver(gas={"pricesInWei": FILE_PRICES})

    prices, source = resolver.resolve()

    assert source == ConfigSource.LOCAL_FILE
    assert prices == PriceTuple(1, 2, 3, 4, 5, 6)
    assert stub.calls == []


def test_fallback_when_nothing_is_configured():
    resolver, _ = make_resolver()
    assert resolver.resolve() == (
        FALLBACK_PRICES_IN_WEI,
        ConfigSource.BUILT_IN_FALLBACK,
    )


@pytest.mark.parametrize(
    "stub",
    (
        StubClient(error=BadStatusCodeError(502)),
        StubClient(error=RequestTimeoutError("slow")),
        StubClient(result="0x1234"),
        StubClient(result="0xzz"),
        StubClient(result=encoded([1, 2, 3, 4, 5])),
    ),
)
def test_live_failures_fall_through(stub):
    resolver, _ = make_resolver(stub, liveRpc=URL, gas={"pricesInWei": FILE_PRICES})

    prices, source = resolver.resolve()

    assert source == ConfigSource.LOCAL_FILE
    assert prices == PriceTuple(1, 2, 3, 4, 5, 6)


@pytest.mark.parametrize(
    "raised",
    (
        requests.exceptions.InvalidURL("No host specified."),
        requests.exceptions.MissingSchema("no scheme"),
        requests.exceptions.TooManyRedirects(),
        requests.exceptions.ChunkedEncodingError(),
    ),
)
def test_request_errors_fall_through(raised):
    config = PatchConfig(
        values={"liveRpc": "localhost:8547", "gas": {"pricesInWei": FILE_PRICES}}
    )
    resolver = ConfigResolver(config)

    with patch.object(requests.Session, "post", side_effect=raised) as post:
        prices, source = resolver.resolve()

    assert post.called
    assert source == ConfigSource.LOCAL_FILE
    assert prices == PriceTuple(1, 2, 3, 4, 5, 6)
    assert resolver._in_flight == {}


def test_live_failure_without_file_uses_fallback():
    resolver, _ = make_resolver(StubClient(error=BadStatusCodeError(500)), liveRpc=URL)
    assert resolver.resolve()[1] == ConfigSource.BUILT_IN_FALLBACK


def test_nitro_runtime_reorders_live_tuple():
    resolver, _ = make_resolver(
        StubClient(result=encoded([10, 20, 30, 40, 50, 60])),
        liveRpc=URL,
        runtime="nitro",
    )
    assert resolver.resolve()[0] == PriceTuple(40, 20, 30, 0, 50, 60)


def test_rpc_timeout_is_passed_to_the_client():
    resolver, stub = make_resolver(liveRpc=URL, rpcTimeout=2.5)
    resolver.resolve()
    assert stub.url == URL
    assert stub.timeout == 2.5


def test_cache_hit_and_expiry():
    clock = FakeClock()
    resolver, stub = make_resolver(clock=clock, liveRpc=URL, cacheTtl=300)

    resolver.resolve()
    clock.now += 299
    prices, source = resolver.resolve()
    assert len(stub.calls) == 1
    assert source == ConfigSource.LIVE_NETWORK
    assert prices == PriceTuple(*LIVE_PRICES)

    clock.now += 1
    resolver.resolve()
    assert len(stub.calls) == 2


def test_cache_disabled_by_default():
    resolver, stub = make_resolver(liveRpc=URL)
    resolver.resolve()
    resolver.resolve()
    assert len(stub.calls) == 2


def test_clear_cache():
    resolver, stub = make_resolver(liveRpc=URL, cacheTtl=300)
    resolver.resolve()
    resolver.clear_cache()
    resolver.resolve()
    assert len(stub.calls) == 2


def test_failures_are_not_cached():
    stub = StubClient(error=BadStatusCodeError(503))
    resolver, _ = make_resolver(stub, liveRpc=URL, cacheTtl=300)
    resolver.resolve()
    stub.error = None
    assert resolver.resolve()[1] == ConfigSource.LIVE_NETWORK
    assert len(stub.calls) == 2


def test_concurrent_resolutions_share_one_fetch():
    gate = threading.Event()
    stub = StubClient(gate=gate)
    resolver, _ = make_resolver(stub, liveRpc=URL, cacheTtl=300, rpcTimeout=5)
    results = []

    def worker():
        results.append(resolver.resolve())

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for thread in threads:
        thread.start()
    deadline = time.monotonic() + 5
    while not stub.calls and time.monotonic() < deadline:
        time.sleep(0.01)
    time.sleep(0.2)
    gate.set()
    for thread in threads:
        thread.join()

    assert len(stub.calls) == 1
    assert len(results) == 6
    expected = (PriceTuple(*LIVE_PRICES), ConfigSource.LIVE_NETWORK)
    assert all(result == expected for result in results)


def test_follower_gives_up_after_timeout():
    resolver, stub = make_resolver(
        liveRpc=URL, rpcTimeout=0.05, gas={"pricesInWei": FILE_PRICES}
    )
    resolver._in_flight[URL] = Future()

    with patch("arbpatch.config.resolver.FOLLOWER_GRACE_PERIOD", 0):
        prices, source = resolver.resolve()

    assert source == ConfigSource.LOCAL_FILE
    assert stub.calls == []


def test_resolve_chain_id():
    resolver, _ = make_resolver(liveRpc=URL, chainId=1)
    assert resolver.resolve_chain_id() == (42170, ConfigSource.LIVE_NETWORK)

    resolver, _ = make_resolver(
        StubClient(error=BadStatusCodeError(500)), liveRpc=URL, chainId=412346
    )
    assert resolver.resolve_chain_id() == (412346, ConfigSource.LOCAL_FILE)

    resolver, _ = make_resolver()
    assert resolver.resolve_chain_id() == (42161, ConfigSource.BUILT_IN_FALLBACK)
