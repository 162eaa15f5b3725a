import json

import pytest
import requests
from mock import MagicMock, patch

from arbpatch.ethereum.interface.rpc.client import EthJsonRpc
from arbpatch.ethereum.interface.rpc.exceptions import (
    BadJsonError,
    BadResponseError,
    BadStatusCodeError,
    ConnectionError,
    RequestTimeoutError,
)
from arbpatch.ethereum.interface.rpc.utils import hex_to_dec, validate_block

URL = "http://localhost:8547"


def response(payload=None, status_code=200, text=""):
    mocked = MagicMock()
    mocked.status_code = status_code
    mocked.text = text
    if payload is None:
        mocked.json.side_effect = ValueError("not json")
    else:
        mocked.json.return_value = payload
    return mocked


@pytest.fixture
def client():
    client = EthJsonRpc(URL, timeout=1.5)
    yield client
    client.close()


def test_eth_chain_id(client):
    with patch.object(
        requests.Session, "post", return_value=response({"id": 1, "result": "0xa4b1"})
    ) as post:
        assert client.eth_chainId() == 42161

    _, kwargs = post.call_args
    assert kwargs["timeout"] == 1.5
    assert json.loads(kwargs["data"])["method"] == "eth_chainId"


def test_eth_call_payload(client):
    with patch.object(
        requests.Session, "post", return_value=response({"id": 1, "result": "0x01"})
    ) as post:
        assert client.eth_call("0x" + "00" * 19 + "6c", "0x41b247a8") == "0x01"

    sent = json.loads(post.call_args[1]["data"])
    assert sent["method"] == "eth_call"
    assert sent["params"] == [
        {"to": "0x" + "00" * 19 + "6c", "data": "0x41b247a8"},
        "latest",
    ]


def test_eth_call_with_block_number(client):
    with patch.object(
        requests.Session, "post", return_value=response({"id": 1, "result": "0x"})
    ) as post:
        client.eth_call("0x" + "00" * 20, "0x", block=16)

    assert json.loads(post.call_args[1]["data"])["params"][1] == "0x10"


@pytest.mark.parametrize(
    "mocked, error",
    (
        (response({"result": "0x1"}, status_code=500), BadStatusCodeError),
        (response(None, text="<html>"), BadJsonError),
        (response({"error": {"code": -32000, "message": "no"}}), BadResponseError),
        (response({"id": 1}), BadResponseError),
    ),
)
def test_bad_answers(client, mocked, error):
    with patch.object(requests.Session, "post", return_value=mocked):
        with pytest.raises(error):
            client.eth_chainId()


@pytest.mark.parametrize(
    "raised, error",
    (
        (requests.exceptions.Timeout(), RequestTimeoutError),
        (requests.exceptions.ConnectionError(), ConnectionError),
        (requests.exceptions.InvalidURL("No host specified."), ConnectionError),
        (requests.exceptions.TooManyRedirects(), ConnectionError),
        (requests.exceptions.ChunkedEncodingError(), ConnectionError),
    ),
)
def test_transport_failures(client, raised, error):
    with patch.object(requests.Session, "post", side_effect=raised):
        with pytest.raises(error):
            client.eth_chainId()


def test_rpc_utils():
    assert hex_to_dec("0x10") == 16
    assert validate_block("pending") == "pending"
    assert validate_block(255) == "0xff"
    with pytest.raises(ValueError):
        validate_block("finalized-ish")
