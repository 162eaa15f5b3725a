"""This module provides a basic RPC interface client.

This code is adapted from: https://github.com/ConsenSys/ethjsonrpc
"""

from abc import abstractmethod

from .constants import BLOCK_TAG_LATEST
from .utils import hex_to_dec, validate_block


class BaseClient(object):
    """The base RPC client class."""

    @abstractmethod
    def _call(self, method, params=None, _id=1):
        """Send a single JSON-RPC request and return its result.

        :param method:
        :param params:
        :param _id:
        :return:
        """

        pass

    def eth_chainId(self):
        """https://eips.ethereum.org/EIPS/eip-695"""
        return hex_to_dec(self._call("eth_chainId"))

    def eth_call(self, to_address, data, block=BLOCK_TAG_LATEST):
        """Execute a read-only message call.

        https://ethereum.org/en/developers/docs/apis/json-rpc/#eth_call

        :param to_address: the called contract
        :param data: 0x-prefixed calldata
        :param block:
        :return: 0x-prefixed return data
        """
        block = validate_block(block)
        return self._call("eth_call", [{"to": to_address, "data": data}, block])
