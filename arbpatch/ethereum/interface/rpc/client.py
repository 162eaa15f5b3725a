import json
import logging
import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import RequestException
from requests.exceptions import Timeout as RequestsTimeout
from .exceptions import (
    ConnectionError,
    RequestTimeoutError,
    BadStatusCodeError,
    BadJsonError,
    BadResponseError,
)
from .base_client import BaseClient

log = logging.getLogger(__name__)

MAX_RETRIES = 3
DEFAULT_TIMEOUT = 5.0
JSON_MEDIA_TYPE = "application/json"

"""
This code is adapted from: https://github.com/ConsenSys/ethjsonrpc
"""


class EthJsonRpc(BaseClient):
    """
    Ethereum JSON-RPC client class
    """

    def __init__(self, url, timeout=DEFAULT_TIMEOUT):
        self.url = url
        self.timeout = timeout
        self.session = requests.Session()
        self.session.mount(self.url, HTTPAdapter(max_retries=MAX_RETRIES))

    def _call(self, method, params=None, _id=1):

        params = params or []
        data = {"jsonrpc": "2.0", "method": method, "params": params, "id": _id}
        headers = {"Content-Type": JSON_MEDIA_TYPE}
        log.debug("rpc send: %s" % json.dumps(data))
        try:
            r = self.session.post(
                self.url, headers=headers, data=json.dumps(data), timeout=self.timeout
            )
        except RequestsTimeout:
            raise RequestTimeoutError(
                "no answer from {} within {}s".format(self.url, self.timeout)
            )
        except RequestsConnectionError:
            raise ConnectionError(self.url)
        except RequestException as e:
            raise ConnectionError("request to {} failed: {}".format(self.url, e))
        if r.status_code // 100 != 2:
            raise BadStatusCodeError(r.status_code)
        try:
            response = r.json()
            log.debug("rpc response: %s" % response)
        except ValueError:
            raise BadJsonError(r.text)
        if "error" in response:
            raise BadResponseError(response["error"])
        try:
            return response["result"]
        except KeyError:
            raise BadResponseError(response)

    def close(self):
        self.session.close()
