"""This module contains the append-only queue of outbound L2 to L1
messages."""
import logging
import threading
import time
from typing import List, Optional

import rlp
from eth_hash.auto import keccak

log = logging.getLogger(__name__)

MESSAGE_ID_PREFIX = "l1msg-"


class L1Message:
    """A single message sent from L2 to L1. Immutable once created."""

    __slots__ = (
        "id",
        "sender",
        "to",
        "value",
        "data",
        "timestamp",
        "block_number",
        "tx_hash",
    )

    def __init__(
        self,
        id: str,
        sender: str,
        to: str,
        value: int,
        data: bytes,
        timestamp: int,
        block_number: int,
        tx_hash: str,
    ) -> None:
        object.__setattr__(self, "id", id)
        object.__setattr__(self, "sender", sender)
        object.__setattr__(self, "to", to)
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "data", bytes(data))
        object.__setattr__(self, "timestamp", timestamp)
        object.__setattr__(self, "block_number", block_number)
        object.__setattr__(self, "tx_hash", tx_hash)

    def __setattr__(self, name, value):
        raise AttributeError("L1Message is immutable")

    @property
    def numeric_id(self) -> int:
        return int(self.id[len(MESSAGE_ID_PREFIX) :])

    @property
    def as_dict(self):
        return dict(
            id=self.id,
            sender=self.sender,
            to=self.to,
            value=self.value,
            data="0x" + self.data.hex(),
            timestamp=self.timestamp,
            block_number=self.block_number,
            tx_hash=self.tx_hash,
        )

    def __eq__(self, other):
        if not isinstance(other, L1Message):
            return NotImplemented
        return self.as_dict == other.as_dict

    def __repr__(self):
        return "<L1Message {} {} -> {}>".format(self.id, self.sender, self.to)


class L1MessageQueue:
    """Append-only record of outbound messages with monotonically increasing
    ids.

    Ids are scoped to the queue instance and never reused, clearing the queue
    keeps the counter running.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._messages = []  # type: List[L1Message]
        self._counter = 0

    def append(
        self,
        sender: str,
        to: str,
        value: int,
        data: bytes,
        block_number: int,
        timestamp: Optional[int] = None,
        tx_hash: Optional[str] = None,
    ) -> L1Message:
        """Create and record a new message.

        :param sender:
        :param to:
        :param value:
        :param data:
        :param block_number:
        :param timestamp: defaults to the current time
        :param tx_hash: defaults to a hash over the message contents
        :return: the recorded message
        """
        if timestamp is None:
            timestamp = int(time.time())
        with self._lock:
            self._counter += 1
            message_id = "{}{}".format(MESSAGE_ID_PREFIX, self._counter)
            if tx_hash is None:
                tx_hash = _placeholder_tx_hash(
                    self._counter, sender, to, value, data, block_number
                )
            message = L1Message(
                message_id, sender, to, value, data, timestamp, block_number, tx_hash
            )
            self._messages.append(message)

        log.debug("Queued %s from %s to %s", message_id, sender, to)
        return message

    def messages(self) -> List[L1Message]:
        """Snapshot of all queued messages in insertion order."""
        with self._lock:
            return list(self._messages)

    def get(self, message_id: str) -> Optional[L1Message]:
        with self._lock:
            for message in self._messages:
                if message.id == message_id:
                    return message
        return None

    def clear(self) -> None:
        """Drop all messages, used by hosts between test scenarios."""
        with self._lock:
            dropped = len(self._messages)
            self._messages = []
        log.debug("Cleared %d queued L1 messages", dropped)

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    def __iter__(self):
        return iter(self.messages())


def _placeholder_tx_hash(counter, sender, to, value, data, block_number) -> str:
    encoded = rlp.encode(
        [
            counter,
            bytes.fromhex(sender[2:]),
            bytes.fromhex(to[2:]),
            value,
            bytes(data),
            block_number,
        ]
    )
    return "0x" + keccak(encoded).hex()
