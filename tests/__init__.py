from pathlib import Path
from unittest import TestCase

from arbpatch.precompiles.registry import ExecutionContext

TESTS_DIR = Path(__file__).parent
PROJECT_DIR = TESTS_DIR.parent
TESTDATA = TESTS_DIR / "testdata"
TESTDATA_CONFIG = TESTDATA / "precompiles.config.json"
TESTDATA_NITRO_CONFIG = TESTDATA / "nitro.config.json"
TESTDATA_BROKEN_CONFIG = TESTDATA / "broken.config.json"

CALLER = "0x00000000000000000000000000000000000000aa"


def make_context(**kwargs) -> ExecutionContext:
    """An execution context at block 1000 called by CALLER."""
    values = dict(block_number=1000, chain_id=42161, gas_price=10 ** 8, caller=CALLER)
    values.update(kwargs)
    return ExecutionContext(**values)


class BaseTestCase(TestCase):
    def setUp(self):
        """

        """
        self.context = make_context()

    def assert_word(self, data, expected):
        """

        :param data: a single ABI word
        :param expected: the integer it should hold
        """
        self.assertEqual(len(data), 32)
        self.assertEqual(int.from_bytes(data, "big"), expected)

    def assert_words(self, data, expected):
        """

        :param data: concatenated ABI words
        :param expected: the integers they should hold
        """
        self.assertEqual(len(data), 32 * len(expected))
        words = [
            int.from_bytes(data[i : i + 32], "big") for i in range(0, len(data), 32)
        ]
        self.assertEqual(words, list(expected))
