"""This module contains the ArbitrumPatch, the entry point hosts use to answer
precompile calls the way an Arbitrum node would."""
import logging

from arbpatch.config.patch_config import PatchConfig
from arbpatch.config.resolver import ConfigResolver, ConfigSource
from arbpatch.exceptions import CriticalError
from arbpatch.messaging.l1_queue import L1MessageQueue
from arbpatch.precompiles.arb_gas_info import ArbGasInfoHandler
from arbpatch.precompiles.arb_sys import DEFAULT_CHAIN_ID, ArbSysHandler
from arbpatch.precompiles.registry import (
    ExecutionContext,
    PrecompileRegistry,
    PrecompileResult,
)

log = logging.getLogger(__name__)


class ArbitrumPatch(object):
    """Builds the precompile registry from a configuration and keeps the state
    shared between the handlers."""

    def __init__(
        self, config: PatchConfig = None, resolver: ConfigResolver = None
    ) -> None:
        """

        :param config: defaults to the configuration file of the working
            directory
        :param resolver: defaults to a resolver over config
        """
        self.config = config or PatchConfig()
        self.resolver = resolver or ConfigResolver(self.config)
        self.message_queue = L1MessageQueue()
        self.registry = PrecompileRegistry()
        self.arb_sys = None  # type: ArbSysHandler
        self.gas_info = None  # type: ArbGasInfoHandler
        self.enabled = False
        self.set_enabled(self.config.enabled)

    def set_enabled(self, enabled: bool) -> None:
        """
        Enable or disable the patch. A disabled patch has an empty registry.
        Re-enabling builds fresh handlers, the message queue is kept.
        :param enabled:
        """
        self.registry = PrecompileRegistry()
        self.arb_sys = None
        self.gas_info = None
        self.enabled = enabled
        if not enabled:
            log.info("Arbitrum precompiles disabled")
            return

        config = self.config
        chain_id = config.chain_id
        if chain_id is None:
            chain_id = DEFAULT_CHAIN_ID
        self.arb_sys = ArbSysHandler(
            chain_id=chain_id,
            arbos_version=config.arbos_version,
            message_queue=self.message_queue,
        )
        self.gas_info = ArbGasInfoHandler(
            components=config.gas_price_components,
            l1_base_fee=config.l1_base_fee,
            l1_blob_base_fee=config.l1_blob_base_fee,
            minimum_gas_price=config.minimum_gas_price,
            amortized_cost_cap_bips=config.amortized_cost_cap_bips,
        )
        self.registry.register(self.arb_sys)
        self.registry.register(self.gas_info)

    def dispatch(
        self, address, calldata: bytes, context: ExecutionContext
    ) -> PrecompileResult:
        return self.registry.dispatch(address, calldata, context)

    def reseed_from_sources(self) -> ConfigSource:
        """
        Resolve a price tuple from the configured sources and seed ArbGasInfo
        with it
        :return: the source the tuple came from
        """
        if self.gas_info is None:
            raise CriticalError("Cannot reseed a disabled Arbitrum patch")
        prices, source = self.resolver.resolve()
        self.gas_info.seed(prices)
        log.info("Reseeded ArbGasInfo from %s", source.value)
        return source

    def config_summary(self) -> str:
        """Human readable summary of the active configuration."""
        if not self.enabled:
            return "Arbitrum patch: disabled"
        components = self.gas_info.components
        lines = [
            "Arbitrum patch: enabled",
            "  Chain ID: {}".format(self.arb_sys.chain_id),
            "  ArbOS version: {}".format(self.arb_sys.arbos_version),
            "  L1 base fee: {} wei".format(self.gas_info.l1_base_fee),
            "  L2 base fee: {} wei".format(components.l2_base_fee),
            "  L1 calldata cost: {}".format(components.l1_calldata_cost),
            "  L1 storage cost: {}".format(components.l1_storage_cost),
            "  Congestion fee: {}".format(components.congestion_fee),
            "  Fee mode: {}".format("seeded" if self.gas_info.seeded else "computed"),
            "  Precompiles: {}".format(
                ", ".join(
                    "{} ({})".format(h.name, h.address)
                    for h in self.registry.list_handlers()
                )
            ),
            "  Queued L1 messages: {}".format(len(self.message_queue)),
        ]
        return "\n".join(lines)
