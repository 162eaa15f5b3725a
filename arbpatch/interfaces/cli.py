#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""arbpatch: Arbitrum precompile emulation for local Ethereum development
nodes
"""

import argparse
import json
import logging
import sys
import traceback
from argparse import ArgumentParser, Namespace
from typing import List, Optional

import coloredlogs
from eth_utils import is_address

from arbpatch.__version__ import __version__ as VERSION
from arbpatch.config.patch_config import PatchConfig
from arbpatch.config.resolver import ConfigResolver
from arbpatch.exceptions import ArbPatchBaseException, CriticalError
from arbpatch.gas.pricing import (
    PRICE_TUPLE_FIELDS,
    PriceTuple,
    price_tuple_from_components,
)
from arbpatch.precompiles.arb_sys import apply_l1_alias, undo_l1_alias
from arbpatch.tx import deposit
from arbpatch.util import safe_decode

GAS_INFO_COMMAND = "gas-info"
DECODE_DEPOSIT_COMMAND = "decode-deposit"
ALIAS_COMMAND = "alias"
VERSION_COMMAND = "version"
HELP_COMMAND = "help"

log = logging.getLogger(__name__)

LOG_LEVELS = [
    logging.NOTSET,
    logging.CRITICAL,
    logging.ERROR,
    logging.WARNING,
    logging.INFO,
    logging.DEBUG,
]


def exit_with_error(format_, message):
    """
    Exits with error
    :param format_: The format of the message
    :param message: message
    """
    if format_ == "json":
        print(json.dumps({"success": False, "error": str(message)}))
    else:
        log.error(message)
        print(message, file=sys.stderr)
    sys.exit(1)


def get_config_parser() -> ArgumentParser:
    """
    Returns Parser which handles the configuration source
    :return: Parser which handles the configuration source
    """
    parser = ArgumentParser(add_help=False)
    parser.add_argument(
        "--config",
        help="path of the precompiles configuration file",
        metavar="PATH",
    )
    parser.add_argument(
        "--rpc",
        help="live node to compare against, e.g. http://localhost:8547",
        metavar="URL",
    )
    return parser


def get_output_parser() -> ArgumentParser:
    """
    Get parser which handles output
    :return: Parser which handles output
    """
    parser = ArgumentParser(add_help=False)
    parser.add_argument(
        "--json", action="store_true", help="print the result as JSON"
    )
    return parser


def local_prices(config: PatchConfig) -> PriceTuple:
    """The tuple a freshly configured ArbGasInfo would answer with."""
    if config.prices_in_wei is not None:
        return config.prices_in_wei
    return price_tuple_from_components(
        config.gas_price_components, config.l1_base_fee, config.l1_blob_base_fee
    )


def gas_info(args: Namespace) -> None:
    """
    Compare the local price tuple with the one a live node reports
    :param args:
    """
    config = PatchConfig(config_path=args.config)
    config.set_api_rpc(args.rpc)
    local = local_prices(config)
    remote = None
    if config.live_rpc:
        remote = ConfigResolver(config).fetch_prices(config.live_rpc)

    if args.json:
        result = {
            "local": dict(local._asdict()),
            "remote": dict(remote._asdict()) if remote is not None else None,
        }
        print(json.dumps(result, indent=4))
        return

    print("{:<22} {:>24} {:>24}".format("field", "local", "remote"))
    for index, field in enumerate(PRICE_TUPLE_FIELDS):
        remote_value = "-" if remote is None else remote[index]
        marker = "" if remote is None or remote[index] == local[index] else "  *"
        print(
            "{:<22} {:>24} {:>24}{}".format(field, local[index], remote_value, marker)
        )


def decode_deposit(args: Namespace) -> None:
    """
    Decode, validate and summarize a raw deposit transaction
    :param args:
    """
    try:
        raw = safe_decode(args.raw_tx)
    except ValueError:
        raise CriticalError("Transaction must be hex encoded")
    tx = deposit.parse(raw)
    advisories = deposit.warnings(tx)
    if args.json:
        intent = deposit.to_execution_intent(tx)
        result = dict(intent._asdict())
        result["data"] = "0x" + intent.data.hex()
        result["hash"] = deposit.transaction_hash(tx)
        result["warnings"] = advisories
        print(json.dumps({"success": True, "transaction": result}, indent=4))
        return

    print(deposit.summarize(tx))
    print("  Hash: {}".format(deposit.transaction_hash(tx)))
    for advisory in advisories:
        print("Warning: {}".format(advisory))


def alias(args: Namespace) -> None:
    """
    Print the L2 alias of an L1 address, or the inverse
    :param args:
    """
    if not is_address(args.address):
        raise CriticalError("Invalid address '{}'".format(args.address))
    if args.undo:
        print(undo_l1_alias(args.address))
    else:
        print(apply_l1_alias(args.address))


def create_parser() -> ArgumentParser:
    config_parser = get_config_parser()
    output_parser = get_output_parser()

    parser = argparse.ArgumentParser(
        description="Arbitrum precompile emulation for local development nodes"
    )
    parser.add_argument(
        "-v", type=int, help="log level (0-5)", metavar="LOG_LEVEL", default=2
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")
    subparsers.add_parser(
        GAS_INFO_COMMAND,
        help="compares the local gas price tuple with a live node",
        parents=[config_parser, output_parser],
    )
    decode_parser = subparsers.add_parser(
        DECODE_DEPOSIT_COMMAND,
        help="decodes and validates a raw 0x7e deposit transaction",
        parents=[output_parser],
    )
    decode_parser.add_argument("raw_tx", help="hex encoded transaction", metavar="HEX")
    alias_parser = subparsers.add_parser(
        ALIAS_COMMAND, help="applies the L1 to L2 address alias"
    )
    alias_parser.add_argument("address", help="address to convert", metavar="ADDRESS")
    alias_parser.add_argument(
        "--undo", action="store_true", help="map an L2 alias back to its L1 address"
    )
    subparsers.add_parser(VERSION_COMMAND, help="outputs version information")
    subparsers.add_parser(HELP_COMMAND, add_help=False)
    return parser


def validate_args(args: Namespace):
    """
    Validate cli args
    :param args:
    :return:
    """
    if 0 <= args.v < len(LOG_LEVELS):
        coloredlogs.install(
            fmt="%(name)s [%(levelname)s]: %(message)s", level=LOG_LEVELS[args.v]
        )
    else:
        exit_with_error("text", "Invalid -v value, you can find valid values in usage")


def main(argv: Optional[List[str]] = None) -> None:
    """The main CLI interface entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == VERSION_COMMAND:
        print("arbpatch version {}".format(VERSION))
        sys.exit()

    if args.command in (None, HELP_COMMAND):
        parser.print_help()
        sys.exit()

    validate_args(args)
    outform = "json" if args.__dict__.get("json", False) else "text"
    try:
        if args.command == GAS_INFO_COMMAND:
            gas_info(args)
        elif args.command == DECODE_DEPOSIT_COMMAND:
            decode_deposit(args)
        elif args.command == ALIAS_COMMAND:
            alias(args)
    except ArbPatchBaseException as e:
        exit_with_error(outform, str(e))
    except Exception:
        exit_with_error(outform, traceback.format_exc())


if __name__ == "__main__":
    main()
