#!/usr/bin/env python3
"""
estimate_hl_gas.py — Estimate the Hyperlane interchain gas payment for a message

What it does:
- Resolves origin / destination (chain name or numeric domain id)
- Builds the chain provider registry (built-in mainnets, or a JSON config)
- Asks the origin chain's InterchainGasPaymaster for the payment that covers
  `handleGas` gas on the destination
- Writes the quote to stdout as one ABI-encoded uint256 word (32 raw bytes)

Usage:
  python estimate_hl_gas.py                              # ethereum -> polygon, 200000 gas
  python estimate_hl_gas.py arbitrum 137 350000
  python estimate_hl_gas.py avalanche polygon 200000 --hex
  python estimate_hl_gas.py ethereum gnosis 200000 --config chains.json -v

Environment:
  HL_CHAINS_CONFIG  chain registry JSON used when --config is not given
  HL_RPC_<CHAIN>    per-chain RPC URL override (e.g. HL_RPC_POLYGON)
  HL_RPC_TIMEOUT    RPC timeout in seconds (default: 20)
"""

import argparse
import os
import sys
import time
from typing import BinaryIO, Callable, List, Optional

from hyperlane_chains import (
    DEFAULT_TIMEOUT,
    ChainProviderSet,
    ChainRegistryError,
    parse_chain_ref,
    resolve_chain_name,
)
from interchain_gas import (
    InterchainGasCalculator,
    GasEstimationError,
    encode_quote,
    quote_payment,
)

DEFAULT_ORIGIN = "ethereum"
DEFAULT_DESTINATION = "polygon"
DEFAULT_HANDLE_GAS = "200000"
DEFAULT_ENVIRONMENT = "mainnet"

CalculatorFactory = Callable[[str, ChainProviderSet, bool], InterchainGasCalculator]


def default_calculator(
    environment: str, providers: ChainProviderSet, include_overhead: bool
) -> InterchainGasCalculator:
    return InterchainGasCalculator.from_environment(
        environment, providers, include_overhead=include_overhead
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Estimate the interchain gas payment (origin native token, wei) "
                    "for a Hyperlane message and print it as an ABI uint256."
    )
    p.add_argument("origin", nargs="?", default=DEFAULT_ORIGIN,
                   help=f"Origin chain name or domain id (default: {DEFAULT_ORIGIN})")
    p.add_argument("destination", nargs="?", default=DEFAULT_DESTINATION,
                   help=f"Destination chain name or domain id (default: {DEFAULT_DESTINATION})")
    p.add_argument("handle_gas", nargs="?", default=DEFAULT_HANDLE_GAS,
                   help=f"Gas used by the recipient's handle() (default: {DEFAULT_HANDLE_GAS})")
    p.add_argument("--config", default=os.getenv("HL_CHAINS_CONFIG"),
                   help="Chain registry JSON (default from HL_CHAINS_CONFIG)")
    p.add_argument("--environment", default=DEFAULT_ENVIRONMENT,
                   help=f"Hyperlane deployment environment (default: {DEFAULT_ENVIRONMENT})")
    p.add_argument("--timeout", type=int, default=DEFAULT_TIMEOUT,
                   help=f"RPC timeout seconds (default: {DEFAULT_TIMEOUT})")
    p.add_argument("--no-overhead", action="store_true",
                   help="Quote exactly handleGas, without the destination's gas overhead")
    p.add_argument("--hex", action="store_true",
                   help="Print the encoded word as 0x-prefixed hex instead of raw bytes")
    p.add_argument("-v", "--verbose", action="store_true", help="Progress output on stderr")
    return p.parse_args(argv)


def build_providers(args: argparse.Namespace) -> ChainProviderSet:
    if args.config:
        return ChainProviderSet.from_config_file(args.config, timeout=args.timeout)
    return ChainProviderSet.from_metadata(timeout=args.timeout)


def main(
    argv: Optional[List[str]] = None,
    calculator_factory: Optional[CalculatorFactory] = None,
    stdout: Optional[BinaryIO] = None,
) -> int:
    args = parse_args(argv)
    if calculator_factory is None:
        calculator_factory = default_calculator
    if stdout is None:
        stdout = sys.stdout.buffer
    start = time.time()

    try:
        providers = build_providers(args)
        domains = providers.domain_names()
        origin = resolve_chain_name(parse_chain_ref(args.origin), domains)
        destination = resolve_chain_name(parse_chain_ref(args.destination), domains)
        calculator = calculator_factory(args.environment, providers, not args.no_overhead)
    except (ChainRegistryError, GasEstimationError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    if args.verbose:
        print(f"🌐 {origin} -> {destination} ({args.environment}), handleGas={args.handle_gas}",
              file=sys.stderr)

    result = quote_payment(calculator, origin, destination, args.handle_gas)
    if not result.ok:
        print(f"❌ {result.error}", file=sys.stderr)
        return 1

    word = encode_quote(result.payment)
    if args.hex:
        stdout.write(("0x" + word.hex() + "\n").encode("ascii"))
    else:
        stdout.write(word)
    stdout.flush()

    if args.verbose:
        print(f"💰 Payment: {result.payment} wei", file=sys.stderr)
        print(f"⏱️ Completed in {time.time() - start:.2f}s", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
