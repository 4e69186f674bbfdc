"""
interchain_gas.py — Quote Hyperlane interchain gas payments via the InterchainGasPaymaster

What it does:
- Maps a deployment environment ("mainnet") to the InterchainGasPaymaster (IGP)
  contract of every supported origin chain
- Asks the origin chain's IGP how much native currency must be paid so that a
  message to `destination` is delivered with at least `handle_gas` gas for the
  recipient's handle() call
- Encodes / decodes the quote as a single ABI uint256 word

The gas oracle and exchange-rate pricing happen on-chain inside the IGP; this
module only issues the read calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Union

from eth_abi import decode, encode
from web3 import Web3

from hyperlane_chains import ChainProviderSet, ChainRegistryError, UnsupportedChainError


UINT256_MAX = 2**256 - 1
UINT32_MAX = 2**32 - 1

IGP_ABI = [
    {
        "type": "function",
        "name": "quoteGasPayment",
        "stateMutability": "view",
        "inputs": [
            {"name": "_destinationDomain", "type": "uint32"},
            {"name": "_gasLimit", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "destinationGasLimit",
        "stateMutability": "view",
        "inputs": [
            {"name": "_destination", "type": "uint32"},
            {"name": "_gasLimit", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

# InterchainGasPaymaster deployments, keyed by environment then origin chain.
ENVIRONMENTS: Dict[str, Dict[str, str]] = {
    "mainnet": {
        "arbitrum": "0x3b6044acd6767f017e99318AA6Ef93b7B06A5a22",
        "avalanche": "0x95519ba800BBd0d34eeAE026fEc620AD978176C0",
        "bsc": "0x78E25e7f84416e69b9339B0A6336EB6EFfF6b451",
        "celo": "0x571f1435613381208477ac5d6974310d88AC7cB7",
        "ethereum": "0x9e6B1022bE9BBF5aFd152483DAD9b88911bC8611",
        "optimism": "0xD8A76C4D91fCbB7Cc8eA795DFDF870E48368995C",
        "polygon": "0x0071740Bf129b05C4684abfbBeD248D80971cce2",
        "moonbeam": "0x14760E32C0746094cF14D97124865BC7A4A7b3cd",
        "gnosis": "0xDd260B99d302f0A3fF885728c086f729c06f227f",
    },
}


class GasEstimationError(Exception):
    """Base class for failures while producing a gas payment quote."""


class UnknownEnvironmentError(GasEstimationError):
    pass


class InvalidHandleGasError(GasEstimationError):
    pass


class QuoteFailedError(GasEstimationError):
    """The RPC provider or the IGP contract failed to produce a quote."""


class InterchainGasCalculator:
    def __init__(
        self,
        igp_addresses: Mapping[str, str],
        providers: ChainProviderSet,
        include_overhead: bool = True,
    ):
        self.igp_addresses = dict(igp_addresses)
        self.providers = providers
        self.include_overhead = include_overhead

    @classmethod
    def from_environment(
        cls,
        environment: str,
        providers: ChainProviderSet,
        include_overhead: bool = True,
    ) -> "InterchainGasCalculator":
        addresses = ENVIRONMENTS.get(environment)
        if addresses is None:
            known = ", ".join(sorted(ENVIRONMENTS))
            raise UnknownEnvironmentError(
                f"Unknown environment '{environment}' (known: {known})"
            )
        return cls(addresses, providers, include_overhead=include_overhead)

    def igp_address(self, chain: str) -> str:
        conn = self.providers.connection(chain)
        address = conn.igp_address or self.igp_addresses.get(chain)
        if not address:
            raise UnsupportedChainError(f"No InterchainGasPaymaster known for '{chain}'")
        try:
            return Web3.to_checksum_address(address)
        except (TypeError, ValueError):
            raise UnsupportedChainError(
                f"InterchainGasPaymaster for '{chain}' is not an address: {address!r}"
            ) from None

    def estimate_payment_for_handle_gas(
        self,
        origin: str,
        destination: str,
        handle_gas: Union[int, str],
    ) -> int:
        """
        Payment in the origin chain's native token (wei-denominated) needed for
        the destination handler to receive at least `handle_gas` gas.
        """
        gas = parse_handle_gas(handle_gas)

        igp = self.igp_address(origin)
        dest = self.providers.connection(destination)
        if origin == destination:
            raise UnsupportedChainError(f"No interchain route from '{origin}' to itself")
        if not 0 <= dest.domain_id <= UINT32_MAX:
            raise UnsupportedChainError(f"Domain id {dest.domain_id} of '{destination}' is not a uint32")

        try:
            w3 = self.providers.get_web3(origin)
            contract = w3.eth.contract(address=igp, abi=IGP_ABI)
            if self.include_overhead:
                gas = int(contract.functions.destinationGasLimit(dest.domain_id, gas).call())
            payment = contract.functions.quoteGasPayment(dest.domain_id, gas).call()
        except Exception as exc:  # noqa: BLE001
            raise QuoteFailedError(
                f"Quote {origin} -> {destination} failed: {str(exc) or type(exc).__name__}"
            ) from exc

        if isinstance(payment, bool) or not isinstance(payment, int) or not 0 <= payment <= UINT256_MAX:
            raise QuoteFailedError(f"IGP on {origin} returned an invalid quote: {payment!r}")
        return payment


def parse_handle_gas(value: Union[int, str]) -> int:
    if isinstance(value, bool):
        raise InvalidHandleGasError(f"Invalid handle gas: {value!r}")
    try:
        gas = int(value)
    except (TypeError, ValueError):
        raise InvalidHandleGasError(f"Invalid handle gas: {value!r}") from None
    if not 0 <= gas <= UINT256_MAX:
        raise InvalidHandleGasError(f"Handle gas out of uint256 range: {gas}")
    return gas


@dataclass(frozen=True)
class QuoteResult:
    payment: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def quote_payment(
    calculator: InterchainGasCalculator,
    origin: str,
    destination: str,
    handle_gas: Union[int, str],
) -> QuoteResult:
    try:
        payment = calculator.estimate_payment_for_handle_gas(origin, destination, handle_gas)
    except (GasEstimationError, ChainRegistryError) as exc:
        return QuoteResult(error=str(exc) or type(exc).__name__)
    return QuoteResult(payment=payment)


def encode_quote(payment: int) -> bytes:
    """ABI-encode a quote as one 32-byte big-endian uint256 word."""
    if isinstance(payment, bool) or not isinstance(payment, int):
        raise ValueError(f"Quote must be an integer, got {payment!r}")
    if not 0 <= payment <= UINT256_MAX:
        raise ValueError(f"Quote out of uint256 range: {payment}")
    return encode(["uint256"], [payment])


def decode_quote(data: bytes) -> int:
    if len(data) != 32:
        raise ValueError(f"Expected a 32-byte ABI word, got {len(data)} bytes")
    (payment,) = decode(["uint256"], data)
    return int(payment)
