"""
hyperlane_chains.py — Chain metadata and provider registry for Hyperlane mainnets

What it does:
- Keeps a static table of the supported mainnet chains (domain id, chain id, default RPC)
- Parses chain references given as a name ("ethereum") or a numeric domain id ("1")
- Builds an injectable ChainProviderSet: chain name -> connection settings,
  with lazily created web3 clients

Environment:
  HL_RPC_<CHAIN>    override the RPC URL of one chain (e.g. HL_RPC_ETHEREUM)
  HL_RPC_TIMEOUT    default RPC timeout in seconds (default: 20)
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

from web3 import Web3


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


DEFAULT_TIMEOUT = _env_int("HL_RPC_TIMEOUT", 20)
RPC_ENV_PREFIX = "HL_RPC_"


class ChainRegistryError(Exception):
    """Base class for chain lookup and registry configuration failures."""


class UnsupportedChainError(ChainRegistryError):
    """Raised when a chain is not part of the provider registry."""


class ConfigError(ChainRegistryError):
    """Raised when a chain registry config file cannot be used."""


@dataclass(frozen=True)
class ChainMetadata:
    name: str
    domain_id: int
    chain_id: int
    rpc_url: str
    native_token: str


# Hyperlane mainnet domain ids are the EVM chain ids.
MAINNET_CHAINS: Dict[str, ChainMetadata] = {
    m.name: m
    for m in (
        ChainMetadata("arbitrum", 42161, 42161, "https://arb1.arbitrum.io/rpc", "ETH"),
        ChainMetadata("avalanche", 43114, 43114, "https://api.avax.network/ext/bc/C/rpc", "AVAX"),
        ChainMetadata("bsc", 56, 56, "https://bsc-dataseed.binance.org", "BNB"),
        ChainMetadata("celo", 42220, 42220, "https://forno.celo.org", "CELO"),
        ChainMetadata("ethereum", 1, 1, "https://ethereum-rpc.publicnode.com", "ETH"),
        ChainMetadata("optimism", 10, 10, "https://mainnet.optimism.io", "ETH"),
        ChainMetadata("polygon", 137, 137, "https://polygon-bor-rpc.publicnode.com", "POL"),
        ChainMetadata("moonbeam", 1284, 1284, "https://rpc.api.moonbeam.network", "GLMR"),
        ChainMetadata("gnosis", 100, 100, "https://rpc.gnosischain.com", "xDAI"),
    )
}

DEFAULT_ALLOW_LIST: Tuple[str, ...] = tuple(MAINNET_CHAINS)

DOMAIN_NAMES: Dict[int, str] = {m.domain_id: m.name for m in MAINNET_CHAINS.values()}


@dataclass(frozen=True)
class ByName:
    name: str


@dataclass(frozen=True)
class ByDomainId:
    domain_id: int


ChainRef = Union[ByName, ByDomainId]


def parse_chain_ref(text: str) -> ChainRef:
    """Classify a raw CLI value as a domain id (ASCII digits) or a chain name."""
    text = str(text)
    digits = text.strip()
    if digits.isascii() and digits.isdigit():
        return ByDomainId(int(digits))
    return ByName(text)


def resolve_chain_name(ref: ChainRef, domains: Optional[Mapping[int, str]] = None) -> str:
    """
    Resolve a chain reference to the name used by the provider registry.

    Unknown domain ids are returned as their decimal text, so the registry
    rejects them the same way it rejects an unknown name.
    """
    if domains is None:
        domains = DOMAIN_NAMES
    if isinstance(ref, ByDomainId):
        return domains.get(ref.domain_id, str(ref.domain_id))
    if isinstance(ref, ByName):
        return ref.name
    raise TypeError(f"not a chain reference: {ref!r}")


@dataclass(frozen=True)
class ChainConnection:
    name: str
    domain_id: int
    rpc_url: str
    timeout: int = DEFAULT_TIMEOUT
    igp_address: Optional[str] = None


def rpc_env_var(name: str) -> str:
    return RPC_ENV_PREFIX + name.upper().replace("-", "_")


class ChainProviderSet:
    """Registry of the chains a calculator may talk to, keyed by chain name."""

    def __init__(self, connections: Iterable[ChainConnection]):
        self._connections: Dict[str, ChainConnection] = {}
        for conn in connections:
            self._connections[conn.name] = conn
        self._clients: Dict[str, Web3] = {}

    @classmethod
    def from_metadata(
        cls,
        names: Iterable[str] = DEFAULT_ALLOW_LIST,
        metadata: Mapping[str, ChainMetadata] = MAINNET_CHAINS,
        timeout: int = DEFAULT_TIMEOUT,
        env: Optional[Mapping[str, str]] = None,
    ) -> "ChainProviderSet":
        if env is None:
            env = os.environ
        connections = []
        for name in names:
            meta = metadata.get(name)
            if meta is None:
                raise UnsupportedChainError(f"No metadata for chain '{name}'")
            rpc = env.get(rpc_env_var(name)) or meta.rpc_url
            connections.append(ChainConnection(name, meta.domain_id, rpc, timeout))
        return cls(connections)

    @classmethod
    def from_config_file(
        cls,
        path: str,
        timeout: int = DEFAULT_TIMEOUT,
        env: Optional[Mapping[str, str]] = None,
    ) -> "ChainProviderSet":
        """
        Load a registry from JSON:

            {"chains": {"ethereum": {"rpc_url": "...", "domain_id": 1, "igp": "0x..."}}}

        The chains listed in the file replace the default allow-list. Fields
        left out fall back to the built-in metadata for known chain names.
        """
        if env is None:
            env = os.environ
        try:
            with open(path, "r") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Cannot read chain config {path}: {e}") from e

        chains = raw.get("chains") if isinstance(raw, dict) else None
        if not isinstance(chains, dict) or not chains:
            raise ConfigError(f"Chain config {path} has no 'chains' mapping")

        connections = []
        for name, entry in chains.items():
            entry = entry or {}
            if not isinstance(entry, dict):
                raise ConfigError(f"Chain '{name}' must map to an object")
            meta = MAINNET_CHAINS.get(name)
            domain_id = entry.get("domain_id", meta.domain_id if meta else None)
            rpc = env.get(rpc_env_var(name)) or entry.get("rpc_url") or (meta.rpc_url if meta else None)
            if domain_id is None or not rpc:
                raise ConfigError(f"Chain '{name}' needs 'domain_id' and 'rpc_url'")
            if not isinstance(rpc, str):
                raise ConfigError(f"Chain '{name}': 'rpc_url' must be a string")
            igp = entry.get("igp")
            if igp is not None and not (isinstance(igp, str) and Web3.is_address(igp)):
                raise ConfigError(f"Chain '{name}': 'igp' is not an address: {igp!r}")
            try:
                domain_id = int(domain_id)
                chain_timeout = int(entry.get("timeout", timeout))
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Chain '{name}': {e}") from e
            connections.append(
                ChainConnection(name, domain_id, rpc, chain_timeout, igp)
            )
        return cls(connections)

    def __contains__(self, name: object) -> bool:
        return name in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[str]:
        return iter(self._connections)

    def names(self) -> Tuple[str, ...]:
        return tuple(self._connections)

    def connection(self, name: str) -> ChainConnection:
        try:
            return self._connections[name]
        except KeyError:
            supported = ", ".join(self._connections) or "none"
            raise UnsupportedChainError(
                f"Unsupported chain '{name}' (supported: {supported})"
            ) from None

    def domain_names(self) -> Dict[int, str]:
        """Static domain table with this registry's own domain ids layered on top."""
        merged = dict(DOMAIN_NAMES)
        for conn in self._connections.values():
            merged[conn.domain_id] = conn.name
        return merged

    def get_web3(self, name: str) -> Web3:
        conn = self.connection(name)
        w3 = self._clients.get(name)
        if w3 is None:
            w3 = Web3(Web3.HTTPProvider(conn.rpc_url, request_kwargs={"timeout": conn.timeout}))
            self._clients[name] = w3
        return w3
