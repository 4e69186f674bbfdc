from unittest.mock import MagicMock

import pytest
from web3 import Web3

from hyperlane_chains import ChainConnection, ChainProviderSet, UnsupportedChainError
from interchain_gas import (
    ENVIRONMENTS,
    UINT256_MAX,
    InterchainGasCalculator,
    InvalidHandleGasError,
    QuoteFailedError,
    UnknownEnvironmentError,
    decode_quote,
    encode_quote,
    quote_payment,
)


def make_providers(names=("ethereum", "polygon", "gnosis")):
    return ChainProviderSet.from_metadata(names=names, env={})


def fake_contract(overhead_gas=None, payment=123, error=None):
    contract = MagicMock()
    if overhead_gas is not None:
        contract.functions.destinationGasLimit.return_value.call.return_value = overhead_gas
    quote_call = contract.functions.quoteGasPayment.return_value.call
    if error is not None:
        quote_call.side_effect = error
    else:
        quote_call.return_value = payment
    return contract


def attach(providers, contract):
    w3 = MagicMock()
    w3.eth.contract.return_value = contract
    providers.get_web3 = MagicMock(return_value=w3)
    return w3


def test_from_environment_mainnet():
    calc = InterchainGasCalculator.from_environment("mainnet", make_providers())
    assert calc.igp_addresses == ENVIRONMENTS["mainnet"]
    assert calc.include_overhead is True


def test_from_environment_unknown():
    with pytest.raises(UnknownEnvironmentError, match="testnet9"):
        InterchainGasCalculator.from_environment("testnet9", make_providers())


def test_estimate_includes_destination_overhead():
    providers = make_providers()
    contract = fake_contract(overhead_gas=350000, payment=10**15)
    w3 = attach(providers, contract)
    calc = InterchainGasCalculator.from_environment("mainnet", providers)

    payment = calc.estimate_payment_for_handle_gas("ethereum", "polygon", 200000)

    assert payment == 10**15
    providers.get_web3.assert_called_once_with("ethereum")
    _, kwargs = w3.eth.contract.call_args
    assert kwargs["address"] == Web3.to_checksum_address(ENVIRONMENTS["mainnet"]["ethereum"])
    contract.functions.destinationGasLimit.assert_called_once_with(137, 200000)
    contract.functions.quoteGasPayment.assert_called_once_with(137, 350000)


def test_estimate_without_overhead():
    providers = make_providers()
    contract = fake_contract(payment=42)
    attach(providers, contract)
    calc = InterchainGasCalculator.from_environment("mainnet", providers, include_overhead=False)

    assert calc.estimate_payment_for_handle_gas("gnosis", "ethereum", "75000") == 42
    contract.functions.destinationGasLimit.assert_not_called()
    contract.functions.quoteGasPayment.assert_called_once_with(1, 75000)


def test_config_igp_address_wins():
    igp = "0x" + "ab" * 20
    providers = ChainProviderSet([
        ChainConnection("devnet", 31337, "http://127.0.0.1:8545", igp_address=igp),
        ChainConnection("ethereum", 1, "http://eth.local"),
    ])
    w3 = attach(providers, fake_contract(payment=7))
    calc = InterchainGasCalculator({}, providers, include_overhead=False)

    assert calc.estimate_payment_for_handle_gas("devnet", "ethereum", 1) == 7
    _, kwargs = w3.eth.contract.call_args
    assert kwargs["address"] == Web3.to_checksum_address(igp)


def test_origin_without_igp_is_unsupported():
    providers = ChainProviderSet([
        ChainConnection("devnet", 31337, "http://127.0.0.1:8545"),
        ChainConnection("ethereum", 1, "http://eth.local"),
    ])
    calc = InterchainGasCalculator.from_environment("mainnet", providers)
    with pytest.raises(UnsupportedChainError, match="devnet"):
        calc.estimate_payment_for_handle_gas("devnet", "ethereum", 1)


@pytest.mark.parametrize("origin,destination", [
    ("solana", "polygon"),
    ("ethereum", "solana"),
    ("ethereum", "arbitrum"),
    ("ethereum", "ethereum"),
])
def test_unsupported_routes_fail_before_rpc(origin, destination):
    providers = make_providers()
    providers.get_web3 = MagicMock()
    calc = InterchainGasCalculator.from_environment("mainnet", providers)
    with pytest.raises(UnsupportedChainError):
        calc.estimate_payment_for_handle_gas(origin, destination, 200000)
    providers.get_web3.assert_not_called()


@pytest.mark.parametrize("handle_gas", ["abc", "", "-1", -1, None, True, 2**256, "1.5"])
def test_invalid_handle_gas(handle_gas):
    calc = InterchainGasCalculator.from_environment("mainnet", make_providers())
    with pytest.raises(InvalidHandleGasError):
        calc.estimate_payment_for_handle_gas("ethereum", "polygon", handle_gas)


def test_rpc_failure_is_wrapped():
    providers = make_providers()
    boom = ConnectionError("connection refused")
    attach(providers, fake_contract(error=boom))
    calc = InterchainGasCalculator.from_environment("mainnet", providers, include_overhead=False)

    with pytest.raises(QuoteFailedError, match="connection refused") as info:
        calc.estimate_payment_for_handle_gas("ethereum", "polygon", 200000)
    assert info.value.__cause__ is boom


@pytest.mark.parametrize("bad", [-1, UINT256_MAX + 1, "12", None])
def test_invalid_quote_from_contract(bad):
    providers = make_providers()
    attach(providers, fake_contract(payment=bad))
    calc = InterchainGasCalculator.from_environment("mainnet", providers, include_overhead=False)
    with pytest.raises(QuoteFailedError):
        calc.estimate_payment_for_handle_gas("ethereum", "polygon", 200000)


def test_quote_payment_ok():
    calc = MagicMock()
    calc.estimate_payment_for_handle_gas.return_value = 99
    result = quote_payment(calc, "ethereum", "polygon", 200000)
    assert result.ok
    assert result.payment == 99
    assert result.error is None


def test_quote_payment_err():
    calc = InterchainGasCalculator.from_environment("mainnet", make_providers())
    result = quote_payment(calc, "ethereum", "solana", 200000)
    assert not result.ok
    assert result.payment is None
    assert "solana" in result.error


def test_encode_quote_is_one_big_endian_word():
    word = encode_quote(0x0102)
    assert len(word) == 32
    assert word == b"\x00" * 30 + b"\x01\x02"
    assert int.from_bytes(word, "big") == 0x0102


@pytest.mark.parametrize("value", [0, 1, 10**18, UINT256_MAX])
def test_encode_decode_round_trip(value):
    word = encode_quote(value)
    assert decode_quote(word) == value
    assert encode_quote(decode_quote(word)) == word


@pytest.mark.parametrize("value", [-1, UINT256_MAX + 1, 1.0, True])
def test_encode_quote_rejects_out_of_range(value):
    with pytest.raises(ValueError):
        encode_quote(value)


def test_decode_quote_requires_one_word():
    with pytest.raises(ValueError):
        decode_quote(b"\x00" * 31)


@pytest.mark.parametrize("igp", ["0x1234", 42])
def test_malformed_igp_address_is_unsupported(igp):
    providers = ChainProviderSet([
        ChainConnection("ethereum", 1, "http://eth.local", igp_address=igp),
        ChainConnection("polygon", 137, "http://polygon.local"),
    ])
    calc = InterchainGasCalculator.from_environment("mainnet", providers)
    with pytest.raises(UnsupportedChainError, match="not an address"):
        calc.estimate_payment_for_handle_gas("ethereum", "polygon", 200000)
    result = quote_payment(calc, "ethereum", "polygon", 200000)
    assert not result.ok


def test_client_construction_failure_is_wrapped():
    providers = make_providers()
    providers.get_web3 = MagicMock(side_effect=TypeError("bad rpc url"))
    calc = InterchainGasCalculator.from_environment("mainnet", providers)
    with pytest.raises(QuoteFailedError, match="bad rpc url"):
        calc.estimate_payment_for_handle_gas("ethereum", "polygon", 200000)
