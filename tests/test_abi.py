"""Token unit conversion and call encoding."""

from __future__ import annotations

from decimal import Decimal

from eth_abi import decode as abi_decode

from tcrbot.chain.abi import (
    encode_call,
    format_human,
    function_selector,
    to_atomic,
    to_human,
)

from tests.factories import WALLET


def test_atomic_human_conversion():
    assert to_atomic(1550, 18) == 1550 * 10**18
    assert to_atomic("12.5", 2) == 1250
    assert to_human(500 * 10**18, 18) == Decimal(500)


def test_format_human_drops_trailing_zeros():
    assert format_human(500 * 10**18, 18) == "500"
    assert format_human(125 * 10**17, 18) == "12.5"
    assert format_human(0, 18) == "0"
    assert format_human(700, 0) == "700"


def test_encode_call_matches_selector_and_args():
    calldata = encode_call("mint(address,uint256)", [WALLET, 1550])

    assert calldata[:4] == function_selector("mint(address,uint256)")
    # ERC-20 transfer selector as a sanity check of the hashing
    assert function_selector("transfer(address,uint256)").hex() == "a9059cbb"

    address, amount = abi_decode(["address", "uint256"], calldata[4:])
    assert address.lower() == WALLET.lower()
    assert amount == 1550


def test_encode_call_without_args():
    assert encode_call("totalSupply()", []) == function_selector("totalSupply()")


def test_large_amounts_keep_every_digit():
    atomic = 12345678901234567890123456789012

    assert format_human(atomic, 18) == "12345678901234.567890123456789012"
    assert to_atomic("12345678901234.567890123456789012", 18) == atomic

    largest = str(2**256 - 1)
    assert format_human(2**256 - 1, 18) == f"{largest[:-18]}.{largest[-18:]}"
