"""Contract ABI fragments, event signatures and token unit conversion."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Any, Sequence

from eth_abi import encode as abi_encode
from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Decimal digits in the largest uint256, enough for exact token arithmetic
UINT256_DIGITS = 78

# Contract roles a log may be emitted from
REGISTRY = "registry"
FACTORY = "factory"


@dataclass(frozen=True)
class EventSpec:
    """Shape of one contract event: indexed params travel as topics."""

    name: str
    signature: str
    source: str  # REGISTRY or FACTORY
    indexed: tuple[tuple[str, str], ...]
    data: tuple[tuple[str, str], ...]

    @property
    def topic0(self) -> bytes:
        return bytes(Web3.keccak(text=self.signature))


EVENT_SPECS: tuple[EventSpec, ...] = (
    EventSpec(
        name="ContractInstantiation",
        signature="ContractInstantiation(address,address,uint256)",
        source=FACTORY,
        indexed=(),
        data=(("sender", "address"), ("instantiation", "address"), ("identifier", "uint256")),
    ),
    EventSpec(
        name="_Application",
        signature="_Application(bytes32,uint256,uint256,string,address)",
        source=REGISTRY,
        indexed=(("listingHash", "bytes32"), ("applicant", "address")),
        data=(("deposit", "uint256"), ("appEndDate", "uint256"), ("data", "string")),
    ),
    EventSpec(
        name="_Challenge",
        signature="_Challenge(bytes32,uint256,string,uint256,uint256,address)",
        source=REGISTRY,
        indexed=(("listingHash", "bytes32"), ("challenger", "address")),
        data=(
            ("challengeID", "uint256"),
            ("data", "string"),
            ("commitEndDate", "uint256"),
            ("revealEndDate", "uint256"),
        ),
    ),
    EventSpec(
        name="_ApplicationWhitelisted",
        signature="_ApplicationWhitelisted(bytes32)",
        source=REGISTRY,
        indexed=(("listingHash", "bytes32"),),
        data=(),
    ),
    EventSpec(
        name="_ApplicationRemoved",
        signature="_ApplicationRemoved(bytes32)",
        source=REGISTRY,
        indexed=(("listingHash", "bytes32"),),
        data=(),
    ),
    EventSpec(
        name="_ChallengeFailed",
        signature="_ChallengeFailed(bytes32,uint256,uint256,uint256)",
        source=REGISTRY,
        indexed=(("listingHash", "bytes32"), ("challengeID", "uint256")),
        data=(("rewardPool", "uint256"), ("totalTokens", "uint256")),
    ),
    EventSpec(
        name="_ChallengeSucceeded",
        signature="_ChallengeSucceeded(bytes32,uint256,uint256,uint256)",
        source=REGISTRY,
        indexed=(("listingHash", "bytes32"), ("challengeID", "uint256")),
        data=(("rewardPool", "uint256"), ("totalTokens", "uint256")),
    ),
    EventSpec(
        name="_Withdrawal",
        signature="_Withdrawal(bytes32,uint256,uint256,address)",
        source=REGISTRY,
        indexed=(("listingHash", "bytes32"), ("owner", "address")),
        data=(("withdrew", "uint256"), ("newTotal", "uint256")),
    ),
)

EVENTS_BY_TOPIC: dict[bytes, EventSpec] = {spec.topic0: spec for spec in EVENT_SPECS}

# Return shape of Registry.listings(bytes32)
LISTING_TYPES = ["uint256", "bool", "address", "uint256", "uint256", "string"]


# ── Calls ──────────────────────────────────────────────


def function_selector(signature: str) -> bytes:
    return bytes(Web3.keccak(text=signature))[:4]


def encode_call(signature: str, args: Sequence[Any]) -> bytes:
    """ABI-encode a call from its canonical signature, e.g. ``mint(address,uint256)``."""
    types = signature[signature.index("(") + 1:-1]
    arg_types = [t for t in types.split(",") if t]
    return function_selector(signature) + abi_encode(arg_types, list(args))


def listing_hash(data: str) -> bytes:
    """Listings are keyed by keccak256 of their display data."""
    return bytes(Web3.keccak(text=data))


# ── Token units ────────────────────────────────────────


def to_atomic(human: int | str | Decimal, decimals: int) -> int:
    """Convert a human token amount to contract-native units."""
    with localcontext() as ctx:
        ctx.prec = UINT256_DIGITS
        return int(Decimal(str(human)).scaleb(decimals))


def to_human(atomic: int, decimals: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = UINT256_DIGITS
        return Decimal(atomic).scaleb(-decimals)


def format_human(atomic: int, decimals: int) -> str:
    """Render an atomic amount for message text: ``500``, ``12.5``."""
    value = to_human(atomic, decimals)
    with localcontext() as ctx:
        ctx.prec = UINT256_DIGITS
        if value == value.to_integral_value():
            return str(int(value))
        return format(value.normalize(), "f")
