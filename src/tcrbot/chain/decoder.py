"""ABI event decoder - turns raw registry/factory logs into domain events."""

from __future__ import annotations

import logging
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from tcrbot.chain.abi import EVENTS_BY_TOPIC, FACTORY, REGISTRY, EventSpec
from tcrbot.errors import DecodeError
from tcrbot.interfaces.decoder import DomainEvent
from tcrbot.models.events import (
    Application,
    ApplicationRemoved,
    ApplicationWhitelisted,
    Challenge,
    ChallengeFailed,
    ChallengeSucceeded,
    RawLogEvent,
    WalletInstantiated,
    Withdrawal,
)

log = logging.getLogger(__name__)


def _normalize(abi_type: str, value: Any) -> Any:
    if abi_type == "address":
        return Web3.to_checksum_address(value)
    if abi_type == "bytes32":
        return bytes(value)
    return value


def _decode_fields(spec: EventSpec, raw: RawLogEvent) -> dict[str, Any]:
    """Decode indexed params from topics[1:] and the rest from the payload."""
    if len(raw.topics) != len(spec.indexed) + 1:
        raise DecodeError(
            f"{spec.name}: expected {len(spec.indexed) + 1} topics, got {len(raw.topics)}"
        )

    fields: dict[str, Any] = {}
    try:
        for (name, abi_type), topic in zip(spec.indexed, raw.topics[1:]):
            (value,) = abi_decode([abi_type], bytes(topic))
            fields[name] = _normalize(abi_type, value)

        if spec.data:
            values = abi_decode([t for _, t in spec.data], bytes(raw.data))
            for (name, abi_type), value in zip(spec.data, values):
                fields[name] = _normalize(abi_type, value)
        elif raw.data:
            raise DecodeError(f"{spec.name}: unexpected payload of {len(raw.data)} bytes")
    except (DecodingError, ValueError, TypeError) as exc:
        raise DecodeError(f"{spec.name}: malformed log: {exc}") from exc

    return fields


def _build(spec: EventSpec, f: dict[str, Any], raw: RawLogEvent) -> DomainEvent:
    ctx = dict(event_id=raw.event_id, block_number=raw.block_number)

    if spec.name == "ContractInstantiation":
        return WalletInstantiated(
            sender=f["sender"], wallet=f["instantiation"], identifier=f["identifier"], **ctx,
        )
    if spec.name == "_Application":
        return Application(
            listing_hash=f["listingHash"],
            deposit=f["deposit"],
            app_end_date=f["appEndDate"],
            data=f["data"],
            applicant=f["applicant"],
            **ctx,
        )
    if spec.name == "_Challenge":
        return Challenge(
            listing_hash=f["listingHash"],
            challenge_id=f["challengeID"],
            data=f["data"],
            commit_end_date=f["commitEndDate"],
            reveal_end_date=f["revealEndDate"],
            challenger=f["challenger"],
            **ctx,
        )
    if spec.name == "_ApplicationWhitelisted":
        return ApplicationWhitelisted(listing_hash=f["listingHash"], **ctx)
    if spec.name == "_ApplicationRemoved":
        return ApplicationRemoved(listing_hash=f["listingHash"], **ctx)
    if spec.name == "_ChallengeFailed":
        return ChallengeFailed(
            listing_hash=f["listingHash"],
            challenge_id=f["challengeID"],
            reward_pool=f["rewardPool"],
            total_tokens=f["totalTokens"],
            **ctx,
        )
    if spec.name == "_ChallengeSucceeded":
        return ChallengeSucceeded(
            listing_hash=f["listingHash"],
            challenge_id=f["challengeID"],
            reward_pool=f["rewardPool"],
            total_tokens=f["totalTokens"],
            **ctx,
        )
    if spec.name == "_Withdrawal":
        return Withdrawal(
            listing_hash=f["listingHash"],
            withdrew=f["withdrew"],
            new_total=f["newTotal"],
            owner=f["owner"],
            **ctx,
        )
    raise DecodeError(f"No domain event for {spec.name}")


class AbiEventDecoder:
    """Decodes logs from the registry and the multisig wallet factory.

    When contract addresses are configured, a log is only accepted from the
    contract that owns its signature; a factory signature emitted by some
    other contract is a decode failure, not a wallet creation.
    """

    def __init__(self, registry_address: str = "", factory_address: str = "") -> None:
        self._sources = {
            REGISTRY: registry_address.lower(),
            FACTORY: factory_address.lower(),
        }

    def decode(self, raw: RawLogEvent) -> DomainEvent:
        if not raw.topics:
            raise DecodeError(f"Log {raw.event_id} has no topics")

        spec = EVENTS_BY_TOPIC.get(bytes(raw.topics[0]))
        if spec is None:
            raise DecodeError(f"Unknown event signature 0x{bytes(raw.topics[0]).hex()}")

        expected = self._sources[spec.source]
        if expected and raw.address.lower() != expected:
            raise DecodeError(
                f"{spec.name} from unexpected contract {raw.address} (expected {spec.source})"
            )

        event = _build(spec, _decode_fields(spec, raw), raw)
        log.debug("Decoded %s at block %d", type(event).__name__, raw.block_number)
        return event
