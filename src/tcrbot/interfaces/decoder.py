"""EventDecoder protocol - turns raw logs into typed domain events."""

from __future__ import annotations

from typing import Protocol, Union

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

DomainEvent = Union[
    WalletInstantiated,
    Withdrawal,
    Application,
    Challenge,
    ApplicationWhitelisted,
    ChallengeSucceeded,
    ChallengeFailed,
    ApplicationRemoved,
]


class EventDecoder(Protocol):
    """Decodes one raw log into exactly one domain event."""

    def decode(self, raw: RawLogEvent) -> DomainEvent:
        """Raise DecodeError for unknown signatures or malformed payloads."""
        ...
