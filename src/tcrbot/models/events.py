"""Contract event models decoded from registry and wallet-factory logs."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RawLogEvent:
    """An undecoded log record as delivered by the chain poller."""

    address: str  # checksummed emitting contract
    topics: tuple[bytes, ...]  # topic[0] is the event signature hash
    data: bytes
    block_number: int
    transaction_hash: str  # 0x-prefixed hex
    log_index: int

    @property
    def event_id(self) -> str:
        """Unique delivery key: a log is identified by its tx and position."""
        return f"{self.transaction_hash.lower()}:{self.log_index}"


@dataclass(frozen=True)
class WalletInstantiated:
    """Emitted by the multisig factory when a custodial wallet is deployed.

    The identifier is the value the bot passed when requesting the
    deployment; it ties the new wallet back to the pending account.
    """

    sender: str
    wallet: str
    identifier: int
    event_id: str
    block_number: int


@dataclass(frozen=True)
class Withdrawal:
    """Emitted by the registry when a listing owner withdraws unstaked tokens."""

    listing_hash: bytes
    withdrew: int  # atomic
    new_total: int  # atomic
    owner: str
    event_id: str
    block_number: int


@dataclass(frozen=True)
class Application:
    """Emitted by the registry for a new listing application (_Application)."""

    listing_hash: bytes
    deposit: int  # atomic
    app_end_date: int
    data: str  # listing display data (the nominee's handle)
    applicant: str
    event_id: str
    block_number: int


@dataclass(frozen=True)
class Challenge:
    """Emitted when a listing is challenged (_Challenge)."""

    listing_hash: bytes
    challenge_id: int
    data: str
    commit_end_date: int
    reveal_end_date: int
    challenger: str
    event_id: str
    block_number: int


@dataclass(frozen=True)
class ApplicationWhitelisted:
    listing_hash: bytes
    event_id: str
    block_number: int


@dataclass(frozen=True)
class ChallengeSucceeded:
    listing_hash: bytes
    challenge_id: int
    reward_pool: int  # atomic
    total_tokens: int  # atomic
    event_id: str
    block_number: int


@dataclass(frozen=True)
class ChallengeFailed:
    """The listing survived a challenge; its owner may be owed a reward."""

    listing_hash: bytes
    challenge_id: int
    reward_pool: int  # atomic
    total_tokens: int  # atomic
    event_id: str
    block_number: int


@dataclass(frozen=True)
class ApplicationRemoved:
    listing_hash: bytes
    event_id: str
    block_number: int
