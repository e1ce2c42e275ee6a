"""Internal record types for state persistence and operation results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass
class Account:
    """A linked social identity as persisted in the state store."""

    id: int
    twitter_id: str
    twitter_handle: str
    multisig_address: str | None = None
    multisig_factory_identifier: int | None = None
    created_at: str = ""


@dataclass(frozen=True)
class Listing:
    """A registry entry as returned by the registry's listings() getter."""

    listing_hash: bytes
    application_expiry: int
    whitelisted: bool
    owner: str
    unstaked_deposit: int  # atomic
    challenge_id: int
    data: str


@dataclass(frozen=True)
class TxHandle:
    """A submitted, not yet confirmed, custodial transaction."""

    tx_hash: str
    nonce: int
    action: str  # "mint", "approve", "deposit", "release"


class ConfirmationStatus(str, Enum):
    CONFIRMED = "confirmed"
    TIMED_OUT = "timed_out"
    REJECTED = "rejected"


@dataclass
class ConfirmationResult:
    """Outcome of waiting for a transaction to reach the required depth."""

    status: ConfirmationStatus
    tx_hash: str
    block_number: int | None = None
    confirmations: int = 0
    attempts: int = 0

    @property
    def confirmed(self) -> bool:
        return self.status is ConfirmationStatus.CONFIRMED


@dataclass
class DispatchResult:
    """Result of routing one raw log through the pipeline."""

    event_id: str
    success: bool
    event_type: str | None = None  # None when decoding failed
    skipped: bool = False  # already in the processed-event ledger
    error: str | None = None


@dataclass
class ActivityRecord:
    """A single activity log entry."""

    id: int
    event_type: str
    event_id: str | None
    account_id: int | None
    amount: int | None  # atomic
    message: str
    created_at: str
