"""StateStore protocol - account linkage, event ledger and activity log."""

from __future__ import annotations

from typing import Protocol, Sequence

from tcrbot.models.records import Account, ActivityRecord


class AccountStore(Protocol):
    """Account linkage. Lookups return None for "not found"."""

    async def find_account_by_wallet(self, address: str) -> Account | None:
        ...

    async def find_account_by_factory_identifier(
        self, identifier: int,
    ) -> Account | None:
        ...

    async def set_multisig_address(self, account_id: int, address: str) -> bool:
        """Return False if already attached; raise if a different wallet is."""
        ...


class EventLedger(Protocol):
    """Durable record of processed events and completed side effects."""

    async def is_event_processed(self, event_id: str) -> bool:
        ...

    async def mark_event_processed(self, event_id: str, event_type: str) -> None:
        ...

    async def get_completed_step(self, event_id: str, step: str) -> str | None:
        """Return the tx hash of a confirmed step, or None."""
        ...

    async def mark_step_completed(
        self, event_id: str, step: str, tx_hash: str,
    ) -> None:
        ...


class StateStore(AccountStore, EventLedger, Protocol):
    """Persists daemon state for crash recovery."""

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        ...

    async def close(self) -> None:
        ...

    # ── Cursor ─────────────────────────────────────────────

    async def get_cursor(self) -> int | None:
        ...

    async def set_cursor(self, block: int) -> None:
        ...

    # ── Accounts ───────────────────────────────────────────

    async def create_account(
        self,
        twitter_id: str,
        twitter_handle: str,
        multisig_factory_identifier: int | None = None,
    ) -> Account:
        ...

    async def get_all_accounts(self) -> list[Account]:
        ...

    # ── Listing data ───────────────────────────────────────

    async def save_listing_data(self, listing_hash: bytes, data: str) -> None:
        ...

    async def get_listing_data(self, listing_hash: bytes) -> str | None:
        ...

    # ── Activity log ───────────────────────────────────────

    async def log_activity(
        self,
        event_type: str,
        message: str,
        event_id: str | None = None,
        account_id: int | None = None,
        amount: int | None = None,
    ) -> None:
        ...

    async def get_recent_activity(
        self, limit: int = 50, event_types: Sequence[str] | None = None,
    ) -> list[ActivityRecord]:
        ...
