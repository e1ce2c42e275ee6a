"""Mock implementations of all external-facing components."""

from __future__ import annotations

import itertools

from tcrbot.errors import MessagingError, TransactionError
from tcrbot.models.events import RawLogEvent
from tcrbot.models.records import (
    ConfirmationResult,
    ConfirmationStatus,
    Listing,
    TxHandle,
)


class MockPoller:
    """Implements LogPoller protocol. Returns pre-loaded log lists.

    Staged logs are handed out again until the poll is committed.
    """

    def __init__(self) -> None:
        self.logs: list[RawLogEvent] = []
        self.commits = 0
        self._cursor: int | None = None

    async def poll(self) -> list[RawLogEvent]:
        return list(self.logs)

    def commit(self) -> None:
        self.commits += 1
        if self.logs:
            self._cursor = max(r.block_number for r in self.logs)
            self.logs.clear()

    async def get_cursor(self) -> int | None:
        return self._cursor

    def set_cursor(self, block: int) -> None:
        self._cursor = block

    def enqueue(self, *logs: RawLogEvent) -> None:
        """Test helper: stage logs for next poll."""
        self.logs.extend(logs)


class MockChainWriter:
    """Implements ChainWriter protocol.

    ``fail_submit`` names actions whose submission raises; ``confirm``
    maps actions to the confirmation status they resolve to.
    """

    def __init__(
        self,
        fail_submit: set[str] | None = None,
        confirm: dict[str, ConfirmationStatus] | None = None,
    ) -> None:
        self.fail_submit = fail_submit or set()
        self.confirm = confirm or {}
        self.calls: list[tuple] = []  # (action, *args) in submission order
        self.confirmations: list[str] = []
        self._hashes = itertools.count(1)

    def _handle(self, action: str) -> TxHandle:
        n = next(self._hashes)
        return TxHandle(tx_hash=f"0x{n:064x}", nonce=n - 1, action=action)

    async def _submit(self, action: str, *args) -> TxHandle:
        if action in self.fail_submit:
            raise TransactionError(f"{action} rejected: mock failure")
        self.calls.append((action, *args))
        return self._handle(action)

    async def submit_mint(self, wallet: str, amount: int) -> TxHandle:
        return await self._submit("mint", wallet, amount)

    async def submit_deposit(self, wallet: str, amount: int) -> TxHandle:
        return await self._submit("deposit", wallet, amount)

    async def submit_release(self, wallet: str, listing_hash: bytes, amount: int) -> TxHandle:
        return await self._submit("release", wallet, listing_hash, amount)

    async def await_confirmation(self, handle: TxHandle) -> ConfirmationResult:
        self.confirmations.append(handle.action)
        status = self.confirm.get(handle.action, ConfirmationStatus.CONFIRMED)
        return ConfirmationResult(
            status=status,
            tx_hash=handle.tx_hash,
            block_number=100 if status is not ConfirmationStatus.TIMED_OUT else None,
            confirmations=1 if status is ConfirmationStatus.CONFIRMED else 0,
            attempts=1,
        )

    def actions(self) -> list[str]:
        return [c[0] for c in self.calls]


class MockQueries:
    """Implements ChainReader protocol from in-memory balances and listings."""

    def __init__(
        self,
        balances: dict[str, int] | None = None,
        listings: dict[bytes, Listing] | None = None,
    ) -> None:
        self.balances = {k.lower(): v for k, v in (balances or {}).items()}
        self.listings = dict(listings or {})
        self.balance_calls: list[str] = []

    async def get_token_balance(self, address: str) -> int:
        self.balance_calls.append(address)
        return self.balances.get(address.lower(), 0)

    async def get_listing(self, listing_hash: bytes) -> Listing | None:
        return self.listings.get(listing_hash)

    async def get_listing_data(self, listing_hash: bytes) -> str:
        listing = self.listings.get(listing_hash)
        return listing.data if listing else ""

    def add_listing(self, listing: Listing) -> None:
        self.listings[listing.listing_hash] = listing


class MockMessenger:
    """Implements Messenger protocol."""

    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.posts: list[str] = []
        self.private: list[tuple[str, str]] = []

    async def send_public_post(self, text: str) -> None:
        if not self.succeed:
            raise MessagingError("mock post failure")
        self.posts.append(text)

    async def send_private_message(self, recipient_id: str, text: str) -> None:
        if not self.succeed:
            raise MessagingError("mock dm failure")
        self.private.append((recipient_id, text))
