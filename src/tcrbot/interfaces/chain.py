"""ChainWriter / ChainReader protocols - custodial writes and contract reads."""

from __future__ import annotations

from typing import Protocol

from tcrbot.models.records import ConfirmationResult, Listing, TxHandle


class ChainWriter(Protocol):
    """Submits transactions signed by the custodial minter key.

    Implementations must serialize submission: one sender, one nonce
    sequence.
    """

    async def submit_mint(self, wallet: str, amount: int) -> TxHandle:
        ...

    async def submit_deposit(self, wallet: str, amount: int) -> TxHandle:
        """Lock ``amount`` from ``wallet`` into the voting contract."""
        ...

    async def submit_release(
        self, wallet: str, listing_hash: bytes, amount: int,
    ) -> TxHandle:
        """Withdraw ``amount`` of unstaked deposit from a listing to its owner."""
        ...

    async def await_confirmation(self, handle: TxHandle) -> ConfirmationResult:
        """Wait, bounded, for the transaction to reach the required depth."""
        ...


class ChainReader(Protocol):
    """Read-only contract queries."""

    async def get_token_balance(self, address: str) -> int:
        ...

    async def get_listing(self, listing_hash: bytes) -> Listing | None:
        """Return None when the registry has no such listing."""
        ...

    async def get_listing_data(self, listing_hash: bytes) -> str:
        ...
