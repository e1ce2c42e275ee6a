"""Error taxonomy for the event-reaction pipeline.

Absence of an account or listing is never an error here: lookups return
None and the caller decides what that means.
"""

from __future__ import annotations

from tcrbot.models.records import ConfirmationStatus


class TCRBotError(Exception):
    """Base class for errors a reactor may surface to the dispatcher."""


class DecodeError(TCRBotError):
    """A log could not be decoded into a known domain event."""


class TransactionError(TCRBotError):
    """A custodial transaction failed to submit or to confirm."""

    def __init__(
        self,
        message: str,
        tx_hash: str | None = None,
        status: ConfirmationStatus | None = None,
    ) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash
        self.status = status


class DataConsistencyError(TCRBotError):
    """Chain or account state contradicts what the event implies."""


class WalletAlreadyLinkedError(DataConsistencyError):
    """An account already carries a different custodial wallet address."""


class MessagingError(TCRBotError):
    """A public post or private message could not be delivered."""
