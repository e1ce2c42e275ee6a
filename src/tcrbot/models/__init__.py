"""Data models for the tcrbot daemon."""

from tcrbot.models.events import (
    RawLogEvent,
    WalletInstantiated,
    Withdrawal,
    Application,
    Challenge,
    ApplicationWhitelisted,
    ChallengeSucceeded,
    ChallengeFailed,
    ApplicationRemoved,
)
from tcrbot.models.records import (
    Account,
    Listing,
    TxHandle,
    ConfirmationStatus,
    ConfirmationResult,
    DispatchResult,
    ActivityRecord,
)
from tcrbot.models.config import BotConfig, TokenConfig

__all__ = [
    "RawLogEvent", "WalletInstantiated", "Withdrawal", "Application",
    "Challenge", "ApplicationWhitelisted", "ChallengeSucceeded",
    "ChallengeFailed", "ApplicationRemoved",
    "Account", "Listing", "TxHandle", "ConfirmationStatus",
    "ConfirmationResult", "DispatchResult", "ActivityRecord",
    "BotConfig", "TokenConfig",
]
