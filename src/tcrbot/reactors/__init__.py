"""Event reactors: wallet provisioning, reward settlement and notifications."""

from tcrbot.reactors.notifier import NotificationEmitter
from tcrbot.reactors.provisioner import WalletProvisioner
from tcrbot.reactors.resolver import AccountResolver, ListingResolver
from tcrbot.reactors.settlement import RewardSettlement

__all__ = [
    "NotificationEmitter",
    "WalletProvisioner",
    "AccountResolver", "ListingResolver",
    "RewardSettlement",
]
