"""Protocol interfaces for all tcrbot components."""

from tcrbot.interfaces.poller import LogPoller
from tcrbot.interfaces.decoder import DomainEvent, EventDecoder
from tcrbot.interfaces.chain import ChainReader, ChainWriter
from tcrbot.interfaces.messenger import Messenger
from tcrbot.interfaces.store import AccountStore, EventLedger, StateStore

__all__ = [
    "LogPoller",
    "DomainEvent", "EventDecoder",
    "ChainReader", "ChainWriter",
    "Messenger",
    "AccountStore", "EventLedger", "StateStore",
]
