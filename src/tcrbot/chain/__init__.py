"""Ethereum integration: log polling, decoding, queries and custodial writes."""

from tcrbot.chain.decoder import AbiEventDecoder
from tcrbot.chain.poller import Web3LogPoller
from tcrbot.chain.queries import ContractQueries
from tcrbot.chain.writer import Web3ChainWriter

__all__ = ["AbiEventDecoder", "Web3LogPoller", "ContractQueries", "Web3ChainWriter"]
