"""Account and listing resolution.

Both resolvers report absence as None; only a failing store or RPC call
is an error.
"""

from __future__ import annotations

import logging

from tcrbot.interfaces.chain import ChainReader
from tcrbot.interfaces.store import StateStore
from tcrbot.models.records import Account

log = logging.getLogger(__name__)


class AccountResolver:
    """Maps wallet addresses and factory identifiers to linked accounts."""

    def __init__(self, store: StateStore) -> None:
        self._store = store

    async def by_wallet(self, address: str) -> Account | None:
        account = await self._store.find_account_by_wallet(address)
        if account is None:
            log.debug("No account linked to wallet %s", address)
        return account

    async def by_factory_identifier(self, identifier: int) -> Account | None:
        account = await self._store.find_account_by_factory_identifier(identifier)
        if account is None:
            log.debug("No account pending factory identifier %d", identifier)
        return account

    async def attach_wallet(self, account: Account, address: str) -> bool:
        attached = await self._store.set_multisig_address(account.id, address)
        if attached:
            account.multisig_address = address
        return attached


class ListingResolver:
    """Resolves a listing hash to its display data.

    The registry deletes a listing when it is removed, so the data seen in
    earlier application events is kept locally and consulted first.
    """

    def __init__(self, store: StateStore, reader: ChainReader) -> None:
        self._store = store
        self._reader = reader

    async def remember(self, listing_hash: bytes, data: str) -> None:
        if data:
            await self._store.save_listing_data(listing_hash, data)

    async def display_data(self, listing_hash: bytes) -> str | None:
        data = await self._store.get_listing_data(listing_hash)
        if data:
            return data
        data = await self._reader.get_listing_data(listing_hash)
        if data:
            await self._store.save_listing_data(listing_hash, data)
            return data
        return None
