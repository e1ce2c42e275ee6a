"""Read-only contract queries against the token and registry contracts."""

from __future__ import annotations

import logging

from eth_abi import decode as abi_decode
from web3 import AsyncWeb3, Web3

from tcrbot.chain.abi import LISTING_TYPES, ZERO_ADDRESS, encode_call
from tcrbot.models.records import Listing

log = logging.getLogger(__name__)


class ContractQueries:
    """Simulation-only calls (eth_call), no signing needed."""

    def __init__(
        self,
        w3: AsyncWeb3,
        token_address: str,
        registry_address: str,
    ) -> None:
        self._w3 = w3
        self._token = Web3.to_checksum_address(token_address)
        self._registry = Web3.to_checksum_address(registry_address)

    async def _call(self, to: str, data: bytes) -> bytes:
        result = await self._w3.eth.call({"to": to, "data": data})
        return bytes(result)

    async def get_token_balance(self, address: str) -> int:
        """Token balance for an address in atomic units."""
        raw = await self._call(
            self._token,
            encode_call("balanceOf(address)", [Web3.to_checksum_address(address)]),
        )
        (balance,) = abi_decode(["uint256"], raw)
        return balance

    async def get_listing(self, listing_hash: bytes) -> Listing | None:
        """Query a listing's current on-chain state.

        The registry returns a zeroed struct for unknown hashes; a listing
        without an owner does not exist.
        """
        raw = await self._call(
            self._registry, encode_call("listings(bytes32)", [listing_hash]),
        )
        expiry, whitelisted, owner, unstaked, challenge_id, data = abi_decode(
            LISTING_TYPES, raw,
        )
        if owner == ZERO_ADDRESS:
            return None
        return Listing(
            listing_hash=listing_hash,
            application_expiry=expiry,
            whitelisted=whitelisted,
            owner=Web3.to_checksum_address(owner),
            unstaked_deposit=unstaked,
            challenge_id=challenge_id,
            data=data,
        )

    async def get_listing_data(self, listing_hash: bytes) -> str:
        """Display data for a listing, empty when the listing is gone."""
        listing = await self.get_listing(listing_hash)
        if listing is None:
            log.debug("No on-chain listing for 0x%s", listing_hash.hex()[:16])
            return ""
        return listing.data
