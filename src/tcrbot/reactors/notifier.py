"""Notification emitter - maps registry events to public and private messages."""

from __future__ import annotations

import logging

from tcrbot.chain.abi import format_human
from tcrbot.errors import DataConsistencyError
from tcrbot.interfaces.chain import ChainReader
from tcrbot.interfaces.messenger import Messenger
from tcrbot.models.events import (
    Application,
    ApplicationRemoved,
    ApplicationWhitelisted,
    Challenge,
    ChallengeSucceeded,
)
from tcrbot.reactors.resolver import AccountResolver, ListingResolver

log = logging.getLogger(__name__)

NEW_APPLICATION_WITH_HANDLE = (
    "New #TCRParty listing! @{handle} has nominated @{listing} to be on the list "
    "for {deposit} {symbol}. Challenge this application by DMing 'challenge @{listing}'."
)
NEW_APPLICATION_WITHOUT_HANDLE = (
    "New #TCRParty listing! @{listing} has been nominated to be on the list "
    "for {deposit} {symbol}. Challenge this application by DMing 'challenge @{listing}'."
)
NEW_CHALLENGE = (
    "New #TCRParty challenge! @{listing}'s listing has been put to the test. "
    "Send me a DM with 'vote {listing} keep/kick' to determine their fate."
)
APPLICATION_WHITELISTED = "@{listing} has been successfully added to the #TCRParty!"
APPLICATION_REMOVED = "@{listing} has been removed from the #TCRParty."
CHALLENGE_SUCCEEDED = (
    "The challenge against @{listing}'s listing succeeded! They're out of the party."
)
CHALLENGE_FAILED = (
    "The challenge against @{listing}'s listing failed! Their spot in the party remains."
)
WALLET_CONFIRMED = (
    "Done! Your wallet is good to go and has {balance} {symbol} waiting for you. "
    "Try responding with 'help' to see what you can ask me to do."
)
WITHDRAWAL = (
    "The challenge against your listing for {listing} failed! As a result you've "
    "won {amount} tokens. Your new balance is {balance}"
)


def render_application(listing: str, deposit: str, handle: str | None, symbol: str = "TCRP") -> str:
    if handle:
        return NEW_APPLICATION_WITH_HANDLE.format(
            handle=handle, listing=listing, deposit=deposit, symbol=symbol,
        )
    return NEW_APPLICATION_WITHOUT_HANDLE.format(listing=listing, deposit=deposit, symbol=symbol)


class NotificationEmitter:
    """Sends one message per registry event.

    An unresolved applicant handle degrades the template; it never blocks
    the announcement.
    """

    def __init__(
        self,
        messenger: Messenger,
        reader: ChainReader,
        accounts: AccountResolver,
        listings: ListingResolver,
        decimals: int = 18,
        symbol: str = "TCRP",
    ) -> None:
        self._messenger = messenger
        self._reader = reader
        self._accounts = accounts
        self._listings = listings
        self._decimals = decimals
        self._symbol = symbol

    async def listing_name(self, listing_hash: bytes) -> str:
        """Display data for a listing, or DataConsistencyError if unknown."""
        data = await self._listings.display_data(listing_hash)
        if not data:
            raise DataConsistencyError(f"No display data for listing 0x{listing_hash.hex()}")
        return data

    async def _applicant_handle(self, applicant: str) -> str | None:
        try:
            account = await self._accounts.by_wallet(applicant)
        except Exception as exc:
            log.warning("Account lookup for applicant %s failed, omitting handle: %s", applicant, exc)
            return None
        return account.twitter_handle if account else None

    async def on_application(self, event: Application) -> str:
        log.info(
            "New application from %s for %s (hash: 0x%s)",
            event.applicant, event.data, event.listing_hash.hex(),
        )
        await self._listings.remember(event.listing_hash, event.data)

        handle = await self._applicant_handle(event.applicant)
        text = render_application(
            listing=event.data,
            deposit=format_human(event.deposit, self._decimals),
            handle=handle,
            symbol=self._symbol,
        )
        await self._messenger.send_public_post(text)
        return text

    async def on_challenge(self, event: Challenge) -> str:
        # A challenge cannot precede its listing
        listing = await self._reader.get_listing(event.listing_hash)
        if listing is None:
            raise DataConsistencyError(
                f"Could not find listing for challenge {event.challenge_id} "
                f"(listing: 0x{event.listing_hash.hex()})"
            )
        name = event.data or listing.data
        await self._listings.remember(event.listing_hash, name)

        log.info("New challenge for %s (hash: 0x%s)", name, event.listing_hash.hex())
        text = NEW_CHALLENGE.format(listing=name)
        await self._messenger.send_public_post(text)
        return text

    async def _announce(self, template: str, listing_hash: bytes, what: str) -> str:
        name = await self.listing_name(listing_hash)
        log.info("%s: %s", what, name)
        text = template.format(listing=name)
        await self._messenger.send_public_post(text)
        return text

    async def on_whitelisted(self, event: ApplicationWhitelisted) -> str:
        return await self._announce(APPLICATION_WHITELISTED, event.listing_hash, "Application whitelisted")

    async def on_removed(self, event: ApplicationRemoved) -> str:
        return await self._announce(APPLICATION_REMOVED, event.listing_hash, "Application removed")

    async def on_challenge_succeeded(self, event: ChallengeSucceeded) -> str:
        return await self._announce(CHALLENGE_SUCCEEDED, event.listing_hash, "Challenge succeeded")

    async def announce_challenge_failed(self, listing: str) -> str:
        """Public half of the failed-challenge flow; settlement runs first."""
        text = CHALLENGE_FAILED.format(listing=listing)
        await self._messenger.send_public_post(text)
        return text

    async def send_private(self, recipient_id: str, text: str) -> None:
        await self._messenger.send_private_message(recipient_id, text)
