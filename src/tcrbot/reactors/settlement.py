"""Reward settlement - withdrawal reports and failed-challenge releases."""

from __future__ import annotations

import logging

from tcrbot.chain.abi import format_human
from tcrbot.errors import DataConsistencyError
from tcrbot.interfaces.chain import ChainReader, ChainWriter
from tcrbot.interfaces.store import StateStore
from tcrbot.models.events import ChallengeFailed, Withdrawal
from tcrbot.reactors.notifier import WITHDRAWAL, NotificationEmitter
from tcrbot.reactors.resolver import AccountResolver
from tcrbot.reactors.steps import confirmed_step

log = logging.getLogger(__name__)


class RewardSettlement:
    """Releases unstaked deposit above the retention floor to listing owners."""

    def __init__(
        self,
        store: StateStore,
        accounts: AccountResolver,
        reader: ChainReader,
        writer: ChainWriter,
        notifier: NotificationEmitter,
        min_deposit: int,
        decimals: int = 18,
    ) -> None:
        self._store = store
        self._accounts = accounts
        self._reader = reader
        self._writer = writer
        self._notifier = notifier
        self._min_deposit = min_deposit
        self._decimals = decimals

    async def on_withdrawal(self, event: Withdrawal) -> bool:
        """Report a withdrawal to the owning account. Read-only on chain."""
        account = await self._accounts.by_wallet(event.owner)
        if account is None:
            log.info("Withdrawal from unknown owner %s", event.owner)
            return False

        listing = await self._notifier.listing_name(event.listing_hash)
        balance = await self._reader.get_token_balance(event.owner)

        await self._notifier.send_private(
            account.twitter_id,
            WITHDRAWAL.format(
                listing=listing,
                amount=format_human(event.withdrew, self._decimals),
                balance=format_human(balance, self._decimals),
            ),
        )
        return True

    async def on_challenge_failed(self, event: ChallengeFailed) -> str:
        """Release the owner's reward, then announce.

        A failed release raises before anything is announced.
        """
        name = await self._notifier.listing_name(event.listing_hash)
        log.info("Challenge against %s failed!", name)

        listing = await self._reader.get_listing(event.listing_hash)
        if listing is None:
            raise DataConsistencyError(
                f"Listing {name} (0x{event.listing_hash.hex()}) missing after failed challenge"
            )

        unstaked = listing.unstaked_deposit
        if unstaked > 0:
            reward = unstaked - self._min_deposit
            if reward > 0:
                log.info("Owner has unstaked tokens available, unlocking %d", reward)
                released = await confirmed_step(
                    self._store, self._writer, event.event_id, "release",
                    lambda: self._writer.submit_release(listing.owner, event.listing_hash, reward),
                )
                if released:
                    await self._store.log_activity(
                        "reward_released",
                        f"Released {format_human(reward, self._decimals)} to {name}",
                        event_id=event.event_id,
                        amount=reward,
                    )
            else:
                log.info(
                    "Unstaked deposit %d for %s does not exceed the minimum %d, nothing to release",
                    unstaked, name, self._min_deposit,
                )

        return await self._notifier.announce_challenge_failed(name)
