"""Custodial wallet provisioner - funds and enrolls newly deployed wallets."""

from __future__ import annotations

import logging

from tcrbot.chain.abi import format_human
from tcrbot.interfaces.chain import ChainReader, ChainWriter
from tcrbot.interfaces.messenger import Messenger
from tcrbot.interfaces.store import StateStore
from tcrbot.models.events import WalletInstantiated
from tcrbot.reactors.notifier import WALLET_CONFIRMED
from tcrbot.reactors.resolver import AccountResolver
from tcrbot.reactors.steps import confirmed_step

log = logging.getLogger(__name__)


class WalletProvisioner:
    """Reacts to multisig deployments requested on behalf of an account.

    Sequence, each step a precondition for the next:
    1. Resolve the factory identifier to a pending account
    2. Attach the wallet address to that account
    3. Mint the initial token amount, wait for confirmation
    4. Deposit part of it into the voting contract, wait for confirmation
    5. DM the account its balance (skipped during pre-registration)
    """

    def __init__(
        self,
        store: StateStore,
        accounts: AccountResolver,
        reader: ChainReader,
        writer: ChainWriter,
        messenger: Messenger,
        initial_mint: int,
        vote_deposit: int,
        decimals: int = 18,
        symbol: str = "TCRP",
        preregistration: bool = False,
    ) -> None:
        if not 0 < vote_deposit < initial_mint:
            raise ValueError(
                f"vote deposit ({vote_deposit}) must be positive and below the mint ({initial_mint})"
            )
        self._store = store
        self._accounts = accounts
        self._reader = reader
        self._writer = writer
        self._messenger = messenger
        self._initial_mint = initial_mint
        self._vote_deposit = vote_deposit
        self._decimals = decimals
        self._symbol = symbol
        self._preregistration = preregistration

    async def on_wallet_instantiated(self, event: WalletInstantiated) -> bool:
        """Returns False when the deployment belongs to nobody we know."""
        account = await self._accounts.by_factory_identifier(event.identifier)
        if account is None:
            log.info("Could not find account with identifier %d", event.identifier)
            return False

        if await self._accounts.attach_wallet(account, event.wallet):
            log.info("Wallet at %s linked to %s", event.wallet, account.twitter_handle)
            await self._store.log_activity(
                "wallet_linked",
                f"Wallet {event.wallet} linked to @{account.twitter_handle}",
                event_id=event.event_id,
                account_id=account.id,
            )
        else:
            log.warning(
                "Wallet %s already linked to %s, resuming provisioning",
                event.wallet, account.twitter_handle,
            )

        minted = await confirmed_step(
            self._store, self._writer, event.event_id, "mint",
            lambda: self._writer.submit_mint(event.wallet, self._initial_mint),
        )
        if minted:
            await self._store.log_activity(
                "tokens_minted",
                f"Minted {format_human(self._initial_mint, self._decimals)} {self._symbol} "
                f"to {event.wallet}",
                event_id=event.event_id,
                account_id=account.id,
                amount=self._initial_mint,
            )

        deposited = await confirmed_step(
            self._store, self._writer, event.event_id, "deposit",
            lambda: self._writer.submit_deposit(event.wallet, self._vote_deposit),
        )
        if deposited:
            await self._store.log_activity(
                "votes_deposited",
                f"Locked {format_human(self._vote_deposit, self._decimals)} {self._symbol} "
                f"for voting from {event.wallet}",
                event_id=event.event_id,
                account_id=account.id,
                amount=self._vote_deposit,
            )

        if self._preregistration:
            log.info("Pre-registration mode, not notifying %s", account.twitter_handle)
            return True

        balance = await self._reader.get_token_balance(event.wallet)
        await self._messenger.send_private_message(
            account.twitter_id,
            WALLET_CONFIRMED.format(
                balance=format_human(balance, self._decimals), symbol=self._symbol,
            ),
        )
        return True
