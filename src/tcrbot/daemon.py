"""Main daemon loop - wires all components together."""

from __future__ import annotations

import asyncio
import logging
import signal

from eth_account import Account as EthAccount
from web3 import AsyncHTTPProvider, AsyncWeb3

from tcrbot.chain.abi import to_atomic
from tcrbot.chain.decoder import AbiEventDecoder
from tcrbot.chain.poller import Web3LogPoller
from tcrbot.chain.queries import ContractQueries
from tcrbot.chain.writer import Web3ChainWriter
from tcrbot.dispatcher import Dispatcher
from tcrbot.messaging.twitter import TwitterMessenger
from tcrbot.models.config import BotConfig
from tcrbot.models.records import DispatchResult
from tcrbot.reactors.notifier import NotificationEmitter
from tcrbot.reactors.provisioner import WalletProvisioner
from tcrbot.reactors.resolver import AccountResolver, ListingResolver
from tcrbot.reactors.settlement import RewardSettlement
from tcrbot.storage.sqlite import SQLiteStateStore

log = logging.getLogger(__name__)


class BotDaemon:
    """TCR event-reaction daemon.

    Polls registry and wallet-factory logs and reacts to each one in
    order: provisioning custodial wallets, settling rewards and announcing
    registry changes.
    """

    def __init__(self, cfg: BotConfig) -> None:
        self._cfg = cfg
        self._running = False

        signer = EthAccount.from_key(cfg.private_key)
        self.w3 = AsyncWeb3(AsyncHTTPProvider(cfg.rpc_url))

        # Core components
        self.store = SQLiteStateStore(cfg.db_path)
        self.poller = Web3LogPoller(
            self.w3,
            [cfg.registry_address, cfg.wallet_factory_address],
            start_block=cfg.start_block,
            confirmations=cfg.confirmations,
            block_window=cfg.block_window,
        )
        self.decoder = AbiEventDecoder(cfg.registry_address, cfg.wallet_factory_address)
        self.queries = ContractQueries(self.w3, cfg.token_address, cfg.registry_address)
        self.writer = Web3ChainWriter(
            self.w3,
            signer,
            token_address=cfg.token_address,
            plcr_address=cfg.plcr_address,
            registry_address=cfg.registry_address,
            chain_id=cfg.chain_id,
            confirmations=cfg.confirmations,
            confirmation_timeout=cfg.confirmation_timeout,
            poll_interval=cfg.confirmation_poll_interval,
            max_attempts=cfg.confirmation_max_attempts,
            gas_limit=cfg.gas_limit,
        )
        self.messenger = TwitterMessenger(
            cfg.twitter_token, cfg.twitter_api_url, cfg.twitter_timeout,
        )
        self._address = signer.address

        self.build_pipeline()

    def build_pipeline(self) -> None:
        """(Re)build resolvers, reactors and the dispatcher from current components."""
        tokens = self._cfg.tokens
        accounts = AccountResolver(self.store)
        listings = ListingResolver(self.store, self.queries)

        self.notifier = NotificationEmitter(
            self.messenger, self.queries, accounts, listings,
            decimals=tokens.decimals, symbol=tokens.symbol,
        )
        self.provisioner = WalletProvisioner(
            self.store, accounts, self.queries, self.writer, self.messenger,
            initial_mint=to_atomic(tokens.initial_mint, tokens.decimals),
            vote_deposit=to_atomic(tokens.initial_vote_deposit, tokens.decimals),
            decimals=tokens.decimals,
            symbol=tokens.symbol,
            preregistration=self._cfg.preregistration,
        )
        self.settlement = RewardSettlement(
            self.store, accounts, self.queries, self.writer, self.notifier,
            min_deposit=to_atomic(tokens.min_deposit, tokens.decimals),
            decimals=tokens.decimals,
        )
        self.dispatcher = Dispatcher(
            self.decoder, self.store, self.provisioner, self.settlement, self.notifier,
        )

    async def start(self) -> None:
        """Initialize components and run the main loop."""
        log.info("Starting tcrbot daemon")
        log.info("  Minter: %s", self._address)
        log.info("  Registry: %s", self._cfg.registry_address)
        log.info("  Wallet factory: %s", self._cfg.wallet_factory_address)
        log.info("  RPC: %s", self._cfg.rpc_url)
        if self._cfg.preregistration:
            log.info("  Pre-registration mode: wallet DMs suppressed")

        await self.store.initialize()

        # Restore cursor from last run
        saved_block = await self.store.get_cursor()
        if saved_block is not None:
            self.poller.set_cursor(saved_block)
            log.info("Restored cursor: block %d", saved_block)

        self._running = True
        await self.store.log_activity("daemon_started", "Daemon started")

        try:
            await self._main_loop()
        finally:
            await self.store.log_activity("daemon_stopped", "Daemon stopped")
            await self.store.close()
            log.info("Daemon shut down cleanly")

    async def stop(self) -> None:
        """Signal the daemon to stop gracefully."""
        log.info("Stop requested")
        self._running = False

    async def process_once(self) -> list[DispatchResult]:
        """Poll one window of logs, dispatch them in order, persist the cursor.

        If dispatching raises, the window is not committed and the next call
        polls it again; events already in the ledger are skipped then.
        """
        raws = await self.poller.poll()
        results = await self.dispatcher.dispatch_all(raws)
        self.poller.commit()

        failed = [r for r in results if not r.success]
        if failed:
            log.warning("%d of %d events failed this poll", len(failed), len(results))

        block = await self.poller.get_cursor()
        if block is not None:
            await self.store.set_cursor(block)
        return results

    async def _main_loop(self) -> None:
        """The core polling and processing loop."""
        while self._running:
            try:
                await self.process_once()
                await asyncio.sleep(self._cfg.poll_interval)

            except asyncio.CancelledError:
                log.info("Main loop cancelled")
                break
            except Exception as exc:
                log.error("Main loop error: %s", exc, exc_info=True)
                await self.store.log_activity("error", str(exc))
                await asyncio.sleep(self._cfg.error_backoff)


async def run_daemon(cfg: BotConfig) -> None:
    """Entry point for running the daemon."""
    daemon = BotDaemon(cfg)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()
