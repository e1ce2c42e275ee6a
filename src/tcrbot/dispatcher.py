"""Dispatcher - decodes raw logs and routes each domain event to one reactor."""

from __future__ import annotations

import logging
from typing import Iterable

from tcrbot.errors import DecodeError, TCRBotError
from tcrbot.interfaces.decoder import DomainEvent, EventDecoder
from tcrbot.interfaces.store import StateStore
from tcrbot.models.events import (
    Application,
    ApplicationRemoved,
    ApplicationWhitelisted,
    Challenge,
    ChallengeFailed,
    ChallengeSucceeded,
    RawLogEvent,
    WalletInstantiated,
    Withdrawal,
)
from tcrbot.models.records import DispatchResult
from tcrbot.reactors.notifier import NotificationEmitter
from tcrbot.reactors.provisioner import WalletProvisioner
from tcrbot.reactors.settlement import RewardSettlement

log = logging.getLogger(__name__)


class Dispatcher:
    """Processes logs one at a time, in delivery order.

    A failing event is logged and reported in its DispatchResult; it never
    stops the stream. Events that completed are recorded in the ledger and
    skipped if delivered again.
    """

    def __init__(
        self,
        decoder: EventDecoder,
        store: StateStore,
        provisioner: WalletProvisioner,
        settlement: RewardSettlement,
        notifier: NotificationEmitter,
    ) -> None:
        self._decoder = decoder
        self._store = store
        self._provisioner = provisioner
        self._settlement = settlement
        self._notifier = notifier

    async def dispatch_all(self, raws: Iterable[RawLogEvent]) -> list[DispatchResult]:
        return [await self.dispatch(raw) for raw in raws]

    async def dispatch(self, raw: RawLogEvent) -> DispatchResult:
        try:
            event = self._decoder.decode(raw)
        except DecodeError as exc:
            log.warning("Dropping log %s from %s: %s", raw.event_id, raw.address, exc)
            await self._store.log_activity(
                "decode_failed", f"block {raw.block_number}: {exc}", event_id=raw.event_id,
            )
            return DispatchResult(event_id=raw.event_id, success=False, error=str(exc))

        event_type = type(event).__name__
        if await self._store.is_event_processed(event.event_id):
            log.info("Skipping %s %s, already processed", event_type, event.event_id)
            return DispatchResult(
                event_id=event.event_id, success=True, event_type=event_type, skipped=True,
            )

        try:
            routed = await self._route(event)
        except TCRBotError as exc:
            log.error("%s %s failed: %s", event_type, event.event_id, exc)
            await self._store.log_activity(
                "event_failed", f"{event_type} at block {event.block_number}: {exc}",
                event_id=event.event_id,
            )
            return DispatchResult(
                event_id=event.event_id, success=False, event_type=event_type, error=str(exc),
            )
        except Exception as exc:
            log.error("Unexpected error handling %s %s", event_type, event.event_id, exc_info=True)
            await self._store.log_activity(
                "event_failed", f"{event_type} at block {event.block_number}: unexpected {exc!r}",
                event_id=event.event_id,
            )
            return DispatchResult(
                event_id=event.event_id, success=False, event_type=event_type, error=repr(exc),
            )

        if not routed:
            return DispatchResult(
                event_id=event.event_id, success=False, event_type=event_type,
                error="no reactor for event",
            )

        await self._store.mark_event_processed(event.event_id, event_type)
        return DispatchResult(event_id=event.event_id, success=True, event_type=event_type)

    async def _route(self, event: DomainEvent) -> bool:
        match event:
            case WalletInstantiated():
                await self._provisioner.on_wallet_instantiated(event)
            case Withdrawal():
                await self._settlement.on_withdrawal(event)
            case ChallengeFailed():
                await self._settlement.on_challenge_failed(event)
            case Application():
                await self._notifier.on_application(event)
            case Challenge():
                await self._notifier.on_challenge(event)
            case ApplicationWhitelisted():
                await self._notifier.on_whitelisted(event)
            case ChallengeSucceeded():
                await self._notifier.on_challenge_succeeded(event)
            case ApplicationRemoved():
                await self._notifier.on_removed(event)
            case _:
                log.warning("No reactor for %s, dropping", type(event).__name__)
                return False
        return True
