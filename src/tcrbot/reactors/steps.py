"""Checkpointed custodial transaction steps."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from tcrbot.errors import TransactionError
from tcrbot.interfaces.chain import ChainWriter
from tcrbot.interfaces.store import EventLedger
from tcrbot.models.records import TxHandle

log = logging.getLogger(__name__)


async def confirmed_step(
    ledger: EventLedger,
    writer: ChainWriter,
    event_id: str,
    step: str,
    submit: Callable[[], Awaitable[TxHandle]],
) -> str | None:
    """Submit a transaction for ``step`` of ``event_id`` and wait for it.

    A step already confirmed for this event is not submitted again, so a
    re-delivered or retried event never mints, deposits or releases twice.
    Returns the new tx hash, or None when the step was already done.
    """
    done = await ledger.get_completed_step(event_id, step)
    if done:
        log.info("Skipping %s for %s, already confirmed in %s", step, event_id, done[:18])
        return None

    handle = await submit()
    result = await writer.await_confirmation(handle)
    if not result.confirmed:
        raise TransactionError(
            f"{step} tx {handle.tx_hash} {result.status.value} after {result.attempts} attempts",
            tx_hash=handle.tx_hash,
            status=result.status,
        )

    await ledger.mark_step_completed(event_id, step, handle.tx_hash)
    return handle.tx_hash
