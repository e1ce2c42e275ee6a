"""Log poller - polls the RPC node for registry and wallet-factory logs."""

from __future__ import annotations

import logging
from typing import Sequence

from web3 import AsyncWeb3, Web3

from tcrbot.models.events import RawLogEvent

log = logging.getLogger(__name__)


def _to_raw(entry) -> RawLogEvent:
    return RawLogEvent(
        address=Web3.to_checksum_address(entry["address"]),
        topics=tuple(bytes(t) for t in entry["topics"]),
        data=bytes(entry["data"]),
        block_number=entry["blockNumber"],
        transaction_hash="0x" + bytes(entry["transactionHash"]).hex(),
        log_index=entry["logIndex"],
    )


class Web3LogPoller:
    """Polls eth_getLogs over the watched contracts.

    Maintains a block cursor (last fully processed block) for resumption
    across restarts. Only blocks at least ``confirmations`` deep are
    scanned, and each poll covers at most ``block_window`` blocks. A polled
    window only moves the cursor once ``commit()`` is called, so a window
    whose logs were not all handled is fetched again.
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        addresses: Sequence[str],
        start_block: int | None = None,
        confirmations: int = 1,
        block_window: int = 1000,
    ) -> None:
        self._w3 = w3
        self._addresses = [Web3.to_checksum_address(a) for a in addresses if a]
        self._start_block = start_block
        self._confirmations = max(1, confirmations)
        self._block_window = max(1, block_window)
        self._cursor: int | None = None
        self._pending_end: int | None = None

    @property
    def cursor(self) -> int | None:
        return self._cursor

    def set_cursor(self, block: int) -> None:
        """Restore cursor from persisted state."""
        self._cursor = block
        self._pending_end = None

    async def poll(self) -> list[RawLogEvent]:
        """Fetch logs for the next window of confirmed blocks, in chain order."""
        head = await self._w3.eth.block_number
        safe_head = head - (self._confirmations - 1)

        if self._cursor is not None:
            start = self._cursor + 1
        elif self._start_block is not None:
            start = self._start_block
        else:
            start = safe_head
            log.info("No cursor, starting from block %d", start)

        if start > safe_head:
            return []
        end = min(safe_head, start + self._block_window - 1)

        try:
            entries = await self._w3.eth.get_logs({
                "fromBlock": start,
                "toBlock": end,
                "address": self._addresses,
            })
        except Exception as exc:
            log.error("Log poll failed for blocks %d-%d: %s", start, end, exc)
            raise

        events = [_to_raw(e) for e in entries if not e.get("removed", False)]
        events.sort(key=lambda e: (e.block_number, e.log_index))
        self._pending_end = end

        if events:
            log.info("Polled %d logs from blocks %d-%d", len(events), start, end)
        return events

    def commit(self) -> None:
        """Mark the last polled window as processed."""
        if self._pending_end is not None:
            self._cursor = self._pending_end
            self._pending_end = None

    async def get_cursor(self) -> int | None:
        return self._cursor
