"""LogPoller protocol - polls the chain for registry and factory logs."""

from __future__ import annotations

from typing import Protocol

from tcrbot.models.events import RawLogEvent


class LogPoller(Protocol):
    """Polls for new raw logs from the watched contracts."""

    async def poll(self) -> list[RawLogEvent]:
        """Fetch logs since the last cursor, in chain order."""
        ...

    def commit(self) -> None:
        """Advance the cursor past the last polled window once it is handled."""
        ...

    async def get_cursor(self) -> int | None:
        """Get the last fully scanned block for resumption."""
        ...
