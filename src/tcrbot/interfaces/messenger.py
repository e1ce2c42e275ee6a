"""Messenger protocol - public posts and private messages."""

from __future__ import annotations

from typing import Protocol


class Messenger(Protocol):
    """Delivers notifications to the social network."""

    async def send_public_post(self, text: str) -> None:
        """Raise MessagingError when delivery fails."""
        ...

    async def send_private_message(self, recipient_id: str, text: str) -> None:
        """Raise MessagingError when delivery fails."""
        ...
