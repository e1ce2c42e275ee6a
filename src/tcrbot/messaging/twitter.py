"""Twitter messenger - public tweets and direct messages via the v2 HTTP API."""

from __future__ import annotations

import logging

import httpx

from tcrbot.errors import MessagingError

log = logging.getLogger(__name__)


class TwitterMessenger:
    """Delivers notifications through the Twitter API v2.

    Uses:
    - POST /tweets: public announcement from the bot account
    - POST /dm_conversations/with/{id}/messages: private message to a user
    """

    def __init__(
        self,
        bearer_token: str,
        api_url: str = "https://api.twitter.com/2",
        timeout: int = 15,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = api_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {bearer_token}"}
        self._timeout = timeout
        self._transport = transport

    def _url(self, endpoint: str) -> str:
        return f"{self._base_url}/{endpoint}"

    async def _post(self, endpoint: str, payload: dict) -> dict:
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=10),
                headers=self._headers,
                transport=self._transport,
            ) as client:
                resp = await client.post(self._url(endpoint), json=payload)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:200]
            log.error("Twitter %s returned HTTP %d: %s", endpoint, exc.response.status_code, detail)
            raise MessagingError(
                f"twitter HTTP {exc.response.status_code}: {detail}"
            ) from exc
        except httpx.HTTPError as exc:
            log.error("Twitter %s request failed: %s", endpoint, exc)
            raise MessagingError(f"twitter request failed: {exc}") from exc

    async def send_public_post(self, text: str) -> None:
        body = await self._post("tweets", {"text": text})
        log.info("Tweeted %s: %s", body.get("data", {}).get("id", "?"), text[:60])

    async def send_private_message(self, recipient_id: str, text: str) -> None:
        await self._post(f"dm_conversations/with/{recipient_id}/messages", {"text": text})
        log.info("Sent DM to %s", recipient_id)
