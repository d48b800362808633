"""Send summaries through an HTTP chat gateway."""

from __future__ import annotations

import logging

from chat_digest.exceptions import DispatchError
from chat_digest.transport.base import BaseTransport

logger = logging.getLogger(__name__)


class WebhookTransport(BaseTransport):
    """Posts outbound messages to ``<base_url>/messages``.

    The gateway owns the chat session (pairing, reconnects); this side only
    hands it ``{"chatId": ..., "text": ...}`` payloads.

    Args:
        base_url: Gateway root URL.
        token: Optional bearer token.
        timeout: Request timeout in seconds.
    """

    def __init__(self, base_url: str, token: str | None = None, timeout: float = 30.0):
        if not base_url:
            raise DispatchError(
                "Transport URL is required. "
                "Pass it directly or set TRANSPORT_URL in your environment."
            )
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def send_message(self, conversation_id: str, text: str) -> bool:
        import httpx

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/messages",
                    json={"chatId": conversation_id, "text": text},
                    headers=self._headers(),
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise DispatchError(f"Failed to send message to {conversation_id}: {e}") from e

        logger.info(f"Sent message to {conversation_id} ({len(text)} chars)")
        return True
