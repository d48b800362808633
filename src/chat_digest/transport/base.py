"""Abstract interface for the chat transport."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseTransport(ABC):
    """Outbound side of the chat transport."""

    @abstractmethod
    async def send_message(self, conversation_id: str, text: str) -> bool:
        """Send ``text`` to a conversation. Returns True once delivered to the transport."""
        ...
