"""Data models for the retention buffer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

UNKNOWN_SENDER = "Desconhecido"
MEDIA_PLACEHOLDER = "[mídia]"


class MessageKind(str, Enum):
    TEXT = "text"
    MEDIA = "media"
    SYSTEM = "system"


@dataclass(frozen=True)
class Message:
    """A single ingested chat message as stored in a bucket file."""

    conversation_id: str  # e.g. "120363012345678901@g.us"
    message_id: str  # unique within the conversation
    sender: str  # resolved display name, never empty
    content: str  # may be empty for media/system messages
    kind: MessageKind
    timestamp: int  # epoch milliseconds

    @property
    def display_content(self) -> str:
        """Content as shown to readers; empty media gets a placeholder."""
        if not self.content and self.kind == MessageKind.MEDIA:
            return MEDIA_PLACEHOLDER
        return self.content

    def to_dict(self) -> dict:
        return {
            "conversation_id": self.conversation_id,
            "message_id": self.message_id,
            "sender": self.sender,
            "content": self.content,
            "kind": self.kind.value,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Message:
        """Build a Message from a persisted record.

        Raises KeyError, TypeError or ValueError when the record is malformed.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Expected a message record, got {type(data).__name__}")
        timestamp = data["timestamp"]
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise TypeError(f"Invalid timestamp: {timestamp!r}")
        return cls(
            conversation_id=str(data["conversation_id"]),
            message_id=str(data["message_id"]),
            sender=str(data.get("sender") or UNKNOWN_SENDER),
            content=str(data.get("content") or ""),
            kind=MessageKind(data.get("kind", MessageKind.TEXT.value)),
            timestamp=int(timestamp),
        )
