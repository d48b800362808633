"""Durable, day-bucketed retention buffer for ingested chat messages."""

from chat_digest.buffer.models import UNKNOWN_SENDER, Message, MessageKind
from chat_digest.buffer.store import MessageBuffer, is_valid_conversation_id

__all__ = [
    "MessageBuffer",
    "Message",
    "MessageKind",
    "UNKNOWN_SENDER",
    "is_valid_conversation_id",
]
