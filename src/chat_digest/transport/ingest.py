"""Convert inbound transport events into buffered messages."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import stat
from dataclasses import dataclass
from typing import AsyncIterator, TextIO

from chat_digest.buffer.models import UNKNOWN_SENDER, Message, MessageKind
from chat_digest.buffer.store import MessageBuffer, is_valid_conversation_id
from chat_digest.exceptions import ChatDigestError

logger = logging.getLogger(__name__)

GROUP_SUFFIX = "@g.us"


@dataclass
class InboundEvent:
    """A message event as delivered by the chat transport."""

    conversation_id: str
    message_id: str
    sender_display_name: str
    content: str
    has_media: bool
    timestamp_seconds: int
    is_system: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> InboundEvent:
        """Accepts both the transport's camelCase keys and snake_case ones."""

        def pick(*keys, default=None):
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return default

        return cls(
            conversation_id=str(pick("conversationId", "conversation_id", "chatId", default="")),
            message_id=str(pick("messageId", "message_id", default="")),
            sender_display_name=str(pick("senderDisplayName", "sender_display_name", default="")),
            content=str(pick("content", "body", default="")),
            has_media=bool(pick("hasMedia", "has_media", default=False)),
            timestamp_seconds=int(pick("timestampSeconds", "timestamp_seconds", "timestamp", default=0)),
            is_system=bool(pick("isSystem", "is_system", default=False)),
        )


class MessageIngestor:
    """Appends inbound events for target conversations to the buffer.

    Args:
        buffer: Destination buffer.
        target_ids: Allow-list of conversation ids. When empty, every group
            conversation (id ending in ``@g.us``) is accepted.
    """

    def __init__(self, buffer: MessageBuffer, target_ids: list[str] | None = None):
        self.buffer = buffer
        self.target_ids = set(target_ids or [])

    def is_target(self, conversation_id: str) -> bool:
        if not self.target_ids:
            return conversation_id.endswith(GROUP_SUFFIX)
        return conversation_id in self.target_ids

    def to_message(self, event: InboundEvent) -> Message:
        if event.is_system:
            kind = MessageKind.SYSTEM
        elif event.has_media:
            kind = MessageKind.MEDIA
        else:
            kind = MessageKind.TEXT
        return Message(
            conversation_id=event.conversation_id,
            message_id=event.message_id,
            sender=event.sender_display_name.strip() or UNKNOWN_SENDER,
            content=event.content or "",
            kind=kind,
            timestamp=event.timestamp_seconds * 1000,
        )

    async def handle(self, event: InboundEvent) -> Message | None:
        """Store the event if it belongs to a target conversation."""
        if not event.conversation_id or not event.message_id or not event.timestamp_seconds:
            logger.debug(f"Ignoring incomplete event: {event}")
            return None
        if not is_valid_conversation_id(event.conversation_id):
            logger.warning(f"Ignoring event with unusable conversation id {event.conversation_id!r}")
            return None
        if not self.is_target(event.conversation_id):
            return None

        message = self.to_message(event)
        await self.buffer.aappend(message)
        logger.debug(f"Buffered message {message.message_id} for {message.conversation_id}")
        return message

    async def consume(self, lines: AsyncIterator[str]) -> int:
        """Ingest a stream of JSON event lines, returning how many were stored.

        Malformed lines and events the buffer rejects are logged and skipped.
        """
        stored = 0
        line_number = 0
        async for line in lines:
            line_number += 1
            line = line.strip()
            if not line:
                continue
            try:
                event = InboundEvent.from_dict(json.loads(line))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping line {line_number}: {e}")
                continue
            try:
                if await self.handle(event) is not None:
                    stored += 1
            except ChatDigestError as e:
                logger.error(f"Failed to store line {line_number} ({event.message_id}): {e}")
        return stored


async def read_event_lines(stream: TextIO) -> AsyncIterator[str]:
    """Yield lines from ``stream`` without blocking the event loop.

    Regular files are read in a worker thread. Pipes, FIFOs and terminals are
    attached to the loop and followed until EOF.
    """
    if stat.S_ISREG(os.fstat(stream.fileno()).st_mode):
        for line in await asyncio.to_thread(stream.readlines):
            yield line
        return

    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    transport, _ = await loop.connect_read_pipe(
        lambda: asyncio.StreamReaderProtocol(reader), stream
    )
    try:
        async for raw in reader:
            yield raw.decode("utf-8")
    finally:
        transport.close()
