"""Chat transport boundary: outbound dispatch and inbound ingestion."""

from chat_digest.transport.base import BaseTransport
from chat_digest.transport.ingest import InboundEvent, MessageIngestor
from chat_digest.transport.webhook import WebhookTransport

__all__ = [
    "BaseTransport",
    "InboundEvent",
    "MessageIngestor",
    "WebhookTransport",
]
