"""Token-budget-aware grouping of messages for the map stage."""

from __future__ import annotations

import logging
from datetime import tzinfo
from typing import Callable

from chat_digest.buffer.models import Message
from chat_digest.clock import format_datetime

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_BUDGET = 1500
FALLBACK_ENCODING = "cl100k_base"

TokenCounter = Callable[[str], int]


def render_message(message: Message, tz: tzinfo) -> str:
    """One transcript line as seen by the model."""
    return f"[{format_datetime(message.timestamp, tz)}] {message.sender}: {message.display_content}"


def build_token_counter(model: str) -> TokenCounter:
    """Token counter for ``model``, or the general-purpose encoding if tiktoken doesn't know it."""
    import tiktoken

    try:
        encoding = tiktoken.encoding_for_model(model)
    except KeyError:
        logger.warning(f"No tokenizer registered for {model}, falling back to {FALLBACK_ENCODING}")
        encoding = tiktoken.get_encoding(FALLBACK_ENCODING)

    def count(text: str) -> int:
        return len(encoding.encode(text, disallowed_special=()))

    return count


def chunk_messages(
    messages: list[Message],
    token_budget: int,
    count_tokens: TokenCounter,
    render: Callable[[Message], str],
) -> list[list[Message]]:
    """Greedily split ``messages`` into ordered groups of at most ``token_budget`` tokens.

    A message that alone exceeds the budget gets a group of its own; messages
    are never dropped or split.
    """
    if token_budget <= 0:
        raise ValueError(f"token_budget must be positive, got {token_budget}")

    chunks: list[list[Message]] = []
    current: list[Message] = []
    current_tokens = 0

    for message in messages:
        tokens = count_tokens(render(message))
        if current and current_tokens + tokens > token_budget:
            chunks.append(current)
            current = []
            current_tokens = 0
        current.append(message)
        current_tokens += tokens

    if current:
        chunks.append(current)
    return chunks


class MessageChunker:
    """Splits a window into chunks sized for a single completion request.

    Args:
        model: Model id used to pick the tokenizer.
        token_budget: Approximate maximum tokens per chunk.
        tz: Zone used to render message timestamps.
        count_tokens: Optional counter overriding the tiktoken-based one.
    """

    def __init__(
        self,
        model: str,
        tz: tzinfo,
        token_budget: int = DEFAULT_TOKEN_BUDGET,
        count_tokens: TokenCounter | None = None,
    ):
        if token_budget <= 0:
            raise ValueError(f"token_budget must be positive, got {token_budget}")
        self.model = model
        self.tz = tz
        self.token_budget = token_budget
        self._count_tokens = count_tokens

    @property
    def count_tokens(self) -> TokenCounter:
        if self._count_tokens is None:
            self._count_tokens = build_token_counter(self.model)
        return self._count_tokens

    def render(self, message: Message) -> str:
        return render_message(message, self.tz)

    def chunk(self, messages: list[Message]) -> list[list[Message]]:
        return chunk_messages(messages, self.token_budget, self.count_tokens, self.render)
