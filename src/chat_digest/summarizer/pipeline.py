"""Map/reduce summarization of a conversation window."""

from __future__ import annotations

import json
import logging
from datetime import tzinfo
from typing import Callable

from chat_digest.buffer.models import Message
from chat_digest.exceptions import EmptyCompletionError
from chat_digest.llm.base import CompletionModel
from chat_digest.summarizer.chunker import MessageChunker
from chat_digest.summarizer.models import RunState, Stats, SummaryResult
from chat_digest.summarizer.prompts import MAP_PROMPT, REDUCE_PROMPT
from chat_digest.summarizer.stats import compute_stats

logger = logging.getLogger(__name__)

StateCallback = Callable[[RunState], None]


def build_reduce_input(chunk_summaries: list[str], stats: Stats) -> str:
    """Numbered partial summaries followed by the serialized stats."""
    parts = [f"Trecho {index}:\n{summary}" for index, summary in enumerate(chunk_summaries, start=1)]
    stats_json = json.dumps(stats.to_dict(), ensure_ascii=False, indent=2)
    parts.append(f"Estatísticas do período:\n{stats_json}")
    return "\n\n".join(parts)


class SummarizerPipeline:
    """Chunk → map → aggregate → reduce over one window of messages.

    Args:
        model: Completion model used for both stages.
        chunker: Splits the window into token-bounded chunks.
        tz: Zone for local-hour stats.
    """

    def __init__(self, model: CompletionModel, chunker: MessageChunker, tz: tzinfo):
        self.model = model
        self.chunker = chunker
        self.tz = tz

    async def summarize(
        self,
        messages: list[Message],
        window_start_ms: int,
        window_end_ms: int,
        on_state: StateCallback | None = None,
    ) -> SummaryResult | None:
        """Summarize a window.

        Returns None when there is nothing to summarize (empty window, or
        every chunk came back empty). Raises EmptyCompletionError when the
        reduce step returns no text; other ModelErrors propagate unchanged.
        """
        notify = on_state or (lambda state: None)

        notify(RunState.CHUNKING)
        if not messages:
            logger.warning("No messages in window, nothing to summarize")
            return None

        chunks = self.chunker.chunk(messages)
        logger.info(f"Chunked {len(messages)} messages into {len(chunks)} chunks")

        notify(RunState.MAPPING)
        chunk_summaries = await self._map(chunks)
        if not chunk_summaries:
            logger.warning("All chunk summaries were empty, skipping reduce")
            return None

        notify(RunState.AGGREGATING)
        stats = compute_stats(messages, self.tz, window_start_ms, window_end_ms)

        notify(RunState.REDUCING)
        summary = await self.model.complete(
            REDUCE_PROMPT, build_reduce_input(chunk_summaries, stats)
        )
        summary = summary.strip()
        if not summary:
            raise EmptyCompletionError("Reduce step produced empty output")

        return SummaryResult(summary=summary, chunk_summaries=chunk_summaries, stats=stats)

    async def _map(self, chunks: list[list[Message]]) -> list[str]:
        summaries: list[str] = []
        for index, chunk in enumerate(chunks):
            content = "\n".join(self.chunker.render(message) for message in chunk)
            text = (await self.model.complete(MAP_PROMPT, content)).strip()
            if not text:
                logger.warning(f"Chunk {index} summary returned empty text, dropping it")
                continue
            summaries.append(text)
        return summaries
