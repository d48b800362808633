"""Scheduled summary job: buffer window → summary → dispatch → eviction."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Callable

from chat_digest.buffer.store import MessageBuffer
from chat_digest.clock import format_date, format_hhmm, now_ms
from chat_digest.exceptions import DispatchError, EmptyCompletionError
from chat_digest.summarizer.models import RunState
from chat_digest.summarizer.pipeline import SummarizerPipeline
from chat_digest.transport.base import BaseTransport

logger = logging.getLogger(__name__)


@dataclass
class ConversationOutcome:
    """What happened to one conversation during a run."""

    conversation_id: str
    state: RunState = RunState.IDLE
    message_count: int = 0
    chunk_count: int = 0
    error: str | None = None

    def transition(self, state: RunState) -> None:
        logger.debug(f"{self.conversation_id}: {self.state.value} -> {state.value}")
        self.state = state


@dataclass
class RunReport:
    window_start_ms: int
    window_end_ms: int
    outcomes: list[ConversationOutcome] = field(default_factory=list)

    def by_state(self, state: RunState) -> list[ConversationOutcome]:
        return [o for o in self.outcomes if o.state == state]


def build_heading(window_start_ms: int, window_end_ms: int, tz: tzinfo) -> str:
    """``Resumo das últimas 24h — 19/10/2026 (20:00 - 20:00)`` in the configured zone."""
    hours = round((window_end_ms - window_start_ms) / 1000 / 60 / 60)
    return (
        f"Resumo das últimas {hours}h — {format_date(window_end_ms, tz)} "
        f"({format_hhmm(window_start_ms, tz)} - {format_hhmm(window_end_ms, tz)})"
    )


class SummaryJob:
    """Summarizes every buffered conversation and sends the result back.

    Only one run executes at a time; a trigger that arrives while a run is
    in progress is rejected.

    The window is half-open, ``[end - window, end)``. A message stamped
    exactly at ``end`` is left out of this run and survives eviction, so the
    next run picks it up.

    Args:
        buffer: Retention buffer to read windows from and evict.
        pipeline: Map/reduce summarizer.
        transport: Outbound chat transport.
        window_minutes: Length of the summary window.
        tz: Zone for the report heading.
        clock: Returns the current time in epoch milliseconds.
    """

    def __init__(
        self,
        buffer: MessageBuffer,
        pipeline: SummarizerPipeline,
        transport: BaseTransport,
        window_minutes: int,
        tz: tzinfo,
        clock: Callable[[], int] = now_ms,
    ):
        self.buffer = buffer
        self.pipeline = pipeline
        self.transport = transport
        self.window_minutes = window_minutes
        self.tz = tz
        self.clock = clock
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def run(self) -> RunReport | None:
        """Run one summary pass over all conversations.

        Returns None if another run is already in progress.
        """
        if self._lock.locked():
            logger.warning("Summary run already in progress, rejecting trigger")
            return None

        async with self._lock:
            window_end = self.clock()
            window_start = window_end - self.window_minutes * 60 * 1000
            report = RunReport(window_start_ms=window_start, window_end_ms=window_end)

            conversation_ids = await self.buffer.alist_conversations()
            if not conversation_ids:
                logger.info("No conversations present in buffer, skipping summary")
                return report

            logger.info(f"Generating summaries for {len(conversation_ids)} conversations")
            for conversation_id in conversation_ids:
                outcome = await self.process_conversation(conversation_id, window_start, window_end)
                report.outcomes.append(outcome)

            logger.info(
                f"Summary run finished: {len(report.by_state(RunState.DISPATCHED))} dispatched, "
                f"{len(report.by_state(RunState.SKIPPED))} skipped, "
                f"{len(report.by_state(RunState.FAILED))} failed"
            )
            return report

    async def process_conversation(
        self,
        conversation_id: str,
        window_start_ms: int,
        window_end_ms: int,
    ) -> ConversationOutcome:
        """Summarize and dispatch one conversation. Never raises."""
        outcome = ConversationOutcome(conversation_id=conversation_id)
        try:
            await self._process(outcome, window_start_ms, window_end_ms)
        except EmptyCompletionError as e:
            logger.warning(f"Empty summary for {conversation_id}, skipping this run: {e}")
            outcome.error = str(e)
            outcome.transition(RunState.FAILED)
        except DispatchError as e:
            logger.error(f"Dispatch failed for {conversation_id}, keeping window for retry: {e}")
            outcome.error = str(e)
            outcome.transition(RunState.FAILED)
        except Exception as e:
            logger.exception(f"Summary failed for {conversation_id}")
            outcome.error = str(e)
            outcome.transition(RunState.FAILED)
        return outcome

    async def _process(
        self,
        outcome: ConversationOutcome,
        window_start_ms: int,
        window_end_ms: int,
    ) -> None:
        conversation_id = outcome.conversation_id
        messages = await self.buffer.aload_window(conversation_id, window_start_ms, window_end_ms)
        messages = [m for m in messages if m.timestamp < window_end_ms]
        outcome.message_count = len(messages)
        if not messages:
            logger.info(f"No messages for {conversation_id} in window")
            outcome.transition(RunState.SKIPPED)
            return

        result = await self.pipeline.summarize(
            messages, window_start_ms, window_end_ms, on_state=outcome.transition
        )
        if result is None:
            logger.warning(f"Summary pipeline returned no result for {conversation_id}")
            outcome.transition(RunState.SKIPPED)
            return
        outcome.chunk_count = result.chunk_count

        text = f"{build_heading(window_start_ms, window_end_ms, self.tz)}\n\n{result.summary}"
        if not await self.transport.send_message(conversation_id, text):
            raise DispatchError(f"Transport rejected summary for {conversation_id}")

        await self.buffer.aclear_older_than(conversation_id, window_end_ms, window_end_ms)
        outcome.transition(RunState.DISPATCHED)
        logger.info(
            f"Summary dispatched to {conversation_id} "
            f"({outcome.message_count} messages, {outcome.chunk_count} chunks)"
        )
