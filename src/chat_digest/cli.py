"""Command-line entry point: ``chat-digest serve|run-now|ingest|conversations``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from chat_digest.buffer.store import MessageBuffer
from chat_digest.config import Settings, load_settings
from chat_digest.exceptions import ChatDigestError, ConfigurationError
from chat_digest.jobs.scheduler import SummaryScheduler
from chat_digest.jobs.summary import SummaryJob
from chat_digest.llm.client import AsyncLLMClient
from chat_digest.summarizer.chunker import MessageChunker
from chat_digest.summarizer.pipeline import SummarizerPipeline
from chat_digest.transport.ingest import MessageIngestor, read_event_lines
from chat_digest.transport.webhook import WebhookTransport

logger = logging.getLogger("chat_digest")


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="chat-digest",
        description="Buffer group chat messages and send a scheduled map/reduce summary back to each chat.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the summary scheduler until interrupted.")
    serve.add_argument(
        "--run-now",
        action="store_true",
        help="Run one summary immediately after starting the scheduler.",
    )
    serve.add_argument(
        "--events",
        metavar="PATH",
        help="Ingest JSON event lines from PATH (a file, FIFO, or '-' for stdin) while serving.",
    )

    subparsers.add_parser("run-now", help="Run one summary pass and exit.")

    ingest = subparsers.add_parser(
        "ingest", help="Append inbound events (JSON lines) to the buffer."
    )
    ingest.add_argument("path", help="File with one JSON event per line, or '-' for stdin.")

    subparsers.add_parser("conversations", help="List conversations present in the buffer.")
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def build_job(settings: Settings) -> SummaryJob:
    """Wire the buffer, model, pipeline and transport from settings."""
    tz = settings.tz
    if not settings.transport_url:
        raise ConfigurationError("TRANSPORT_URL is required to dispatch summaries")

    buffer = MessageBuffer(settings.buffer_path)
    model = AsyncLLMClient(api_key=settings.anthropic_api_key, model=settings.llm_model)
    chunker = MessageChunker(settings.llm_model, tz, token_budget=settings.chunk_token_budget)
    pipeline = SummarizerPipeline(model, chunker, tz)
    transport = WebhookTransport(settings.transport_url, token=settings.transport_token)
    return SummaryJob(buffer, pipeline, transport, settings.summary_window_minutes, tz)


async def serve(settings: Settings, run_now: bool = False, events: str | None = None) -> None:
    job = build_job(settings)
    scheduler = SummaryScheduler(job, settings.summary_schedule, settings.timezone)
    logger.info(
        f"Starting chat summarizer (targets: {settings.target_chat_ids or 'all groups'}, "
        f"schedule: {settings.summary_schedule})"
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    signals = (signal.SIGINT, signal.SIGTERM)
    for signum in signals:
        loop.add_signal_handler(signum, stop.set)

    scheduler.start()
    manual_run = asyncio.create_task(scheduler.run_now()) if run_now else None
    # Ingestion writes through the job's buffer so bucket updates stay serialized.
    ingestion = (
        asyncio.create_task(_follow_events(settings, events, job.buffer)) if events else None
    )
    try:
        # In-flight runs are abandoned on shutdown; unconsumed messages stay buffered.
        await stop.wait()
        logger.warning("Received shutdown signal, exiting")
    finally:
        for task in (manual_run, ingestion):
            if task is not None and not task.done():
                task.cancel()
        scheduler.shutdown()
        for signum in signals:
            loop.remove_signal_handler(signum)


async def _follow_events(settings: Settings, path: str, buffer: MessageBuffer) -> None:
    try:
        await ingest(settings, path, buffer=buffer)
    except OSError as e:
        logger.error(f"Cannot read events from {path}: {e}")


async def run_once(settings: Settings) -> int:
    report = await build_job(settings).run()
    if report is None:
        return 1
    for outcome in report.outcomes:
        print(f"{outcome.conversation_id}\t{outcome.state.value}\t{outcome.message_count} messages")
    return 0


async def ingest(settings: Settings, path: str, buffer: MessageBuffer | None = None) -> int:
    """Feed JSON event lines from ``path`` (or stdin for ``-``) into the buffer."""
    buffer = buffer or MessageBuffer(settings.buffer_path)
    ingestor = MessageIngestor(buffer, settings.target_chat_ids)
    # opening a FIFO blocks until a writer connects
    stream = sys.stdin if path == "-" else await asyncio.to_thread(open, path, encoding="utf-8")
    try:
        stored = await ingestor.consume(read_event_lines(stream))
    finally:
        if stream is not sys.stdin:
            stream.close()
    logger.info(f"Ingested {stored} messages from {path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_arguments(argv)
    try:
        settings = load_settings()
    except ConfigurationError as e:
        configure_logging("INFO")
        logger.error(str(e))
        return 1
    configure_logging(settings.log_level)

    try:
        if args.command == "serve":
            asyncio.run(serve(settings, run_now=args.run_now, events=args.events))
            return 0
        if args.command == "run-now":
            return asyncio.run(run_once(settings))
        if args.command == "ingest":
            return asyncio.run(ingest(settings, args.path))
        if args.command == "conversations":
            for conversation_id in MessageBuffer(settings.buffer_path).list_conversations():
                print(conversation_id)
            return 0
    except (ChatDigestError, OSError) as e:
        logger.error(f"Fatal error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
