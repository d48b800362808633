"""Map/reduce summarization of buffered conversation windows."""

from chat_digest.summarizer.chunker import MessageChunker, build_token_counter, chunk_messages
from chat_digest.summarizer.models import RunState, Stats, SummaryResult
from chat_digest.summarizer.pipeline import SummarizerPipeline
from chat_digest.summarizer.stats import compute_stats

__all__ = [
    "MessageChunker",
    "RunState",
    "Stats",
    "SummarizerPipeline",
    "SummaryResult",
    "build_token_counter",
    "chunk_messages",
    "compute_stats",
]
