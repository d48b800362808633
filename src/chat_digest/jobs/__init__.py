"""Summary job orchestration and scheduling."""

from chat_digest.jobs.scheduler import SummaryScheduler
from chat_digest.jobs.summary import ConversationOutcome, RunReport, SummaryJob, build_heading

__all__ = [
    "ConversationOutcome",
    "RunReport",
    "SummaryJob",
    "SummaryScheduler",
    "build_heading",
]
