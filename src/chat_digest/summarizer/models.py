"""Data models for the summarization pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class RunState(str, Enum):
    """Lifecycle of one conversation within a summary run."""

    IDLE = "idle"
    CHUNKING = "chunking"
    MAPPING = "mapping"
    AGGREGATING = "aggregating"
    REDUCING = "reducing"
    DISPATCHED = "dispatched"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class MemberCount:
    sender: str
    count: int


@dataclass
class BusiestPeriod:
    """Two-hour local window with the most messages."""

    start_hour: int
    end_hour: int  # exclusive, 1..24
    count: int

    @property
    def label(self) -> str:
        return f"{self.start_hour:02d}h-{self.end_hour:02d}h"


@dataclass
class SegmentStats:
    """Activity inside one fixed time-of-day segment."""

    name: str
    start_hour: int
    end_hour: int  # exclusive
    count: int = 0
    previews: list[str] = field(default_factory=list)


@dataclass
class SharedLink:
    url: str
    sender: str
    snippet: str


@dataclass
class Stats:
    """Deterministic metrics over one summary window. Never persisted."""

    total_messages: int
    unique_participants: int
    window_start: datetime
    window_end: datetime
    top_members: list[MemberCount] = field(default_factory=list)
    busiest_period: BusiestPeriod | None = None
    segments: list[SegmentStats] = field(default_factory=list)
    shared_links: list[SharedLink] = field(default_factory=list)

    def segment(self, name: str) -> SegmentStats | None:
        for segment in self.segments:
            if segment.name == name:
                return segment
        return None

    def to_dict(self) -> dict:
        """JSON-serializable form, used as input to the reduce step."""
        busiest = None
        if self.busiest_period is not None:
            busiest = {
                "periodo": self.busiest_period.label,
                "mensagens": self.busiest_period.count,
            }
        return {
            "total_mensagens": self.total_messages,
            "participantes_unicos": self.unique_participants,
            "inicio_janela": self.window_start.isoformat(),
            "fim_janela": self.window_end.isoformat(),
            "membros_mais_ativos": [
                {"nome": m.sender, "mensagens": m.count} for m in self.top_members
            ],
            "periodo_mais_movimentado": busiest,
            "periodos_do_dia": [
                {
                    "periodo": s.name,
                    "horario": f"{s.start_hour:02d}h-{s.end_hour:02d}h",
                    "mensagens": s.count,
                    "amostras": s.previews,
                }
                for s in self.segments
            ],
            "links_compartilhados": [
                {"url": link.url, "autor": link.sender, "contexto": link.snippet}
                for link in self.shared_links
            ],
        }


@dataclass
class SummaryResult:
    """Output of one map/reduce pass for a single conversation window."""

    summary: str
    chunk_summaries: list[str]
    stats: Stats

    @property
    def chunk_count(self) -> int:
        return len(self.chunk_summaries)
