"""Deterministic activity metrics over a summary window.

Everything here is pure: the same messages, zone and window always give the
same Stats. Local hours come from ``chat_digest.clock.to_local`` so the
bucketing matches the zone used in the report heading.
"""

from __future__ import annotations

import re
from datetime import tzinfo

from chat_digest.buffer.models import Message
from chat_digest.clock import format_hhmm, to_local
from chat_digest.summarizer.models import (
    BusiestPeriod,
    MemberCount,
    SegmentStats,
    SharedLink,
    Stats,
)

TOP_MEMBERS_LIMIT = 5
BUSIEST_WINDOW_HOURS = 2
PREVIEWS_PER_SEGMENT = 18
PREVIEW_CONTENT_LIMIT = 120
LINK_SNIPPET_LIMIT = 140
LINKS_LIMIT = 8
ELLIPSIS = "…"

# (name, start hour, end hour exclusive)
SEGMENTS = (
    ("Madrugada", 0, 6),
    ("Manhã", 6, 12),
    ("Início da tarde", 12, 16),
    ("Fim da tarde", 16, 19),
    ("Noite", 19, 24),
)

_URL_RE = re.compile(r"(?:https?://|www\.)[^\s<>\"']+", re.IGNORECASE)
_TRAILING_PUNCTUATION = ".,;:!?)]}>*_~"
_WHITESPACE_RE = re.compile(r"\s+")


def truncate(text: str, limit: int) -> str:
    """Collapse whitespace and cut to ``limit`` characters, ellipsis included."""
    text = _WHITESPACE_RE.sub(" ", text).strip()
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)].rstrip() + ELLIPSIS


def extract_urls(text: str) -> list[str]:
    urls = []
    for match in _URL_RE.finditer(text):
        url = match.group(0).rstrip(_TRAILING_PUNCTUATION)
        if url and url.lower() not in ("http://", "https://", "www."):
            urls.append(url)
    return urls


def top_members(messages: list[Message], limit: int = TOP_MEMBERS_LIMIT) -> list[MemberCount]:
    """Most active senders; ties keep first-appearance order."""
    counts: dict[str, int] = {}
    for message in messages:
        counts[message.sender] = counts.get(message.sender, 0) + 1
    # sorted() is stable, so equal counts stay in insertion (first-seen) order
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [MemberCount(sender=sender, count=count) for sender, count in ranked[:limit]]


def busiest_period(hour_counts: list[int]) -> BusiestPeriod | None:
    """Best two-hour window over the day; earliest start wins ties."""
    best_start = 0
    best_count = -1
    for start in range(0, 24 - BUSIEST_WINDOW_HOURS + 1):
        count = sum(hour_counts[start : start + BUSIEST_WINDOW_HOURS])
        if count > best_count:
            best_start, best_count = start, count
    if best_count <= 0:
        return None
    return BusiestPeriod(
        start_hour=best_start,
        end_hour=best_start + BUSIEST_WINDOW_HOURS,
        count=best_count,
    )


def segment_for_hour(hour: int) -> int:
    for index, (_, start, end) in enumerate(SEGMENTS):
        if start <= hour < end:
            return index
    raise ValueError(f"Hour out of range: {hour}")


def _preview(message: Message, tz: tzinfo) -> str:
    content = truncate(message.display_content, PREVIEW_CONTENT_LIMIT)
    return f"{format_hhmm(message.timestamp, tz)} — {message.sender}: {content}"


def shared_links(messages: list[Message], limit: int = LINKS_LIMIT) -> list[SharedLink]:
    links: list[SharedLink] = []
    seen: set[str] = set()
    for message in messages:
        for url in extract_urls(message.content):
            if url in seen:
                continue
            seen.add(url)
            links.append(
                SharedLink(
                    url=url,
                    sender=message.sender,
                    snippet=truncate(message.content, LINK_SNIPPET_LIMIT),
                )
            )
            if len(links) >= limit:
                return links
    return links


def compute_stats(
    messages: list[Message],
    tz: tzinfo,
    window_start_ms: int,
    window_end_ms: int,
) -> Stats:
    """Aggregate metrics for a window. ``messages`` should be sorted by timestamp."""
    ordered = sorted(messages, key=lambda m: m.timestamp)

    hour_counts = [0] * 24
    segments = [SegmentStats(name=name, start_hour=start, end_hour=end) for name, start, end in SEGMENTS]
    for message in ordered:
        hour = to_local(message.timestamp, tz).hour
        hour_counts[hour] += 1
        segment = segments[segment_for_hour(hour)]
        segment.count += 1
        if len(segment.previews) < PREVIEWS_PER_SEGMENT:
            segment.previews.append(_preview(message, tz))

    return Stats(
        total_messages=len(ordered),
        unique_participants=len({m.sender for m in ordered}),
        window_start=to_local(window_start_ms, tz),
        window_end=to_local(window_end_ms, tz),
        top_members=top_members(ordered),
        busiest_period=busiest_period(hour_counts),
        segments=segments,
        shared_links=shared_links(ordered),
    )
