"""Tests for token-budget chunking."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from chat_digest.buffer import Message, MessageKind
from chat_digest.clock import resolve_timezone
from chat_digest.summarizer.chunker import (
    MessageChunker,
    build_token_counter,
    chunk_messages,
    render_message,
)

TZ = resolve_timezone("America/Sao_Paulo")


def make_message(message_id, content, timestamp=1_760_000_000_000, kind=MessageKind.TEXT):
    return Message(
        conversation_id="chat@g.us",
        message_id=message_id,
        sender="Ana",
        content=content,
        kind=kind,
        timestamp=timestamp,
    )


def by_content(message):
    return message.content


def test_chunks_reconstruct_input_in_order():
    messages = [make_message(str(i), "x" * (i % 7 + 1)) for i in range(40)]
    chunks = chunk_messages(messages, 10, len, by_content)

    flattened = [m for chunk in chunks for m in chunk]
    assert flattened == messages
    assert all(chunk for chunk in chunks)


def test_chunks_respect_budget():
    messages = [make_message(str(i), "x" * (i % 5 + 1)) for i in range(30)]
    chunks = chunk_messages(messages, 8, len, by_content)

    for chunk in chunks:
        assert sum(len(m.content) for m in chunk) <= 8


def test_greedy_boundary_at_exact_budget():
    messages = [make_message("a", "xxxx"), make_message("b", "xxxx"), make_message("c", "x")]
    chunks = chunk_messages(messages, 8, len, by_content)
    assert [[m.message_id for m in chunk] for chunk in chunks] == [["a", "b"], ["c"]]


def test_oversize_message_gets_its_own_chunk():
    messages = [
        make_message("small", "xx"),
        make_message("huge", "x" * 50),
        make_message("tail", "xx"),
    ]
    chunks = chunk_messages(messages, 10, len, by_content)
    assert [[m.message_id for m in chunk] for chunk in chunks] == [["small"], ["huge"], ["tail"]]


def test_oversize_first_message():
    messages = [make_message("huge", "x" * 50), make_message("tail", "xx")]
    chunks = chunk_messages(messages, 10, len, by_content)
    assert [[m.message_id for m in chunk] for chunk in chunks] == [["huge"], ["tail"]]


def test_empty_input():
    assert chunk_messages([], 10, len, by_content) == []


def test_invalid_budget():
    with pytest.raises(ValueError):
        chunk_messages([make_message("a", "x")], 0, len, by_content)


def test_chunking_is_deterministic():
    messages = [make_message(str(i), "word " * (i % 4)) for i in range(25)]
    first = chunk_messages(messages, 12, len, by_content)
    second = chunk_messages(messages, 12, len, by_content)
    assert first == second


def test_render_message_uses_local_time():
    timestamp = int(datetime(2025, 10, 9, 12, 26, 40, tzinfo=timezone.utc).timestamp() * 1000)
    message = make_message("a", "bom dia", timestamp=timestamp)
    assert render_message(message, TZ) == "[09/10/2025 09:26:40] Ana: bom dia"


def test_render_media_placeholder():
    message = make_message("a", "", kind=MessageKind.MEDIA)
    assert render_message(message, TZ).endswith("Ana: [mídia]")


def test_message_chunker_uses_injected_counter():
    chunker = MessageChunker("any-model", TZ, token_budget=2, count_tokens=lambda text: 1)
    messages = [make_message(str(i), "x") for i in range(5)]
    chunks = chunker.chunk(messages)
    assert [len(c) for c in chunks] == [2, 2, 1]


def test_build_token_counter_known_model():
    encoding = MagicMock()
    encoding.encode.return_value = [1, 2, 3]
    with patch("tiktoken.encoding_for_model", return_value=encoding) as for_model:
        count = build_token_counter("gpt-4o-mini")
    for_model.assert_called_once_with("gpt-4o-mini")
    assert count("hello") == 3


def test_build_token_counter_falls_back_for_unknown_model():
    encoding = MagicMock()
    encoding.encode.return_value = [1, 2]
    with patch("tiktoken.encoding_for_model", side_effect=KeyError("unknown")), patch(
        "tiktoken.get_encoding", return_value=encoding
    ) as get_encoding:
        count = build_token_counter("claude-haiku-4-5-20251001")
    get_encoding.assert_called_once_with("cl100k_base")
    assert count("hello") == 2
