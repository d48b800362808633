"""Tests for inbound event ingestion."""

import json

import pytest

from chat_digest.buffer import UNKNOWN_SENDER, MessageBuffer, MessageKind
from chat_digest.exceptions import StorageError
from chat_digest.transport.ingest import InboundEvent, MessageIngestor, read_event_lines

NOW_SECONDS = 1_792_400_000


def make_event(**overrides):
    data = {
        "conversation_id": "120363000000000001@g.us",
        "message_id": "ABC123",
        "sender_display_name": "Ana",
        "content": "bom dia",
        "has_media": False,
        "timestamp_seconds": NOW_SECONDS,
    }
    data.update(overrides)
    return InboundEvent(**data)


@pytest.fixture
def buffer(tmp_path):
    return MessageBuffer(tmp_path / "buffer")


def test_from_dict_camel_case():
    event = InboundEvent.from_dict(
        {
            "conversationId": "x@g.us",
            "messageId": "id1",
            "senderDisplayName": "Bruno",
            "content": "oi",
            "hasMedia": True,
            "timestampSeconds": 100,
        }
    )
    assert event == InboundEvent("x@g.us", "id1", "Bruno", "oi", True, 100, False)


def test_from_dict_missing_fields_default():
    event = InboundEvent.from_dict({"conversation_id": "x@g.us"})
    assert event.message_id == ""
    assert event.timestamp_seconds == 0
    assert event.content == ""


def test_default_targets_are_groups(buffer):
    ingestor = MessageIngestor(buffer)
    assert ingestor.is_target("120363000000000001@g.us")
    assert not ingestor.is_target("5511999999999@c.us")


def test_allow_list_targets(buffer):
    ingestor = MessageIngestor(buffer, ["5511999999999@c.us"])
    assert ingestor.is_target("5511999999999@c.us")
    assert not ingestor.is_target("120363000000000001@g.us")


def test_to_message_kinds_and_placeholder(buffer):
    ingestor = MessageIngestor(buffer)

    media = ingestor.to_message(make_event(has_media=True, content="", sender_display_name="  "))
    assert media.kind == MessageKind.MEDIA
    assert media.sender == UNKNOWN_SENDER
    assert media.timestamp == NOW_SECONDS * 1000

    system = ingestor.to_message(make_event(is_system=True))
    assert system.kind == MessageKind.SYSTEM

    text = ingestor.to_message(make_event())
    assert text.kind == MessageKind.TEXT
    assert text.sender == "Ana"


@pytest.mark.asyncio
async def test_handle_appends_target_message(buffer):
    ingestor = MessageIngestor(buffer)
    message = await ingestor.handle(make_event())

    assert message is not None
    stored = buffer.load_window(message.conversation_id, message.timestamp, now_ms=message.timestamp)
    assert stored == [message]


@pytest.mark.asyncio
async def test_handle_filters_non_target(buffer):
    ingestor = MessageIngestor(buffer)
    assert await ingestor.handle(make_event(conversation_id="5511999999999@c.us")) is None
    assert buffer.list_conversations() == []


@pytest.mark.asyncio
async def test_handle_ignores_incomplete_event(buffer):
    ingestor = MessageIngestor(buffer)
    assert await ingestor.handle(make_event(timestamp_seconds=0)) is None
    assert await ingestor.handle(make_event(message_id="")) is None
    assert buffer.list_conversations() == []


@pytest.mark.asyncio
async def test_handle_ignores_unusable_conversation_id(buffer):
    ingestor = MessageIngestor(buffer)
    assert await ingestor.handle(make_event(conversation_id="a/b@g.us")) is None
    assert await ingestor.handle(make_event(conversation_id="..")) is None
    assert buffer.list_conversations() == []


async def _lines(*lines):
    for line in lines:
        yield line


def _event_line(conversation_id, message_id):
    return json.dumps(
        {
            "conversationId": conversation_id,
            "messageId": message_id,
            "senderDisplayName": "Ana",
            "content": "oi",
            "hasMedia": False,
            "timestampSeconds": NOW_SECONDS,
        }
    )


@pytest.mark.asyncio
async def test_consume_skips_bad_lines_and_keeps_going(buffer):
    ingestor = MessageIngestor(buffer)
    stored = await ingestor.consume(
        _lines(
            _event_line("a/b@g.us", "1"),
            "not json\n",
            "[1, 2]\n",
            "\n",
            _event_line("ok@g.us", "2"),
        )
    )

    assert stored == 1
    assert buffer.list_conversations() == ["ok@g.us"]


@pytest.mark.asyncio
async def test_consume_continues_after_storage_error(tmp_path):
    class FlakyBuffer(MessageBuffer):
        def append(self, message):
            if message.message_id == "bad":
                raise StorageError("disk full")
            super().append(message)

    buffer = FlakyBuffer(tmp_path / "buffer")
    stored = await MessageIngestor(buffer).consume(
        _lines(_event_line("ok@g.us", "bad"), _event_line("ok@g.us", "good"))
    )

    assert stored == 1
    window = buffer.load_window("ok@g.us", NOW_SECONDS * 1000, now_ms=NOW_SECONDS * 1000)
    assert [m.message_id for m in window] == ["good"]


@pytest.mark.asyncio
async def test_read_event_lines_from_file(tmp_path):
    path = tmp_path / "events.jsonl"
    path.write_text("um\ndois\n", encoding="utf-8")
    with open(path, encoding="utf-8") as stream:
        lines = [line async for line in read_event_lines(stream)]
    assert lines == ["um\n", "dois\n"]
