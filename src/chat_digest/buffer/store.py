"""Day-bucketed JSON message buffer on the local filesystem.

Layout::

    <root>/<conversation_id>/<YYYY-MM-DD>.json

Each bucket holds a JSON array of message records in append order for one
conversation and one UTC calendar day. Buckets are always read and written
as whole files.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
import threading
from datetime import date, timedelta
from pathlib import Path

from chat_digest.buffer.models import Message
from chat_digest.clock import now_ms as _now_ms
from chat_digest.clock import utc_bucket_date
from chat_digest.exceptions import StorageError

logger = logging.getLogger(__name__)

BUCKET_SUFFIX = ".json"


def is_valid_conversation_id(conversation_id: str) -> bool:
    """Whether the id can name a directory directly under the buffer root."""
    return bool(conversation_id) and conversation_id not in (".", "..") and not any(
        sep in conversation_id for sep in ("/", "\\", "\0")
    )


class MessageBuffer:
    """Durable retention buffer keyed by conversation and UTC day.

    Bucket updates are serialized per instance, so ingestion and the summary
    job must share one buffer for a given root.

    Args:
        root: Storage root directory. Created lazily on first append.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()
        # Serializes bucket read-modify-write cycles across to_thread workers.
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def append(self, message: Message) -> None:
        """Append a message to the bucket for its conversation and UTC date."""
        path = self._bucket_path(message.conversation_id, utc_bucket_date(message.timestamp))
        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(f"Cannot create buffer directory {path.parent}: {e}") from e

            messages = self._read_bucket(path)
            messages.append(message)
            self._write_bucket(path, messages)

    def list_conversations(self) -> list[str]:
        """Conversation ids that currently have at least one bucket on disk."""
        if not self.root.is_dir():
            return []
        conversations = []
        with self._lock:
            for entry in sorted(self.root.iterdir()):
                if entry.is_dir() and any(entry.glob(f"*{BUCKET_SUFFIX}")):
                    conversations.append(entry.name)
        return conversations

    def load_window(
        self,
        conversation_id: str,
        since_ms: int,
        now_ms: int | None = None,
    ) -> list[Message]:
        """All messages with ``timestamp >= since_ms``, oldest first.

        Reads every bucket dated from ``since``'s UTC day through today's.
        """
        now_ms = _now_ms() if now_ms is None else now_ms
        messages: list[Message] = []
        with self._lock:
            for bucket in _bucket_dates_between(since_ms, now_ms):
                messages.extend(self._read_bucket(self._bucket_path(conversation_id, bucket)))

        window = [m for m in messages if m.timestamp >= since_ms]
        window.sort(key=lambda m: m.timestamp)
        return window

    def clear_older_than(
        self,
        conversation_id: str,
        cutoff_ms: int,
        now_ms: int | None = None,
    ) -> None:
        """Drop every message with ``timestamp < cutoff_ms``.

        A message stamped exactly at ``cutoff_ms`` is kept. The current and
        the cutoff-day buckets are trimmed and rewritten (or deleted when
        nothing remains). Buckets dated before the cutoff day only hold older
        messages and are deleted outright.
        """
        conversation_dir = self._conversation_dir(conversation_id)
        now_ms = _now_ms() if now_ms is None else now_ms
        cutoff_bucket = utc_bucket_date(cutoff_ms)

        with self._lock:
            if not conversation_dir.is_dir():
                return

            for path in sorted(conversation_dir.glob(f"*{BUCKET_SUFFIX}")):
                if path.stem < cutoff_bucket:
                    self._delete_bucket(path)
                    logger.info(f"Removed expired bucket {conversation_id}/{path.stem}")

            for bucket in sorted({utc_bucket_date(now_ms), cutoff_bucket}):
                path = self._bucket_path(conversation_id, bucket)
                messages = self._read_bucket(path)
                if not messages:
                    continue

                remaining = [m for m in messages if m.timestamp >= cutoff_ms]
                if len(remaining) == len(messages):
                    continue
                if not remaining:
                    self._delete_bucket(path)
                    logger.info(f"Removed emptied bucket {conversation_id}/{bucket}")
                    continue

                self._write_bucket(path, remaining)
                logger.info(
                    f"Trimmed bucket {conversation_id}/{bucket}: {len(remaining)} messages remaining"
                )

    def remove_conversation(self, conversation_id: str) -> None:
        """Delete all stored buckets for a conversation."""
        conversation_dir = self._conversation_dir(conversation_id)
        with self._lock:
            if not conversation_dir.exists():
                return
            try:
                shutil.rmtree(conversation_dir)
            except OSError as e:
                raise StorageError(f"Cannot remove buffer for {conversation_id}: {e}") from e
        logger.info(f"Removed conversation buffer {conversation_id}")

    # ---- Async wrappers (asyncio.to_thread) ----

    async def aappend(self, message: Message) -> None:
        """Async version of append."""
        return await asyncio.to_thread(self.append, message)

    async def alist_conversations(self) -> list[str]:
        """Async version of list_conversations."""
        return await asyncio.to_thread(self.list_conversations)

    async def aload_window(
        self, conversation_id: str, since_ms: int, now_ms: int | None = None
    ) -> list[Message]:
        """Async version of load_window."""
        return await asyncio.to_thread(self.load_window, conversation_id, since_ms, now_ms)

    async def aclear_older_than(
        self, conversation_id: str, cutoff_ms: int, now_ms: int | None = None
    ) -> None:
        """Async version of clear_older_than."""
        return await asyncio.to_thread(self.clear_older_than, conversation_id, cutoff_ms, now_ms)

    async def aremove_conversation(self, conversation_id: str) -> None:
        """Async version of remove_conversation."""
        return await asyncio.to_thread(self.remove_conversation, conversation_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _conversation_dir(self, conversation_id: str) -> Path:
        if not is_valid_conversation_id(conversation_id):
            raise StorageError(f"Invalid conversation id: {conversation_id!r}")
        return self.root / conversation_id

    def _bucket_path(self, conversation_id: str, bucket: str) -> Path:
        return self._conversation_dir(conversation_id) / f"{bucket}{BUCKET_SUFFIX}"

    def _read_bucket(self, path: Path) -> list[Message]:
        """Load a bucket. Corrupted buckets are deleted and read as empty."""
        if not path.exists():
            return []
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot read bucket {path}: {e}") from e

        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
            return [Message.from_dict(record) for record in data]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Corrupted buffer bucket {path}, discarding it: {e}")
            self._delete_bucket(path)
            return []

    def _write_bucket(self, path: Path, messages: list[Message]) -> None:
        payload = json.dumps([m.to_dict() for m in messages], ensure_ascii=False, indent=2)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Cannot write bucket {path}: {e}") from e

    def _delete_bucket(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot delete bucket {path}: {e}") from e


def _bucket_dates_between(start_ms: int, end_ms: int) -> list[str]:
    """UTC bucket names from ``start_ms``'s day through ``end_ms``'s day."""
    first = date.fromisoformat(utc_bucket_date(start_ms))
    last = date.fromisoformat(utc_bucket_date(end_ms))
    if last < first:
        return [first.isoformat()]
    days = (last - first).days
    return [(first + timedelta(days=offset)).isoformat() for offset in range(days + 1)]
