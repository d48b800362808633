"""Completion model clients (Anthropic Claude)."""

from chat_digest.llm.base import CompletionModel
from chat_digest.llm.client import DEFAULT_MODEL, AsyncLLMClient

__all__ = ["DEFAULT_MODEL", "CompletionModel", "AsyncLLMClient"]
