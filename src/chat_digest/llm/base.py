"""Abstract interface for completion models."""

from __future__ import annotations

from abc import ABC, abstractmethod


class CompletionModel(ABC):
    """A model that turns a system prompt plus user content into text."""

    @abstractmethod
    async def complete(self, system_prompt: str, user_content: str) -> str:
        """Return the completion text, possibly empty.

        Raises ModelError when the call itself fails.
        """
        ...
