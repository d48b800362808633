"""Async Claude API client used as the summarization model."""

from __future__ import annotations

import asyncio
import logging
import os

from chat_digest.exceptions import ModelError
from chat_digest.llm.base import CompletionModel

logger = logging.getLogger(__name__)


DEFAULT_MODEL = "claude-haiku-4-5-20251001"


class AsyncLLMClient(CompletionModel):
    """Asynchronous wrapper around the Anthropic SDK."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        max_retries: int = 3,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ):
        if not api_key and not os.environ.get("ANTHROPIC_API_KEY"):
            raise ModelError(
                "Anthropic API key is required. "
                "Pass it directly or set ANTHROPIC_API_KEY in your environment."
            )
        from anthropic import AsyncAnthropic

        self._client = AsyncAnthropic(api_key=api_key or None)
        self.model = model
        self.max_retries = max_retries
        self.max_tokens = max_tokens
        self.temperature = temperature

    @property
    def client(self):
        """Access the underlying AsyncAnthropic SDK client for advanced usage."""
        return self._client

    async def generate(
        self,
        system_prompt: str,
        user_content: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
        model: str | None = None,
    ) -> dict:
        """Send a message to Claude and return the response with usage info.

        Returns:
            dict with keys: text, input_tokens, output_tokens, model
        """
        from anthropic import APIError, APITimeoutError, RateLimitError

        use_model = model or self.model
        for attempt in range(self.max_retries):
            try:
                response = await self._client.messages.create(
                    model=use_model,
                    max_tokens=max_tokens or self.max_tokens,
                    temperature=self.temperature if temperature is None else temperature,
                    system=system_prompt,
                    messages=[{"role": "user", "content": user_content}],
                )
                text_parts = [
                    block.text for block in response.content if block.type == "text"
                ]
                return {
                    "text": "\n".join(text_parts),
                    "input_tokens": response.usage.input_tokens,
                    "output_tokens": response.usage.output_tokens,
                    "model": use_model,
                }
            except RateLimitError:
                wait = 2 ** (attempt + 1)
                logger.warning(f"Rate limited, retrying in {wait}s (attempt {attempt + 1})")
                await asyncio.sleep(wait)
            except APITimeoutError:
                wait = 2 ** attempt
                logger.warning(f"API timeout, retrying in {wait}s (attempt {attempt + 1})")
                await asyncio.sleep(wait)
            except APIError as e:
                raise ModelError(f"Claude API error: {e}") from e

        raise ModelError(f"Failed after {self.max_retries} retries")

    async def complete(self, system_prompt: str, user_content: str) -> str:
        """Completion text, stripped. Empty when the model produced no text."""
        result = await self.generate(system_prompt, user_content)
        logger.debug(
            f"Completion used {result['input_tokens']} input / "
            f"{result['output_tokens']} output tokens ({result['model']})"
        )
        return result["text"].strip()
