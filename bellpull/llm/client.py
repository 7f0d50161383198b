"""Async Claude API client: one-shot text generation with reply normalisation."""

from __future__ import annotations

import json
import logging
from typing import Any

import anthropic

from bellpull.config import settings
from bellpull.errors import AppError, ErrorKind
from bellpull.llm.pricing import estimate_cost

logger = logging.getLogger(__name__)

REFUSAL_REPLY = "I apologize, but I can't do that."
TOO_LONG_REPLY = "I apologize, but that message is too long for me to read."
UNKNOWN_REPLY = "I'm sorry, but I didn't quite catch your request."
SEARCH_FAILED_PREFIX = "I'm sorry, but I've failed you: "


def _render_search_results(content: Any) -> str:
    if isinstance(content, list):
        return "\n".join(f"{result.title}: {result.url}" for result in content)
    return SEARCH_FAILED_PREFIX + str(getattr(content, "error_code", "unknown"))


def _render_block(block: Any) -> str:
    """Turn one content block into visible text."""
    block_type = getattr(block, "type", None)
    if block_type == "text":
        return block.text
    if block_type == "thinking":
        # Shown to the user, not hidden.
        return block.thinking
    if block_type in ("tool_use", "server_tool_use"):
        return f"{block.name} {json.dumps(block.input, default=str)}"
    if block_type == "redacted_thinking":
        return f"thinking quietly: {block.data}"
    if block_type == "web_search_tool_result":
        return _render_search_results(block.content)

    logger.warning("LLM returned unexpected content: %r", block)
    return UNKNOWN_REPLY


def normalize_response(response: Any, max_tokens: int) -> str:
    """Reduce a Messages API response to a single reply string.

    Always returns a string; unknown shapes become :data:`UNKNOWN_REPLY`.
    """
    try:
        content = list(getattr(response, "content", None) or [])

        if getattr(response, "stop_reason", None) == "refusal":
            logger.warning("LLM refused to generate text: %r", content[:1])
            return REFUSAL_REPLY

        if not content:
            usage = getattr(response, "usage", None)
            if (getattr(usage, "input_tokens", 0) or 0) >= max_tokens:
                return TOO_LONG_REPLY
            logger.warning("LLM returned no content")
            return UNKNOWN_REPLY

        return _render_block(content[0])
    except Exception:
        logger.exception("Failed to normalise LLM response")
        return UNKNOWN_REPLY


class LLMClient:
    """Thin wrapper over ``anthropic.AsyncAnthropic.messages.create``.

    Singleton accessed via ``LLMClient.get()``. Pass an explicit *client*
    to inject a fake in tests.
    """

    _instance: LLMClient | None = None

    def __init__(
        self,
        client: anthropic.AsyncAnthropic | None = None,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        system_prompt: str | None = None,
    ) -> None:
        self._client = client
        self.model = model or settings.anthropic_model
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self._system_prompt = system_prompt

    @classmethod
    def get(cls) -> LLMClient:
        """Return the shared LLMClient instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        """Lazily initialize the Anthropic client."""
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
        return self._client

    async def generate_text(
        self,
        messages: list[dict[str, Any]],
        *,
        system_prompt: str | None = None,
    ) -> str:
        """Single Claude call with thinking disabled.

        *system_prompt* overrides the client's default system prompt.

        Raises:
            AppError: ``LLM`` kind if the API call fails.
        """
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "thinking": {"type": "disabled"},
            "temperature": self.temperature,
            "messages": messages,
        }
        system = system_prompt or self._system_prompt
        if system:
            kwargs["system"] = system

        try:
            response = await self._get_client().messages.create(**kwargs)
        except anthropic.AnthropicError as exc:
            raise AppError(ErrorKind.LLM, "Claude API call failed", cause=exc) from exc

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.info(
                "LLM usage: in=%s out=%s cost=%s",
                getattr(usage, "input_tokens", "?"),
                getattr(usage, "output_tokens", "?"),
                estimate_cost(self.model, usage),
            )

        return normalize_response(response, self.max_tokens)
