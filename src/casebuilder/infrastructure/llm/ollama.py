"""
Ollama workflow assistant.

Connects to Ollama instances via the OpenAI-compatible API. Ollama runs no
tools, so the streaming path only narrates; the reply is re-framed as SSE
lines so the same reconciler consumes it.
"""

import json
import logging
from collections.abc import AsyncGenerator, Sequence
from dataclasses import dataclass
from typing import Any, cast

from openai import AsyncOpenAI, OpenAIError

from casebuilder.domain.changes import ValidatedResponse
from casebuilder.domain.exceptions import StreamError
from casebuilder.domain.interfaces import AssistantInterface
from casebuilder.domain.prompts import HistoryEntry
from casebuilder.domain.tool_responses import SSE_DATA_PREFIX
from casebuilder.schemas import extract_json_document, parse_validated_response

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_URL = "http://localhost:11434/v1"
DEFAULT_OLLAMA_MODEL = "gemma3:27b"


@dataclass
class OllamaAssistantConfig:
    """Configuration for OllamaAssistant.

    This typed config ensures unknown fields are rejected at construction time.
    """

    model: str = DEFAULT_OLLAMA_MODEL
    base_url: str = DEFAULT_OLLAMA_URL
    timeout: float = 120.0
    temperature: float = 0.2


def _sse(payload: dict[str, Any]) -> str:
    return SSE_DATA_PREFIX + json.dumps(payload)


class OllamaAssistant(AssistantInterface):
    """Talks to Ollama with ``openai.AsyncOpenAI``."""

    config_class = OllamaAssistantConfig

    def __init__(
        self,
        config: OllamaAssistantConfig | None = None,
        client: AsyncOpenAI | None = None,
        **kwargs: Any,
    ):
        """
        Args:
            config: Typed configuration object (preferred)
            client: Preconfigured client, mainly for tests
            **kwargs: Fields of OllamaAssistantConfig
        """
        if config is None:
            config = OllamaAssistantConfig(**kwargs)
        self._config = config
        self._client = client or AsyncOpenAI(
            base_url=config.base_url,
            api_key="ollama",  # required but unused
            timeout=config.timeout,
        )

    async def aclose(self) -> None:
        await self._client.close()

    @staticmethod
    def _messages(
        prompt: str, system_context: str, history: Sequence[HistoryEntry] = ()
    ) -> list[dict[str, str]]:
        messages = [{"role": "system", "content": system_context}] if system_context else []
        messages.extend(entry.to_dict() for entry in history)
        messages.append({"role": "user", "content": prompt})
        return messages

    async def stream(
        self,
        prompt: str,
        system_context: str,
        history: Sequence[HistoryEntry] = (),
    ) -> AsyncGenerator[str, None]:
        try:
            chunks = await self._client.chat.completions.create(
                model=self._config.model,
                messages=cast(Any, self._messages(prompt, system_context, history)),
                temperature=self._config.temperature,
                stream=True,
            )
            async for chunk in chunks:
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    yield _sse({"text": text})
        except OpenAIError as err:
            logger.error("Ollama stream failed: %s", err)
            raise StreamError(f"Ollama stream failed: {err}") from err
        yield _sse({"done": True})

    async def generate(self, prompt: str, system_context: str) -> ValidatedResponse:
        try:
            response = await self._client.chat.completions.create(
                model=self._config.model,
                messages=cast(Any, self._messages(prompt, system_context)),
                temperature=self._config.temperature,
                response_format={"type": "json_object"},
            )
        except OpenAIError as err:
            logger.error("Ollama request failed: %s", err)
            raise StreamError(f"Failed to generate response from ollama: {err}") from err

        content = response.choices[0].message.content or ""
        logger.debug("Ollama reply: %s", content)
        return parse_validated_response(extract_json_document(content))
