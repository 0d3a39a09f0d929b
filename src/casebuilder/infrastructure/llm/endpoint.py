"""
Client for the editor backend's assistant route.

The backend proxies Gemini or OpenAI and runs the tool calls itself; the
client only sees its narration as server-sent-event lines.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Mapping, Sequence
from typing import Any

import httpx

from casebuilder.domain.changes import ValidatedResponse
from casebuilder.domain.exceptions import StreamError
from casebuilder.domain.interfaces import AssistantInterface
from casebuilder.domain.prompts import HistoryEntry
from casebuilder.schemas import extract_json_document, parse_validated_response

logger = logging.getLogger(__name__)

PROVIDER_PATHS = {
    "gemini": "/api/gemini",
    "openai": "/api/openai",
}


class AIEndpointAssistant(AssistantInterface):
    """Streams from ``POST {base_url}{ai_path}`` with ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str,
        ai_path: str = PROVIDER_PATHS["gemini"],
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._url = base_url.rstrip("/") + ai_path
        self._owns_client = client is None
        # No read timeout: the stream stays open while tools run server-side.
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout, read=None))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def _body(
        prompt: str, system_context: str, history: Sequence[HistoryEntry] = ()
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"prompt": prompt, "systemContext": system_context}
        if history:
            body["history"] = [entry.to_dict() for entry in history]
        return body

    async def stream(
        self,
        prompt: str,
        system_context: str,
        history: Sequence[HistoryEntry] = (),
    ) -> AsyncGenerator[str, None]:
        body = self._body(prompt, system_context, history)
        try:
            async with self._client.stream("POST", self._url, json=body) as response:
                if response.status_code >= 400:
                    detail = (await response.aread()).decode(errors="replace")
                    logger.error(
                        "POST %s -> %d: %s", self._url, response.status_code, detail
                    )
                    raise StreamError(
                        f"Failed to generate response: {response.status_code} {detail}".rstrip()
                    )
                async for line in response.aiter_lines():
                    yield line
        except httpx.HTTPError as err:
            logger.error("Assistant stream from %s failed: %s", self._url, err)
            raise StreamError(f"Assistant stream failed: {err}") from err

    async def generate(self, prompt: str, system_context: str) -> ValidatedResponse:
        try:
            response = await self._client.post(
                self._url, json=self._body(prompt, system_context)
            )
        except httpx.HTTPError as err:
            raise StreamError(f"Assistant request failed: {err}") from err
        if response.status_code >= 400:
            logger.error("POST %s -> %d: %s", self._url, response.status_code, response.text)
            raise StreamError(f"API error ({response.status_code}): {response.text}")

        try:
            payload: Any = response.json()
        except ValueError:
            payload = extract_json_document(response.text)
        if isinstance(payload, Mapping) and "message" not in payload:
            text = payload.get("text") or payload.get("content")
            if isinstance(text, str):
                payload = extract_json_document(text)
        return parse_validated_response(payload)
