"""Tests for AIEndpointAssistant against an httpx.MockTransport."""

import json

import httpx
import pytest

from casebuilder.domain.exceptions import ResponseValidationError, StreamError
from casebuilder.domain.prompts import HistoryEntry
from casebuilder.infrastructure.llm.endpoint import PROVIDER_PATHS, AIEndpointAssistant

BASE_URL = "http://backend.test"


def make_assistant(handler, ai_path: str = PROVIDER_PATHS["gemini"]) -> AIEndpointAssistant:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AIEndpointAssistant(BASE_URL, ai_path, client=client)


async def collect(assistant: AIEndpointAssistant, *args) -> list[str]:
    return [line async for line in assistant.stream(*args)]


class TestStream:
    async def test_yields_sse_lines(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            body = 'data: {"text": "Hi"}\n\ndata: {"done": true}\n\n'
            return httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})

        assistant = make_assistant(handler)
        lines = await collect(assistant, "Add a stage", '{"currentCaseId": 1}')

        assert [line for line in lines if line] == ['data: {"text": "Hi"}', 'data: {"done": true}']
        request = requests[0]
        assert request.method == "POST"
        assert request.url == f"{BASE_URL}/api/gemini"
        assert json.loads(request.content) == {
            "prompt": "Add a stage",
            "systemContext": '{"currentCaseId": 1}',
        }

    async def test_history_sent_when_present(self):
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, text="")

        assistant = make_assistant(handler, PROVIDER_PATHS["openai"])
        await collect(assistant, "Next", "{}", [HistoryEntry("user", "First")])

        assert bodies[0]["history"] == [{"role": "user", "content": "First"}]

    async def test_error_status(self):
        assistant = make_assistant(lambda request: httpx.Response(500, text="model overloaded"))
        with pytest.raises(StreamError, match="Failed to generate response: 500 model overloaded"):
            await collect(assistant, "Hi", "{}")

    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadError("reset", request=request)

        assistant = make_assistant(handler)
        with pytest.raises(StreamError, match="Assistant stream failed"):
            await collect(assistant, "Hi", "{}")


class TestGenerate:
    async def test_plain_document(self):
        assistant = make_assistant(
            lambda request: httpx.Response(200, json={"message": "Nothing to change"})
        )
        response = await assistant.generate("Check", "context")
        assert response.message == "Nothing to change"

    async def test_document_wrapped_in_text(self):
        reply = '```json\n{"message": "Added", "action": {"changes": []}}\n```'
        assistant = make_assistant(lambda request: httpx.Response(200, json={"text": reply}))
        response = await assistant.generate("Add", "context")
        assert response.message == "Added"

    async def test_non_json_body_with_embedded_document(self):
        assistant = make_assistant(
            lambda request: httpx.Response(200, text='Result: {"message": "ok"}')
        )
        assert (await assistant.generate("Add", "context")).message == "ok"

    async def test_invalid_document(self):
        assistant = make_assistant(lambda request: httpx.Response(200, json={"model": {}}))
        with pytest.raises(ResponseValidationError):
            await assistant.generate("Add", "context")

    async def test_error_status(self):
        assistant = make_assistant(lambda request: httpx.Response(502, text="bad gateway"))
        with pytest.raises(StreamError, match=r"API error \(502\): bad gateway"):
            await assistant.generate("Add", "context")
