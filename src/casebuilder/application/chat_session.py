"""Chat transcript and assistant round-trips for one editing session."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Literal

from casebuilder.application.stream_reconciler import (
    StreamOutcome,
    StreamReconciler,
    StreamState,
)
from casebuilder.domain.changes import ValidatedResponse, describe_change
from casebuilder.domain.exceptions import StreamError
from casebuilder.domain.prompts import (
    HistoryEntry,
    build_generation_context,
    build_system_context,
)
from casebuilder.domain.selection import SelectionResult, compose_quick_chat_message

if TYPE_CHECKING:
    from casebuilder.application.editor import WorkflowEditor
    from casebuilder.domain.interfaces import AssistantInterface

logger = logging.getLogger(__name__)

ERROR_REPLY = "Sorry, there was an error processing your request."

ReconcilerFactory = Callable[..., StreamReconciler]


def _now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class ChatMessage:
    content: str
    sender: Literal["user", "assistant"]
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=_now)
    is_thinking: bool = False


@dataclass(frozen=True)
class Proposal:
    """A structured assistant reply with one sentence per proposed change."""

    response: ValidatedResponse
    change_descriptions: tuple[str, ...]


class ChatSession:
    """Transcript plus the send paths (streaming, quick instruction, proposal)."""

    def __init__(
        self,
        editor: WorkflowEditor,
        assistant: AssistantInterface,
        *,
        stream_timeout: float | None = 300.0,
        reconciler_factory: ReconcilerFactory = StreamReconciler,
    ) -> None:
        self._editor = editor
        self._assistant = assistant
        self._stream_timeout = stream_timeout
        self._reconciler_factory = reconciler_factory
        self._active: StreamReconciler | None = None
        self.messages: list[ChatMessage] = []

    @property
    def is_processing(self) -> bool:
        return self._active is not None

    def clear(self) -> None:
        self.messages = []

    def cancel(self) -> None:
        """Stop the in-flight stream, if any, after its current line."""
        if self._active is not None:
            self._active.cancel()

    def _history(self) -> list[HistoryEntry]:
        return [
            HistoryEntry(role="user" if m.sender == "user" else "assistant", content=m.content)
            for m in self.messages
            if m.content.strip()
        ]

    def _system_context(self) -> str:
        editor = self._editor
        if editor.model is None:
            return ""
        name = editor.case.name if editor.case is not None else editor.model.name
        return build_system_context(editor.case_id, name, editor.model)

    async def send_message(self, text: str) -> StreamOutcome | None:
        """Stream an instruction to the assistant and fold the reply into the transcript.

        Returns:
            The stream outcome, or None when ``text`` is blank.
        """
        if not text.strip():
            return None

        history = self._history()
        self.messages.append(ChatMessage(content=text, sender="user"))
        reply = ChatMessage(content="", sender="assistant", is_thinking=True)
        self.messages.append(reply)

        def on_text(visible: str) -> None:
            reply.content = visible

        def on_error(message: str) -> None:
            self.messages.append(ChatMessage(content=f"Error: {message}", sender="assistant"))

        reconciler = self._reconciler_factory(
            reload=self._editor.refresh,
            clear_selection=self._editor.selection.clear,
            on_text=on_text,
            on_error=on_error,
        )
        self._active = reconciler
        try:
            lines = self._assistant.stream(text, self._system_context(), history)
            async with aclosing(lines), asyncio.timeout(self._stream_timeout):
                return await reconciler.consume(lines)
        except (StreamError, TimeoutError) as err:
            logger.error("Error sending message: %s", err)
            reconciler.mark_errored()
            self.messages.append(ChatMessage(content=ERROR_REPLY, sender="assistant"))
            return StreamOutcome(
                state=StreamState.ERRORED,
                visible_text=reconciler.visible_text,
                errors=[*reconciler.errors, str(err) or type(err).__name__],
            )
        finally:
            reply.is_thinking = False
            self._active = None

    async def send_quick_instruction(
        self, text: str, selection: SelectionResult
    ) -> StreamOutcome | None:
        """Send an instruction prefixed with a description of the selection."""
        if not text.strip():
            return None
        editor = self._editor
        stages = editor.model.stages if editor.model is not None else ()
        message = compose_quick_chat_message(text, selection, editor.fields, editor.views, stages)
        return await self.send_message(message)

    async def generate_proposal(self, prompt: str) -> Proposal:
        """Ask for a structured proposal without applying it.

        Raises:
            StreamError: Transport failure.
            ResponseValidationError: The reply is not a valid proposal.
        """
        context = build_generation_context(self._editor.model, self._editor.fields)
        response = await self._assistant.generate(prompt, context)
        descriptions = tuple(describe_change(change) for change in response.changes)
        self.messages.append(ChatMessage(content=prompt, sender="user"))
        self.messages.append(ChatMessage(content=response.message, sender="assistant"))
        return Proposal(response=response, change_descriptions=descriptions)
