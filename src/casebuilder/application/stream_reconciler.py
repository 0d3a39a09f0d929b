"""Reconciliation of an assistant tool-call stream with the editor.

The assistant executes its tools against the remote store directly. The
client only watches the narration: it shows the readable parts, and when the
narration (or a structured ``tool`` event) says something was written, it
re-syncs the whole case once the stream is done.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from casebuilder.domain.exceptions import CaseBuilderError, StreamError
from casebuilder.domain.tool_responses import (
    StreamFrame,
    parse_sse_line,
    process_tool_response,
    should_suppress,
    signals_mutation,
)

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    """Lifecycle of one request/response exchange."""

    IDLE = "idle"
    AWAITING_FIRST_BYTE = "awaiting_first_byte"
    STREAMING = "streaming"
    DONE = "done"
    ERRORED = "errored"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({StreamState.DONE, StreamState.ERRORED, StreamState.CANCELLED})


@dataclass
class StreamOutcome:
    """What a consumed stream produced."""

    state: StreamState
    visible_text: str = ""
    errors: list[str] = field(default_factory=list)
    reloaded: bool = False
    reload_error: str | None = None


class StreamReconciler:
    """State machine over one assistant stream.

    Callbacks:
        on_text: Receives the accumulated visible text after each visible chunk.
        on_error: Receives each ``error`` frame's message.
        reload: Awaited once on completion when a mutation was signalled.
        clear_selection: Called after the reload.
    """

    def __init__(
        self,
        reload: Callable[[], Awaitable[object]],
        clear_selection: Callable[[], None] | None = None,
        on_text: Callable[[str], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self._reload = reload
        self._clear_selection = clear_selection
        self._on_text = on_text
        self._on_error = on_error

        self.state = StreamState.IDLE
        self.should_reload = False
        self.visible_text = ""
        self.errors: list[str] = []
        self._cancel_requested = False
        self._structured_events = False

    def mark_errored(self) -> None:
        """Record a failure detected outside ``consume`` (e.g. a timeout)."""
        self.state = StreamState.ERRORED

    def cancel(self) -> None:
        """Stop consuming after the line currently being handled."""
        if self.state not in TERMINAL_STATES:
            self._cancel_requested = True

    def handle_frame(self, frame: StreamFrame) -> bool:
        """Apply one decoded frame; returns True when the frame ends the stream.

        Once the server has sent a structured ``tool`` event, only those events
        decide whether to reload; before that, the narration keywords do.
        """
        if frame.tool_mutated is not None:
            self._structured_events = True
            if frame.tool_mutated:
                self.should_reload = True
            logger.debug("Tool event %s (mutated=%s)", frame.tool_name, frame.tool_mutated)

        if frame.text:
            if should_suppress(frame.text):
                logger.debug("Suppressed tool output: %s", frame.text)
            else:
                self.visible_text += process_tool_response(frame.text)
                if self._on_text is not None:
                    self._on_text(self.visible_text)
            if not self._structured_events and signals_mutation(frame.text):
                self.should_reload = True

        if frame.error:
            logger.error("Streaming error: %s", frame.error)
            self.errors.append(frame.error)
            if self._on_error is not None:
                self._on_error(frame.error)

        return frame.done

    async def consume(self, lines: AsyncIterable[str]) -> StreamOutcome:
        """Consume SSE lines until a ``done`` frame, end of stream or cancellation.

        End of stream without a ``done`` frame is treated as done.

        Raises:
            StreamError: The transport failed; state becomes ERRORED.
        """
        if self.state is not StreamState.IDLE:
            raise CaseBuilderError(f"Stream already consumed (state={self.state.value})")
        self.state = StreamState.AWAITING_FIRST_BYTE

        try:
            async for line in lines:
                if self.state is StreamState.AWAITING_FIRST_BYTE:
                    self.state = StreamState.STREAMING
                frame = parse_sse_line(line)
                if frame is not None and self.handle_frame(frame):
                    break
                if self._cancel_requested:
                    self.state = StreamState.CANCELLED
                    logger.info("Assistant stream cancelled")
                    return self._outcome()
        except StreamError:
            self.state = StreamState.ERRORED
            raise
        except (OSError, TimeoutError) as err:
            self.state = StreamState.ERRORED
            raise StreamError(f"Assistant stream failed: {err}") from err

        self.state = StreamState.DONE
        outcome = self._outcome()
        if self.should_reload:
            await self._reload_workflow(outcome)
        return outcome

    async def _reload_workflow(self, outcome: StreamOutcome) -> None:
        try:
            await self._reload()
        except CaseBuilderError as err:
            logger.error("Reload after assistant changes failed: %s", err)
            outcome.reload_error = str(err)
            return
        outcome.reloaded = True
        if self._clear_selection is not None:
            self._clear_selection()

    def _outcome(self) -> StreamOutcome:
        return StreamOutcome(
            state=self.state,
            visible_text=self.visible_text,
            errors=list(self.errors),
        )
