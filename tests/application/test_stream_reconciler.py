"""Tests for StreamReconciler."""

import json
from collections.abc import AsyncIterator

import pytest

from casebuilder.application.stream_reconciler import StreamReconciler, StreamState
from casebuilder.domain.exceptions import CaseBuilderError, StoreError, StreamError


def sse(**payload) -> str:
    return "data: " + json.dumps(payload)


async def feed(*lines: str, error: BaseException | None = None) -> AsyncIterator[str]:
    for line in lines:
        yield line
    if error is not None:
        raise error


class Recorder:
    """Collects reconciler callbacks."""

    def __init__(self, reload_error: Exception | None = None) -> None:
        self.reloads = 0
        self.selection_cleared = 0
        self.texts: list[str] = []
        self.errors: list[str] = []
        self._reload_error = reload_error

    async def reload(self) -> None:
        self.reloads += 1
        if self._reload_error is not None:
            raise self._reload_error

    def clear_selection(self) -> None:
        self.selection_cleared += 1

    def reconciler(self) -> StreamReconciler:
        return StreamReconciler(
            reload=self.reload,
            clear_selection=self.clear_selection,
            on_text=self.texts.append,
            on_error=self.errors.append,
        )


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


class TestVisibleText:
    async def test_accumulates_text(self, recorder):
        outcome = await recorder.reconciler().consume(
            feed(sse(text="Looking at "), sse(text="your stages."), sse(done=True))
        )
        assert outcome.state is StreamState.DONE
        assert outcome.visible_text == "Looking at your stages."
        assert recorder.texts == ["Looking at ", "Looking at your stages."]
        assert recorder.reloads == 0

    async def test_raw_tool_output_suppressed(self, recorder):
        outcome = await recorder.reconciler().consume(
            feed(sse(text='{"id": 1, "name": "kitchen", "type": "Text"}'), sse(text="Done."))
        )
        assert outcome.visible_text == "Done."

    async def test_tool_results_rewritten(self, recorder):
        text = '{"ids": [1, 2], "fields": [{"name": "a"}, {"name": "b"}]}'
        outcome = await recorder.reconciler().consume(feed(sse(text=text)))
        assert outcome.visible_text == "Saved 2 fields: a, b"

    async def test_non_data_lines_ignored(self, recorder):
        outcome = await recorder.reconciler().consume(
            feed("", ": ping", "event: message", "data: {broken", sse(text="ok"))
        )
        assert outcome.visible_text == "ok"

    async def test_stops_at_done_frame(self, recorder):
        outcome = await recorder.reconciler().consume(
            feed(sse(text="a"), sse(done=True), sse(text="b"))
        )
        assert outcome.visible_text == "a"

    async def test_end_of_stream_counts_as_done(self, recorder):
        outcome = await recorder.reconciler().consume(feed(sse(text="a")))
        assert outcome.state is StreamState.DONE


class TestReload:
    async def test_mutation_keyword_triggers_one_reload(self, recorder):
        outcome = await recorder.reconciler().consume(
            feed(sse(text="Field created. "), sse(text="View saved."), sse(done=True))
        )
        assert recorder.reloads == 1
        assert recorder.selection_cleared == 1
        assert outcome.reloaded

    async def test_suppressed_frames_still_signal(self, recorder):
        """A hidden tool payload mentioning a write still triggers the re-sync."""
        outcome = await recorder.reconciler().consume(
            feed(sse(text='{"id": 3, "name": "age", "description": "updated"}'))
        )
        assert outcome.visible_text == ""
        assert recorder.reloads == 1

    async def test_structured_tool_events_take_precedence(self, recorder):
        outcome = await recorder.reconciler().consume(
            feed(
                sse(tool={"name": "listViews", "mutated": False}),
                sse(text="I created nothing, just looked."),
                sse(done=True),
            )
        )
        assert recorder.reloads == 0
        assert not outcome.reloaded

    async def test_structured_mutation_event(self, recorder):
        await recorder.reconciler().consume(
            feed(sse(tool={"name": "saveFields", "mutated": True}), sse(text="Here you go"))
        )
        assert recorder.reloads == 1

    async def test_reload_failure_reported(self):
        recorder = Recorder(reload_error=StoreError("GET Cases failed", status=500))
        outcome = await recorder.reconciler().consume(feed(sse(text="Stage deleted")))

        assert outcome.state is StreamState.DONE
        assert not outcome.reloaded
        assert outcome.reload_error is not None
        assert "500" in outcome.reload_error
        assert recorder.selection_cleared == 0


class TestErrors:
    async def test_error_frames_collected(self, recorder):
        outcome = await recorder.reconciler().consume(
            feed(sse(text="Working"), sse(error="quota exceeded"), sse(done=True))
        )
        assert outcome.state is StreamState.DONE
        assert outcome.errors == ["quota exceeded"]
        assert recorder.errors == ["quota exceeded"]

    async def test_stream_error_propagates(self, recorder):
        reconciler = recorder.reconciler()
        with pytest.raises(StreamError):
            await reconciler.consume(feed(sse(text="a"), error=StreamError("reset")))
        assert reconciler.state is StreamState.ERRORED

    async def test_transport_error_wrapped(self, recorder):
        reconciler = recorder.reconciler()
        with pytest.raises(StreamError, match="connection lost"):
            await reconciler.consume(feed(error=ConnectionResetError("connection lost")))
        assert reconciler.state is StreamState.ERRORED

    async def test_no_reload_after_failure(self, recorder):
        with pytest.raises(StreamError):
            await recorder.reconciler().consume(
                feed(sse(text="Stage created"), error=StreamError("reset"))
            )
        assert recorder.reloads == 0


class TestLifecycle:
    async def test_cancel_stops_consumption(self, recorder):
        reconciler = recorder.reconciler()

        async def lines() -> AsyncIterator[str]:
            yield sse(text="Stage created. ")
            reconciler.cancel()
            yield sse(text="More")
            yield sse(text="Even more")

        outcome = await reconciler.consume(lines())

        assert outcome.state is StreamState.CANCELLED
        assert outcome.visible_text == "Stage created. More"
        assert recorder.reloads == 0

    async def test_awaiting_first_byte(self, recorder):
        reconciler = recorder.reconciler()
        states: list[StreamState] = []

        async def lines() -> AsyncIterator[str]:
            states.append(reconciler.state)
            yield sse(text="a")
            states.append(reconciler.state)

        await reconciler.consume(lines())
        assert states == [StreamState.AWAITING_FIRST_BYTE, StreamState.STREAMING]

    async def test_single_use(self, recorder):
        reconciler = recorder.reconciler()
        await reconciler.consume(feed())
        with pytest.raises(CaseBuilderError, match="already consumed"):
            await reconciler.consume(feed())

    def test_cancel_after_done_is_ignored(self, recorder):
        reconciler = recorder.reconciler()
        reconciler.state = StreamState.DONE
        reconciler.cancel()
        assert reconciler.state is StreamState.DONE
