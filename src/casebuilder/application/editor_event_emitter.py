"""Editor event emission service."""

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime

from casebuilder.domain.editor_event import EditorEvent, EditorEventType

logger = logging.getLogger(__name__)

EditorEventListener = Callable[[EditorEvent], None]


class EditorEventEmitter:
    """Emits editor events to subscribed listeners.

    Provides convenience methods for the events the editor raises, handling
    ID generation and timestamps. A failing listener is logged and does not
    stop delivery to the others.
    """

    def __init__(self, case_id: int) -> None:
        self._case_id = case_id
        self._listeners: list[EditorEventListener] = []

    def subscribe(self, listener: EditorEventListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: EditorEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Editor event listener failed for %s", event.event_type)

    def _now(self) -> str:
        return datetime.now(UTC).isoformat()

    def _event(
        self,
        event_type: EditorEventType,
        description: str = "",
        checkpoint_id: int | None = None,
    ) -> EditorEvent:
        return EditorEvent(
            event_id=str(uuid.uuid4()),
            event_type=event_type,
            case_id=self._case_id,
            description=description,
            checkpoint_id=checkpoint_id,
            created_at=self._now(),
        )

    def model_updated(self, description: str = "") -> None:
        """Emit MODEL_UPDATED after the in-memory model, fields or views changed."""
        self._emit(self._event(EditorEventType.MODEL_UPDATED, description))

    def checkpoint_added(self, checkpoint_id: int, description: str) -> None:
        self._emit(
            self._event(EditorEventType.CHECKPOINT_ADDED, description, checkpoint_id)
        )

    def checkpoint_restored(self, checkpoint_id: int, description: str) -> None:
        self._emit(
            self._event(EditorEventType.CHECKPOINT_RESTORED, description, checkpoint_id)
        )

    def workflow_reloaded(self) -> None:
        """Emit WORKFLOW_RELOADED after a full re-sync from the store."""
        self._emit(self._event(EditorEventType.WORKFLOW_RELOADED))
