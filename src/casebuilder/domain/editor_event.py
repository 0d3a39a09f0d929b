"""Editor notification models."""

from dataclasses import dataclass
from enum import Enum


class EditorEventType(str, Enum):
    """Types of editor state changes observers can react to."""

    MODEL_UPDATED = "MODEL_UPDATED"
    CHECKPOINT_ADDED = "CHECKPOINT_ADDED"
    CHECKPOINT_RESTORED = "CHECKPOINT_RESTORED"
    WORKFLOW_RELOADED = "WORKFLOW_RELOADED"


@dataclass(frozen=True)
class EditorEvent:
    """Single observable change of editor state."""

    event_id: str
    event_type: EditorEventType
    case_id: int
    description: str = ""
    checkpoint_id: int | None = None
    created_at: str = ""  # ISO 8601
