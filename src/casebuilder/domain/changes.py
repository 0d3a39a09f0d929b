"""
Structured change proposals returned by the assistant's non-streaming path.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ChangeType(str, Enum):
    ADD = "add"
    DELETE = "delete"
    MOVE = "move"
    UPDATE = "update"
    RENAME = "rename"


@dataclass(frozen=True)
class Change:
    """
    One delta in a proposal.

    ``details`` holds the remaining target keys (sourceStageId, targetStageId,
    sourceIndex, targetIndex, newName, ...).
    """

    type: ChangeType
    target_type: str
    target_name: str = ""
    details: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Change:
        target = dict(data.get("target") or {})
        target_type = str(target.pop("type", "step"))
        target_name = str(target.pop("name", "") or "")
        for key in ("value", "oldValue", "path"):
            if key in data:
                target[key] = data[key]
        return cls(
            type=ChangeType(data["type"]),
            target_type=target_type,
            target_name=target_name,
            details=target,
        )


@dataclass(frozen=True)
class StageSummary:
    name: str
    step_count: int
    steps: tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidatedResponse:
    """Assistant reply after schema validation."""

    message: str
    stages: tuple[Mapping[str, Any], ...] = ()
    fields: tuple[Mapping[str, Any], ...] = ()
    changes: tuple[Change, ...] = ()
    visualization: tuple[StageSummary, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ValidatedResponse:
        """Build from a document that already passed schema validation."""
        model = data.get("model") or {}
        action = data.get("action") or {}
        visualization = data.get("visualization") or {}
        return cls(
            message=str(data.get("message", "")),
            stages=tuple(model.get("stages") or ()),
            fields=tuple(model.get("fields") or ()),
            changes=tuple(Change.from_dict(c) for c in action.get("changes") or ()),
            visualization=tuple(
                StageSummary(
                    name=str(entry.get("name", "")),
                    step_count=int(entry.get("stepCount", 0)),
                    steps=tuple(str(s.get("name", "")) for s in entry.get("steps") or ()),
                )
                for entry in visualization.get("stageBreakdown") or ()
            ),
        )


def _label(change: Change) -> str:
    return f'{change.target_type} "{change.target_name}"'


def describe_change(change: Change) -> str:
    """
    Render a change as one sentence.

    Examples:
        Added stage "Review"
        Moved step "Verify" from stage Intake to stage Review
        Renamed stage "Intake" to "Triage"
    """
    details = change.details
    if change.type is ChangeType.ADD:
        return f"Added {_label(change)}"
    if change.type is ChangeType.DELETE:
        return f"Deleted {_label(change)}"
    if change.type is ChangeType.MOVE:
        source = details.get("sourceStage") or details.get("sourceStageId")
        target = details.get("targetStage") or details.get("targetStageId")
        if source and target and source != target:
            return f"Moved {_label(change)} from stage {source} to stage {target}"
        source_index = details.get("sourceIndex")
        target_index = details.get("targetIndex")
        if isinstance(source_index, int) and isinstance(target_index, int):
            return (
                f"Moved {_label(change)} from position {source_index + 1} "
                f"to position {target_index + 1}"
            )
        return f"Moved {_label(change)}"
    new_name = details.get("newName")
    if new_name and new_name != change.target_name:
        return f'Renamed {change.target_type} "{change.target_name}" to "{new_name}"'
    if change.type is ChangeType.RENAME:
        return f"Renamed {_label(change)}"
    return f"Updated {_label(change)}"
