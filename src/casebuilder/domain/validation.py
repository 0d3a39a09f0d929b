"""
Load-time validation of persisted workflow models.

A persisted case carries its workflow as a raw mapping. Before the editor
touches it, every stage, process and step must have an identifier; a missing
one is structural corruption and aborts the load.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from casebuilder.domain.exceptions import InvalidModelError, MissingIdentifierError
from casebuilder.domain.models import CaseRecord, Process, Stage, Step, WorkflowModel


def _children(node: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    value = node.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise InvalidModelError(f"Expected a list under '{key}', got {type(value).__name__}")
    return value


def validate_model_ids(stages: Sequence[Mapping[str, Any]]) -> tuple[Stage, ...]:
    """
    Validate identifiers and build the typed stage tree.

    Walks stages in order, then each stage's processes, then each process's
    steps. The first node without an id (missing, null, zero or empty) raises.

    Args:
        stages: Raw stage mappings as stored in the case model

    Returns:
        Typed, immutable stages

    Raises:
        MissingIdentifierError: A stage, process or step has no id
        InvalidModelError: A node has the wrong shape or an unknown step type
    """
    result: list[Stage] = []
    for stage_index, raw_stage in enumerate(stages):
        if not isinstance(raw_stage, Mapping):
            raise InvalidModelError(f"Stage at index {stage_index} is not an object")
        if not raw_stage.get("id"):
            raise MissingIdentifierError("Stage", stage_index)
        stage_name = str(raw_stage.get("name", ""))

        processes: list[Process] = []
        for process_index, raw_process in enumerate(_children(raw_stage, "processes")):
            if not raw_process.get("id"):
                raise MissingIdentifierError("Process", process_index, (stage_name,))
            process_name = str(raw_process.get("name", ""))

            steps: list[Step] = []
            for step_index, raw_step in enumerate(_children(raw_process, "steps")):
                if not raw_step.get("id"):
                    raise MissingIdentifierError(
                        "Step", step_index, (stage_name, process_name)
                    )
                steps.append(Step.from_dict(raw_step))

            processes.append(
                Process(id=int(raw_process["id"]), name=process_name, steps=tuple(steps))
            )

        result.append(
            Stage(id=int(raw_stage["id"]), name=stage_name, processes=tuple(processes))
        )
    return tuple(result)


def model_from_dict(data: Mapping[str, Any], default_name: str = "") -> WorkflowModel:
    """Build a validated WorkflowModel from its wire mapping."""
    return WorkflowModel(
        name=str(data.get("name") or default_name),
        description=str(data.get("description") or ""),
        stages=validate_model_ids(_children(data, "stages")),
    )


def model_from_case(case: CaseRecord) -> WorkflowModel:
    """
    Build the editor's model from a case row.

    The case's own name and description take precedence over any copy kept
    inside the embedded model.
    """
    return WorkflowModel(
        name=case.name or str(case.model.get("name") or ""),
        description=case.description or str(case.model.get("description") or ""),
        stages=validate_model_ids(_children(case.model, "stages")),
    )
