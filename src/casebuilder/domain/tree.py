"""
Pure operations on the workflow tree.

Every function takes a WorkflowModel and returns a new one; nothing here
performs I/O. Delete operations also return the ids of the views owned by the
removed steps so the caller can cascade them to the store.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import TypeVar

from casebuilder.domain.exceptions import NotFoundError
from casebuilder.domain.models import FieldReference, Process, Stage, Step, WorkflowModel

T = TypeVar("T")


# =============================================================================
# LOOKUP
# =============================================================================


def find_stage(model: WorkflowModel, stage_id: int) -> Stage:
    for stage in model.stages:
        if stage.id == stage_id:
            return stage
    raise NotFoundError("Stage", stage_id)


def find_process(model: WorkflowModel, stage_id: int, process_id: int) -> Process:
    for process in find_stage(model, stage_id).processes:
        if process.id == process_id:
            return process
    raise NotFoundError("Process", process_id)


def find_step(
    model: WorkflowModel, stage_id: int, process_id: int, step_id: int
) -> Step:
    for step in find_process(model, stage_id, process_id).steps:
        if step.id == step_id:
            return step
    raise NotFoundError("Step", step_id)


def locate_step(model: WorkflowModel, step_id: int) -> tuple[Stage, Process, Step]:
    """Find a step anywhere in the tree, with its stage and process."""
    for stage, process, step in model.iter_steps():
        if step.id == step_id:
            return stage, process, step
    raise NotFoundError("Step", step_id)


def owned_view_ids(steps: Iterable[Step]) -> tuple[int, ...]:
    return tuple(step.view_id for step in steps if step.view_id is not None)


def _steps_of_stage(stage: Stage) -> Iterable[Step]:
    for process in stage.processes:
        yield from process.steps


# =============================================================================
# INTERNAL REWRITERS
# =============================================================================


def _map_stage(
    model: WorkflowModel, stage_id: int, fn: Callable[[Stage], Stage]
) -> WorkflowModel:
    find_stage(model, stage_id)
    return replace(
        model,
        stages=tuple(fn(s) if s.id == stage_id else s for s in model.stages),
    )


def _map_process(
    model: WorkflowModel,
    stage_id: int,
    process_id: int,
    fn: Callable[[Process], Process],
) -> WorkflowModel:
    find_process(model, stage_id, process_id)
    return _map_stage(
        model,
        stage_id,
        lambda stage: replace(
            stage,
            processes=tuple(
                fn(p) if p.id == process_id else p for p in stage.processes
            ),
        ),
    )


def _map_steps(model: WorkflowModel, fn: Callable[[Step], Step]) -> WorkflowModel:
    return replace(
        model,
        stages=tuple(
            replace(
                stage,
                processes=tuple(
                    replace(process, steps=tuple(fn(step) for step in process.steps))
                    for process in stage.processes
                ),
            )
            for stage in model.stages
        ),
    )


# =============================================================================
# ADD / RENAME / UPDATE
# =============================================================================


def add_stage(model: WorkflowModel, stage: Stage) -> WorkflowModel:
    return replace(model, stages=(*model.stages, stage))


def add_process(model: WorkflowModel, stage_id: int, process: Process) -> WorkflowModel:
    return _map_stage(
        model, stage_id, lambda s: replace(s, processes=(*s.processes, process))
    )


def add_step(
    model: WorkflowModel, stage_id: int, process_id: int, step: Step
) -> WorkflowModel:
    return _map_process(
        model, stage_id, process_id, lambda p: replace(p, steps=(*p.steps, step))
    )


def rename_stage(model: WorkflowModel, stage_id: int, name: str) -> WorkflowModel:
    return _map_stage(model, stage_id, lambda s: replace(s, name=name))


def rename_process(
    model: WorkflowModel, stage_id: int, process_id: int, name: str
) -> WorkflowModel:
    return _map_process(model, stage_id, process_id, lambda p: replace(p, name=name))


def replace_step(
    model: WorkflowModel, stage_id: int, process_id: int, step: Step
) -> WorkflowModel:
    """Swap in a new version of the step with the same id."""
    find_step(model, stage_id, process_id, step.id)
    return _map_process(
        model,
        stage_id,
        process_id,
        lambda p: replace(
            p, steps=tuple(step if s.id == step.id else s for s in p.steps)
        ),
    )


def set_step_fields(
    model: WorkflowModel, step_id: int, fields: tuple[FieldReference, ...]
) -> WorkflowModel:
    locate_step(model, step_id)
    return _map_steps(
        model, lambda s: replace(s, fields=fields) if s.id == step_id else s
    )


def sweep_field_references(model: WorkflowModel, field_id: int) -> WorkflowModel:
    """Remove every step reference to the field."""
    return _map_steps(
        model,
        lambda s: replace(
            s, fields=tuple(ref for ref in s.fields if ref.field_id != field_id)
        ),
    )


# =============================================================================
# DELETE (returns the view ids owned by removed steps)
# =============================================================================


def delete_stage(
    model: WorkflowModel, stage_id: int
) -> tuple[WorkflowModel, tuple[int, ...]]:
    stage = find_stage(model, stage_id)
    views = owned_view_ids(_steps_of_stage(stage))
    pruned = replace(model, stages=tuple(s for s in model.stages if s.id != stage_id))
    return pruned, views


def delete_process(
    model: WorkflowModel, stage_id: int, process_id: int
) -> tuple[WorkflowModel, tuple[int, ...]]:
    process = find_process(model, stage_id, process_id)
    views = owned_view_ids(process.steps)
    pruned = _map_stage(
        model,
        stage_id,
        lambda s: replace(
            s, processes=tuple(p for p in s.processes if p.id != process_id)
        ),
    )
    return pruned, views


def delete_step(
    model: WorkflowModel, stage_id: int, process_id: int, step_id: int
) -> tuple[WorkflowModel, tuple[int, ...]]:
    step = find_step(model, stage_id, process_id, step_id)
    views = owned_view_ids((step,))
    pruned = _map_process(
        model,
        stage_id,
        process_id,
        lambda p: replace(p, steps=tuple(s for s in p.steps if s.id != step_id)),
    )
    return pruned, views


# =============================================================================
# REORDER
# =============================================================================


def move_item(items: tuple[T, ...], start: int, end: int) -> tuple[T, ...]:
    """
    Remove the element at ``start`` and reinsert it at ``end``.

    Raises:
        IndexError: Either index is outside ``[0, len(items))``
    """
    size = len(items)
    if not 0 <= start < size or not 0 <= end < size:
        raise IndexError(f"Reorder indices ({start}, {end}) out of range for {size} items")
    moved = list(items)
    item = moved.pop(start)
    moved.insert(end, item)
    return tuple(moved)


def reorder_stages(model: WorkflowModel, start: int, end: int) -> WorkflowModel:
    return replace(model, stages=move_item(model.stages, start, end))


def reorder_processes(
    model: WorkflowModel, stage_id: int, start: int, end: int
) -> WorkflowModel:
    return _map_stage(
        model,
        stage_id,
        lambda s: replace(s, processes=move_item(s.processes, start, end)),
    )


def reorder_steps(
    model: WorkflowModel, stage_id: int, process_id: int, start: int, end: int
) -> WorkflowModel:
    return _map_process(
        model,
        stage_id,
        process_id,
        lambda p: replace(p, steps=move_item(p.steps, start, end)),
    )
