"""Workflow mutation engine.

WorkflowEditor keeps the in-memory case (workflow tree, fields, views) in step
with the remote store. Every public mutation follows one template:

1. compute the next immutable snapshot with a pure domain function
2. record a checkpoint (structural and field-link mutations)
3. apply the snapshot to in-memory state
4. persist through the remote store, cascading dependent deletes best-effort
5. reconcile with the rows the server returns
6. emit MODEL_UPDATED

Mutations run one at a time through a MutationQueue. When the primary persist
call fails and ``rollback_on_failure`` is set, in-memory state and the
checkpoint ledger are put back to what they were before the mutation and the
StoreError propagates.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, TypeVar

from casebuilder.application.editor_event_emitter import EditorEventEmitter
from casebuilder.application.mutation_queue import MutationQueue
from casebuilder.domain import references, tree
from casebuilder.domain.exceptions import CaseBuilderError, NotFoundError, StoreError
from casebuilder.domain.identifiers import MonotonicIdGenerator, slugify_label
from casebuilder.domain.models import (
    CaseRecord,
    Checkpoint,
    Field,
    FieldReference,
    Process,
    Stage,
    Step,
    StepType,
    View,
    ViewLayout,
    ViewModel,
    WorkflowModel,
    resolve_options,
)
from casebuilder.domain.validation import model_from_case

if TYPE_CHECKING:
    from casebuilder.application.checkpoint_ledger import CheckpointLedger
    from casebuilder.domain.interfaces import RemoteStoreInterface

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_FIELD_DESCRIPTION = "Field description"

_UNSET: Any = object()


@dataclass
class EditorSelection:
    """Currently focused entities; cleared when a reload may have invalidated them."""

    active_stage: int | None = None
    active_process: int | None = None
    active_step: int | None = None
    selected_view: str | None = None

    def clear(self) -> None:
        self.active_stage = None
        self.active_process = None
        self.active_step = None
        self.selected_view = None


@dataclass(frozen=True)
class _EditorState:
    case: CaseRecord | None
    model: WorkflowModel | None
    fields: tuple[Field, ...]
    views: tuple[View, ...]
    checkpoints: tuple[Checkpoint, ...]


class WorkflowEditor:
    """In-memory editing session for one case."""

    def __init__(
        self,
        case_id: int,
        store: RemoteStoreInterface,
        ledger: CheckpointLedger,
        emitter: EditorEventEmitter | None = None,
        *,
        id_generator: Callable[[], int] | None = None,
        queue: MutationQueue | None = None,
        rollback_on_failure: bool = True,
    ) -> None:
        """Initialize the editor.

        Args:
            case_id: Case being edited.
            store: Remote persistence adapter.
            ledger: Checkpoint history for this case.
            emitter: Event emitter (a private one is created when omitted).
            id_generator: Source of stage/process/step ids.
            queue: Serializes mutations; share it with anything else that
                writes to the same case.
            rollback_on_failure: Restore pre-mutation state when the primary
                persist call fails.
        """
        self.case_id = case_id
        self._store = store
        self._ledger = ledger
        self._emitter = emitter or EditorEventEmitter(case_id)
        self._next_id = id_generator or MonotonicIdGenerator()
        self._queue = queue or MutationQueue()
        self._rollback_on_failure = rollback_on_failure

        self.case: CaseRecord | None = None
        self.model: WorkflowModel | None = None
        self.fields: tuple[Field, ...] = ()
        self.views: tuple[View, ...] = ()
        self.selection = EditorSelection()

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def ledger(self) -> CheckpointLedger:
        return self._ledger

    @property
    def events(self) -> EditorEventEmitter:
        return self._emitter

    @property
    def queue(self) -> MutationQueue:
        return self._queue

    @property
    def is_loaded(self) -> bool:
        return self.model is not None

    def _require_model(self) -> WorkflowModel:
        if self.model is None:
            raise CaseBuilderError(f"Case {self.case_id} is not loaded")
        return self.model

    def get_field(self, field_id: int) -> Field:
        for f in self.fields:
            if f.id == field_id:
                return f
        raise NotFoundError("Field", field_id)

    def get_view(self, view_id: int) -> View:
        for view in self.views:
            if view.id == view_id:
                return view
        raise NotFoundError("View", view_id)

    # =========================================================================
    # MUTATION PLUMBING
    # =========================================================================

    def _capture(self) -> _EditorState:
        return _EditorState(
            case=self.case,
            model=self.model,
            fields=self.fields,
            views=self.views,
            checkpoints=self._ledger.entries,
        )

    def _restore(
        self,
        state: _EditorState,
        *,
        fields: tuple[Field, ...] | None = None,
        views: tuple[View, ...] | None = None,
    ) -> None:
        """Put back the captured model and history; rows may come from a re-fetch."""
        self.case = state.case
        self.model = state.model
        self.fields = state.fields if fields is None else fields
        self.views = state.views if views is None else views
        self._ledger.revert(state.checkpoints)
        self._emitter.model_updated("rollback")

    async def _mutate(self, label: str, operation: Callable[[], Awaitable[T]]) -> T:
        async def guarded() -> T:
            before = self._capture()
            try:
                return await operation()
            except StoreError:
                if self._rollback_on_failure:
                    logger.warning("Rolling back '%s' after store failure", label)
                    # Rows deleted or rewritten before the failure stay changed remotely.
                    fields, views = await self._fetch_rows()
                    self._restore(before, fields=fields, views=views)
                raise

        return await self._queue.run(label, guarded)

    def _checkpoint(self, description: str, model: WorkflowModel) -> Checkpoint:
        checkpoint = self._ledger.add(description, model)
        self._emitter.checkpoint_added(checkpoint.id, description)
        return checkpoint

    async def _persist_model(self, model: WorkflowModel) -> None:
        """Write the model into the case row and adopt the server's copy of the row."""
        case = self.case
        name = case.name if case is not None else model.name
        description = case.description if case is not None else model.description
        payload = model.to_dict()
        stored = await self._store.put_case(self.case_id, name, description, payload)
        self.case = stored or CaseRecord(
            id=self.case_id, name=name, description=description, model=payload
        )

    async def _delete_views(self, view_ids: Iterable[int]) -> None:
        """Delete views concurrently; individual failures are logged, never raised."""
        ids = tuple(view_ids)
        if not ids:
            return
        results = await asyncio.gather(
            *(self._store.delete_view(view_id) for view_id in ids),
            return_exceptions=True,
        )
        for view_id, result in zip(ids, results, strict=True):
            if isinstance(result, Exception):
                logger.warning("Failed to delete linked view %s: %s", view_id, result)
        self.views = tuple(v for v in self.views if v.id not in ids)

    async def _refresh_views(self) -> None:
        try:
            self.views = tuple(await self._store.list_views(self.case_id))
        except StoreError as err:
            logger.warning("Could not refresh views for case %s: %s", self.case_id, err)

    async def _fetch_rows(self) -> tuple[tuple[Field, ...] | None, tuple[View, ...] | None]:
        """Current field and view rows; None for whichever fetch failed."""
        fields: tuple[Field, ...] | None = None
        views: tuple[View, ...] | None = None
        try:
            fields = tuple(await self._store.list_fields(self.case_id))
        except StoreError as err:
            logger.warning("Could not re-fetch fields after rollback: %s", err)
        try:
            views = tuple(await self._store.list_views(self.case_id))
        except StoreError as err:
            logger.warning("Could not re-fetch views after rollback: %s", err)
        return fields, views

    async def _refresh_fields(self) -> None:
        try:
            self.fields = tuple(await self._store.list_fields(self.case_id))
        except StoreError as err:
            logger.warning("Could not refresh fields for case %s: %s", self.case_id, err)

    async def _create_step_view(self, name: str) -> View:
        view = await self._store.create_view(
            {"name": name, "caseid": self.case_id, "model": ViewModel().to_dict()}
        )
        self.views = (*self.views, view)
        return view

    def _forget_selection(self, *ids: int) -> None:
        sel = self.selection
        if sel.active_stage in ids:
            sel.active_stage = None
        if sel.active_process in ids:
            sel.active_process = None
        if sel.active_step in ids:
            sel.active_step = None

    # =========================================================================
    # LOAD / REFRESH
    # =========================================================================

    async def _reload(self) -> WorkflowModel:
        case = await self._store.get_case(self.case_id)
        model = model_from_case(case)
        fields = await self._store.list_fields(self.case_id)
        views = await self._store.list_views(self.case_id)
        self.case = case
        self.model = model
        self.fields = tuple(fields)
        self.views = tuple(views)
        logger.info(
            "Loaded case %s: %d stage(s), %d field(s), %d view(s)",
            self.case_id,
            len(model.stages),
            len(self.fields),
            len(self.views),
        )
        self._emitter.workflow_reloaded()
        self._emitter.model_updated("reload")
        return model

    async def load(self) -> WorkflowModel:
        """Fetch case, fields and views and validate the workflow's identifiers.

        Raises:
            MissingIdentifierError: A stage, process or step has no id.
            StoreError: Any fetch failed.
        """
        return await self._queue.run("load", self._reload)

    async def refresh(self) -> WorkflowModel:
        """Re-sync everything from the store; same path as ``load``."""
        return await self._queue.run("refresh", self._reload)

    # =========================================================================
    # STAGES / PROCESSES / STEPS
    # =========================================================================

    async def add_stage(self, name: str) -> Stage:
        async def operation() -> Stage:
            stage = Stage(id=self._next_id(), name=name)
            updated = tree.add_stage(self._require_model(), stage)
            self._checkpoint(f"Added stage: {name}", updated)
            self.model = updated
            await self._persist_model(updated)
            self._emitter.model_updated(f"Added stage: {name}")
            return stage

        return await self._mutate("add_stage", operation)

    async def add_process(self, stage_id: int, name: str) -> Process:
        async def operation() -> Process:
            process = Process(id=self._next_id(), name=name)
            updated = tree.add_process(self._require_model(), stage_id, process)
            self._checkpoint(f"Added process: {name}", updated)
            self.model = updated
            await self._persist_model(updated)
            self._emitter.model_updated(f"Added process: {name}")
            return process

        return await self._mutate("add_process", operation)

    async def add_step(
        self,
        stage_id: int,
        process_id: int,
        name: str,
        step_type: StepType | str = StepType.COLLECT_INFORMATION,
    ) -> Step:
        """Append a step; a "Collect information" step gets its own view first."""

        async def operation() -> Step:
            model = self._require_model()
            kind = StepType.parse(step_type)
            tree.find_process(model, stage_id, process_id)

            view = await self._create_step_view(name) if kind is StepType.COLLECT_INFORMATION else None
            step = Step(
                id=self._next_id(),
                name=name,
                type=kind,
                view_id=view.id if view is not None else None,
            )
            updated = tree.add_step(model, stage_id, process_id, step)
            self._checkpoint(f"Added step: {name}", updated)
            self.model = updated
            try:
                await self._persist_model(updated)
            except StoreError:
                if view is not None and self._rollback_on_failure:
                    await self._delete_views((view.id,))
                raise
            await self._refresh_views()
            self._emitter.model_updated(f"Added step: {name}")
            return step

        return await self._mutate("add_step", operation)

    async def rename_stage(self, stage_id: int, name: str) -> None:
        async def operation() -> None:
            updated = tree.rename_stage(self._require_model(), stage_id, name)
            self._checkpoint(f"Renamed stage: {name}", updated)
            self.model = updated
            await self._persist_model(updated)
            self._emitter.model_updated(f"Renamed stage: {name}")

        await self._mutate("rename_stage", operation)

    async def rename_process(self, stage_id: int, process_id: int, name: str) -> None:
        async def operation() -> None:
            updated = tree.rename_process(self._require_model(), stage_id, process_id, name)
            self._checkpoint(f"Renamed process: {name}", updated)
            self.model = updated
            await self._persist_model(updated)
            self._emitter.model_updated(f"Renamed process: {name}")

        await self._mutate("rename_process", operation)

    async def update_step(
        self,
        stage_id: int,
        process_id: int,
        step_id: int,
        *,
        name: str | None = None,
        step_type: StepType | str | None = None,
    ) -> Step:
        """Rename a step and/or change its type.

        Leaving "Collect information" drops the step's field references and
        deletes its view (best-effort). Becoming "Collect information" creates
        the step's view.
        """

        async def operation() -> Step:
            model = self._require_model()
            current = tree.find_step(model, stage_id, process_id, step_id)
            new_name = name if name is not None else current.name
            new_type = StepType.parse(step_type) if step_type is not None else current.type

            created: View | None = None
            released: int | None = None
            step = replace(current, name=new_name, type=new_type)
            if current.collects_information and not step.collects_information:
                released = current.view_id
                step = replace(step, fields=(), view_id=None)
            elif step.collects_information and not current.collects_information:
                created = await self._create_step_view(new_name)
                step = replace(step, fields=(), view_id=created.id)

            updated = tree.replace_step(model, stage_id, process_id, step)
            self._checkpoint(f"Updated step: {new_name}", updated)
            self.model = updated
            try:
                await self._persist_model(updated)
            except StoreError:
                if created is not None and self._rollback_on_failure:
                    await self._delete_views((created.id,))
                raise
            if released is not None:
                await self._delete_views((released,))
            if created is not None or released is not None:
                await self._refresh_views()
            self._emitter.model_updated(f"Updated step: {new_name}")
            return step

        return await self._mutate("update_step", operation)

    async def update_workflow(self, name: str, description: str) -> None:
        """Change the case's name and description, keeping its model."""

        async def operation() -> None:
            model = self._require_model()
            updated = replace(model, name=name, description=description)
            self.model = updated
            stored = await self._store.put_case(self.case_id, name, description, updated.to_dict())
            self.case = stored or CaseRecord(
                id=self.case_id, name=name, description=description, model=updated.to_dict()
            )
            self._emitter.model_updated("Updated workflow")

        await self._mutate("update_workflow", operation)

    async def _delete(
        self,
        description: str,
        pruned: WorkflowModel,
        view_ids: tuple[int, ...],
    ) -> None:
        self._checkpoint(description, pruned)
        self.model = pruned
        await self._delete_views(view_ids)
        await self._persist_model(pruned)
        await self._refresh_views()
        self._emitter.model_updated(description)

    async def delete_stage(self, stage_id: int) -> tuple[int, ...]:
        """Delete a stage and every view owned by its steps.

        Returns:
            Ids of the views the cascade attempted to delete.
        """

        async def operation() -> tuple[int, ...]:
            stage = tree.find_stage(self._require_model(), stage_id)
            pruned, view_ids = tree.delete_stage(self._require_model(), stage_id)
            await self._delete("Deleted stage", pruned, view_ids)
            self._forget_selection(
                stage.id,
                *(p.id for p in stage.processes),
                *(s.id for p in stage.processes for s in p.steps),
            )
            return view_ids

        return await self._mutate("delete_stage", operation)

    async def delete_process(self, stage_id: int, process_id: int) -> tuple[int, ...]:
        async def operation() -> tuple[int, ...]:
            process = tree.find_process(self._require_model(), stage_id, process_id)
            pruned, view_ids = tree.delete_process(self._require_model(), stage_id, process_id)
            await self._delete("Deleted process", pruned, view_ids)
            self._forget_selection(process.id, *(s.id for s in process.steps))
            return view_ids

        return await self._mutate("delete_process", operation)

    async def delete_step(self, stage_id: int, process_id: int, step_id: int) -> tuple[int, ...]:
        async def operation() -> tuple[int, ...]:
            pruned, view_ids = tree.delete_step(
                self._require_model(), stage_id, process_id, step_id
            )
            await self._delete("Deleted step", pruned, view_ids)
            self._forget_selection(step_id)
            return view_ids

        return await self._mutate("delete_step", operation)

    async def _reorder(self, description: str, updated: WorkflowModel) -> None:
        self._checkpoint(description, updated)
        self.model = updated
        await self._persist_model(updated)
        self._emitter.model_updated(description)

    async def reorder_stages(self, start: int, end: int) -> None:
        async def operation() -> None:
            updated = tree.reorder_stages(self._require_model(), start, end)
            await self._reorder("Reordered stages", updated)

        await self._mutate("reorder_stages", operation)

    async def reorder_processes(self, stage_id: int, start: int, end: int) -> None:
        async def operation() -> None:
            updated = tree.reorder_processes(self._require_model(), stage_id, start, end)
            await self._reorder("Reordered processes", updated)

        await self._mutate("reorder_processes", operation)

    async def reorder_steps(self, stage_id: int, process_id: int, start: int, end: int) -> None:
        async def operation() -> None:
            updated = tree.reorder_steps(
                self._require_model(), stage_id, process_id, start, end
            )
            await self._reorder("Reordered steps", updated)

        await self._mutate("reorder_steps", operation)

    # =========================================================================
    # FIELDS
    # =========================================================================

    async def add_field(
        self,
        label: str,
        field_type: str = "Text",
        *,
        options: Sequence[str] | None = None,
        required: bool = False,
        primary: bool = False,
        sample_value: Any = None,
    ) -> str:
        """Create a field named after its label.

        Returns:
            The derived technical name ("Customer Name" -> "customer_name").

        Raises:
            StoreError: The store rejected the field (409 for a duplicate name).
        """

        async def operation() -> str:
            name = slugify_label(label)
            created = await self._store.create_field(
                {
                    "name": name,
                    "type": field_type,
                    "primary": primary,
                    "caseid": self.case_id,
                    "label": label,
                    "description": label,
                    "order": 0,
                    "options": list(options or ()),
                    "required": required,
                    "sampleValue": sample_value,
                }
            )
            self.fields = (*self.fields, created)
            await self._refresh_fields()
            self._emitter.model_updated(f"Added field: {name}")
            return name

        return await self._mutate("add_field", operation)

    async def update_field(
        self,
        field_id: int,
        *,
        label: str | None = None,
        field_type: str | None = None,
        primary: bool | None = None,
        options: Sequence[str] | None = None,
        required: bool | None = None,
        order: int | None = None,
        description: str | None = None,
        sample_value: Any = _UNSET,
    ) -> Field:
        """Merge updates over the known field and write it back.

        Options resolve as: explicit ``options``, else the field's existing
        options (parsing a serialized array), else empty.
        """

        async def operation() -> Field:
            target = self.get_field(field_id)
            data = {
                "id": target.id,
                "name": target.name,
                "label": label or target.label,
                "type": field_type or target.type,
                "primary": primary if primary is not None else target.primary,
                "caseid": self.case_id,
                "options": list(resolve_options(options, list(target.options))),
                "required": required if required is not None else target.required,
                "order": order if order is not None else target.order,
                "description": description or target.description or DEFAULT_FIELD_DESCRIPTION,
                "sampleValue": target.sample_value if sample_value is _UNSET else sample_value,
            }
            merged = Field.from_row(data)
            self.fields = tuple(merged if f.id == field_id else f for f in self.fields)
            stored = await self._store.update_field(field_id, data)
            if stored is not None:
                merged = stored
                self.fields = tuple(stored if f.id == field_id else f for f in self.fields)
            await self._refresh_fields()
            self._emitter.model_updated(f"Updated field: {target.name}")
            return merged

        return await self._mutate("update_field", operation)

    async def delete_field(self, field_id: int) -> None:
        """Delete a field and every reference to it.

        Step references are swept from the model and persisted. Views are
        cleaned by the store; any view still referencing the field after the
        re-fetch is repaired best-effort.
        """

        async def operation() -> None:
            target = self.get_field(field_id)
            pruned = tree.sweep_field_references(self._require_model(), field_id)
            self._checkpoint(f"Deleted field: {target.name}", pruned)
            self.fields = tuple(f for f in self.fields if f.id != field_id)
            self.model = pruned

            await self._store.delete_field(field_id)
            await self._persist_model(pruned)
            await self._refresh_fields()
            await self._refresh_views()
            await self._repair_views(field_id)
            self._emitter.model_updated(f"Deleted field: {target.name}")

        await self._mutate("delete_field", operation)

    async def _repair_views(self, field_id: int) -> None:
        for view in self.views:
            if field_id not in view.field_ids():
                continue
            model = replace(
                view.model, fields=references.remove_reference(view.model.fields, field_id)
            )
            try:
                stored = await self._store.update_view(view.id, self._view_payload(view, model))
            except StoreError as err:
                logger.warning("Failed to remove field %s from view %s: %s", field_id, view.id, err)
                continue
            self._replace_view(stored or replace(view, model=model))

    async def reorder_fields_list(self, start: int, end: int) -> None:
        """Move a field within the case's field list and persist changed orders.

        Only fields inside the moved range whose 1-based position changed are
        written.
        """

        async def operation() -> None:
            previous = {f.id: index + 1 for index, f in enumerate(self.fields)}
            moved = list(tree.move_item(self.fields, start, end))
            low, high = min(start, end), max(start, end)
            for index in range(low, high + 1):
                moved[index] = replace(moved[index], order=index + 1)
            self.fields = tuple(moved)

            changed = [
                moved[index]
                for index in range(low, high + 1)
                if previous.get(moved[index].id) != index + 1
            ]
            results = await asyncio.gather(
                *(
                    self._store.update_field(f.id, {**f.to_row(), "caseid": self.case_id})
                    for f in changed
                ),
                return_exceptions=True,
            )
            errors = [r for r in results if isinstance(r, Exception)]
            for f, result in zip(changed, results, strict=True):
                if isinstance(result, Exception):
                    logger.warning("Failed to write order for field %s: %s", f.name, result)
            if errors:
                raise errors[0]
            self._emitter.model_updated("Reordered fields")

        await self._mutate("reorder_fields_list", operation)

    async def _resolve_field_ids(self, field_names: Iterable[str]) -> list[int]:
        """Map technical names to ids: local cache first, then a store lookup."""
        resolved: list[int] = []
        unresolved: list[str] = []
        for field_name in field_names:
            local = next((f for f in self.fields if f.name == field_name), None)
            if local is not None:
                resolved.append(local.id)
            else:
                unresolved.append(field_name)

        if unresolved:
            lookups = await asyncio.gather(
                *(self._store.list_fields(self.case_id, name=n) for n in unresolved),
                return_exceptions=True,
            )
            for field_name, result in zip(unresolved, lookups, strict=True):
                if isinstance(result, Exception):
                    logger.warning("Field lookup for '%s' failed: %s", field_name, result)
                    continue
                match = next((f for f in result if f.name == field_name), None)
                if match is None:
                    logger.warning("Unknown field '%s' in case %s", field_name, self.case_id)
                    continue
                resolved.append(match.id)
        return resolved

    # =========================================================================
    # FIELD <-> VIEW LINKS
    # =========================================================================

    def _view_payload(self, view: View, model: ViewModel) -> dict[str, Any]:
        return {"name": view.name, "caseid": self.case_id, "model": model.to_dict()}

    def _replace_view(self, view: View) -> None:
        self.views = tuple(view if v.id == view.id else v for v in self.views)

    async def _write_view(self, view: View, model: ViewModel) -> View:
        """Persist a view's field layout.

        The checkpoint recorded here marks the edit in history but snapshots
        only the workflow model; restoring it leaves view rows untouched.
        """
        self._checkpoint(f"Updated database view: {view.name}", self._require_model())
        optimistic = replace(view, model=model)
        self._replace_view(optimistic)
        stored = await self._store.update_view(view.id, self._view_payload(view, model))
        result = stored or optimistic
        self._replace_view(result)
        self._emitter.model_updated(f"Updated database view: {view.name}")
        return result

    async def add_fields_to_view(self, view_id: int, field_names: Sequence[str]) -> View:
        async def operation() -> View:
            view = self.get_view(view_id)
            field_ids = await self._resolve_field_ids(field_names)
            model = ViewModel(
                fields=references.add_references(view.model.fields, field_ids),
                layout=ViewLayout(),
            )
            return await self._write_view(view, model)

        return await self._mutate("add_fields_to_view", operation)

    async def remove_field_from_view(self, view_id: int, field_id: int) -> View:
        """Unlink a field from a view; a no-op when the view does not reference it."""

        async def operation() -> View:
            view = self.get_view(view_id)
            if field_id not in view.field_ids():
                return view
            model = ViewModel(
                fields=references.remove_reference(view.model.fields, field_id),
                layout=ViewLayout(),
            )
            return await self._write_view(view, model)

        return await self._mutate("remove_field_from_view", operation)

    async def reorder_view_fields(self, view_id: int, field_ids: Sequence[int]) -> View:
        async def operation() -> View:
            view = self.get_view(view_id)
            for field_id in field_ids:
                self.get_field(field_id)
            model = replace(
                view.model,
                fields=references.reorder_references(view.model.fields, field_ids),
            )
            return await self._write_view(view, model)

        return await self._mutate("reorder_view_fields", operation)

    # =========================================================================
    # FIELD <-> STEP LINKS
    # =========================================================================

    def _collecting_step(self, step_id: int) -> Step:
        _, _, step = tree.locate_step(self._require_model(), step_id)
        if not step.collects_information:
            raise ValueError(
                f"Step {step_id} is a '{step.type.value}' step; only "
                f"'{StepType.COLLECT_INFORMATION.value}' steps carry fields"
            )
        return step

    async def _write_step_fields(self, step_id: int, refs: tuple[FieldReference, ...]) -> Step:
        updated = tree.set_step_fields(self._require_model(), step_id, refs)
        self._checkpoint(f"Updated step fields: {step_id}", updated)
        self.model = updated
        await self._persist_model(updated)
        self._emitter.model_updated(f"Updated step fields: {step_id}")
        return tree.locate_step(updated, step_id)[2]

    async def add_fields_to_step(self, step_id: int, field_names: Sequence[str]) -> Step:
        async def operation() -> Step:
            step = self._collecting_step(step_id)
            field_ids = await self._resolve_field_ids(field_names)
            refs = references.add_references(step.fields, field_ids)
            return await self._write_step_fields(step_id, refs)

        return await self._mutate("add_fields_to_step", operation)

    async def remove_field_from_step(self, step_id: int, field_id: int) -> Step:
        async def operation() -> Step:
            step = self._collecting_step(step_id)
            refs = references.remove_reference(step.fields, field_id)
            return await self._write_step_fields(step_id, refs)

        return await self._mutate("remove_field_from_step", operation)

    async def reorder_step_fields(self, step_id: int, field_ids: Sequence[int]) -> Step:
        async def operation() -> Step:
            step = self._collecting_step(step_id)
            for field_id in field_ids:
                self.get_field(field_id)
            refs = references.reorder_references(step.fields, field_ids)
            return await self._write_step_fields(step_id, refs)

        return await self._mutate("reorder_step_fields", operation)

    # =========================================================================
    # HISTORY
    # =========================================================================

    async def restore_checkpoint(self, checkpoint_id: int, confirmed: bool = False) -> WorkflowModel:
        """Replace the model with a checkpoint's snapshot and persist it.

        Raises:
            ConfirmationRequired: If ``confirmed`` is False.
            NotFoundError: If the checkpoint is unknown.
        """

        async def operation() -> WorkflowModel:
            checkpoint = self._ledger.get(checkpoint_id)
            model = self._ledger.restore(checkpoint_id, confirmed)
            self.model = model
            await self._persist_model(model)
            self._emitter.checkpoint_restored(checkpoint.id, checkpoint.description)
            self._emitter.model_updated(f"Restored: {checkpoint.description}")
            return model

        return await self._mutate("restore_checkpoint", operation)

    def clear_history(self, confirmed: bool = False) -> None:
        """
        Raises:
            ConfirmationRequired: If ``confirmed`` is False.
        """
        self._ledger.clear(confirmed)
