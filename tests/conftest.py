"""Shared pytest fixtures for casebuilder tests."""

import itertools
from collections.abc import Callable
from typing import Any

import pytest

from casebuilder.application.checkpoint_ledger import CheckpointLedger
from casebuilder.application.editor import WorkflowEditor
from casebuilder.application.editor_event_emitter import EditorEventEmitter
from casebuilder.domain.editor_event import EditorEvent
from casebuilder.domain.models import (
    FieldReference,
    Process,
    Stage,
    Step,
    StepType,
    WorkflowModel,
)
from casebuilder.infrastructure.session.memory import InMemorySessionStore
from casebuilder.infrastructure.store.memory import InMemoryRemoteStore

CASE_ID = 1


@pytest.fixture
def sample_model() -> WorkflowModel:
    """Two stages; the first has a collecting step with a view and field refs."""
    return WorkflowModel(
        name="Claims",
        description="Insurance claims",
        stages=(
            Stage(
                id=10,
                name="Intake",
                processes=(
                    Process(
                        id=20,
                        name="Verify",
                        steps=(
                            Step(
                                id=30,
                                name="Collect Info",
                                type=StepType.COLLECT_INFORMATION,
                                fields=(FieldReference(field_id=7, required=True),),
                                view_id=70,
                            ),
                            Step(id=31, name="Approve", type=StepType.APPROVE_REJECT),
                        ),
                    ),
                    Process(id=21, name="Triage"),
                ),
            ),
            Stage(id=11, name="Review"),
        ),
    )


@pytest.fixture
def sample_model_dict() -> dict[str, Any]:
    """Wire form of a small workflow, as stored in a case row."""
    return {
        "name": "Claims",
        "stages": [
            {
                "id": 10,
                "name": "Intake",
                "processes": [
                    {
                        "id": 20,
                        "name": "Verify",
                        "steps": [
                            {
                                "id": 30,
                                "name": "Collect Info",
                                "type": "Collect information",
                                "fields": [{"fieldId": 7, "required": True}],
                                "viewId": 70,
                            }
                        ],
                    }
                ],
            }
        ],
    }


@pytest.fixture
def id_generator() -> Callable[[], int]:
    """Deterministic stage/process/step ids starting at 1000."""
    return itertools.count(1000).__next__


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def remote_store() -> InMemoryRemoteStore:
    """Store holding one empty case with id CASE_ID."""
    store = InMemoryRemoteStore()
    store.seed_case("Claims", {"name": "Claims", "stages": []}, description="", case_id=CASE_ID)
    return store


@pytest.fixture
def ledger(session_store: InMemorySessionStore) -> CheckpointLedger:
    return CheckpointLedger(CASE_ID, session_store)


@pytest.fixture
def events() -> list[EditorEvent]:
    return []


@pytest.fixture
async def editor(
    remote_store: InMemoryRemoteStore,
    ledger: CheckpointLedger,
    id_generator: Callable[[], int],
    events: list[EditorEvent],
) -> WorkflowEditor:
    """Loaded editor over the in-memory store; emitted events land in ``events``."""
    emitter = EditorEventEmitter(CASE_ID)
    emitter.subscribe(events.append)
    editor = WorkflowEditor(
        CASE_ID, remote_store, ledger, emitter, id_generator=id_generator
    )
    await editor.load()
    return editor
