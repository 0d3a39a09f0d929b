"""
casebuilder: workflow-model synchronization for case definition editors.

Keeps an in-memory tree of stages, processes and steps, plus case-scoped
fields and views, consistent with a remote CRUD store. Edits are applied
optimistically, checkpointed, and reconciled with assistant-driven changes.

Example:
    import asyncio

    from casebuilder import CheckpointLedger, WorkflowEditor
    from casebuilder.infrastructure import HttpRemoteStore, InMemorySessionStore

    async def main() -> None:
        async with HttpRemoteStore("http://localhost:3000") as store:
            ledger = CheckpointLedger(12, InMemorySessionStore())
            editor = WorkflowEditor(12, store, ledger)
            await editor.load()
            stage = await editor.add_stage("Review")
            process = await editor.add_process(stage.id, "Checks")
            await editor.add_step(stage.id, process.id, "Verify")

    asyncio.run(main())
"""

# Application layer (orchestration)
from casebuilder.application import (
    ChatSession,
    CheckpointLedger,
    EditorEventEmitter,
    EditorPreferences,
    StreamReconciler,
    StreamState,
    WorkflowEditor,
)

# Domain exceptions
from casebuilder.domain.exceptions import (
    CaseBuilderError,
    ConfirmationRequired,
    MissingIdentifierError,
    NotFoundError,
    StoreError,
    StreamError,
)

# Domain interfaces (for type hints and custom implementations)
from casebuilder.domain.interfaces import (
    AssistantInterface,
    RemoteStoreInterface,
    SessionStoreInterface,
)
from casebuilder.domain.models import (
    Checkpoint,
    Field,
    FieldReference,
    Process,
    Stage,
    Step,
    StepType,
    View,
    WorkflowModel,
)

__version__ = "0.3.0"

__all__ = [
    # Version
    "__version__",
    # Application
    "ChatSession",
    "CheckpointLedger",
    "EditorEventEmitter",
    "EditorPreferences",
    "StreamReconciler",
    "StreamState",
    "WorkflowEditor",
    # Models
    "Checkpoint",
    "Field",
    "FieldReference",
    "Process",
    "Stage",
    "Step",
    "StepType",
    "View",
    "WorkflowModel",
    # Exceptions
    "CaseBuilderError",
    "ConfirmationRequired",
    "MissingIdentifierError",
    "NotFoundError",
    "StoreError",
    "StreamError",
    # Interfaces
    "AssistantInterface",
    "RemoteStoreInterface",
    "SessionStoreInterface",
]
