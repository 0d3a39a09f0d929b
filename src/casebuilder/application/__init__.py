"""
Application layer for the case builder.

Contains the mutation engine and the services that orchestrate domain objects
around it (history, streaming reconciliation, chat, preferences).
"""

from casebuilder.application.chat_session import ChatMessage, ChatSession, Proposal
from casebuilder.application.checkpoint_ledger import MAX_CHECKPOINTS, CheckpointLedger
from casebuilder.application.editor import EditorSelection, WorkflowEditor
from casebuilder.application.editor_event_emitter import EditorEventEmitter
from casebuilder.application.mutation_queue import MutationQueue
from casebuilder.application.preferences import EditorPreferences
from casebuilder.application.stream_reconciler import (
    StreamOutcome,
    StreamReconciler,
    StreamState,
)

__all__ = [
    "ChatMessage",
    "ChatSession",
    "CheckpointLedger",
    "EditorEventEmitter",
    "EditorPreferences",
    "EditorSelection",
    "MAX_CHECKPOINTS",
    "MutationQueue",
    "Proposal",
    "StreamOutcome",
    "StreamReconciler",
    "StreamState",
    "WorkflowEditor",
]
