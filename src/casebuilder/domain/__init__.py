"""
Domain layer: models, pure tree operations, text heuristics and ports.
"""

from casebuilder.domain.changes import Change, ChangeType, ValidatedResponse, describe_change
from casebuilder.domain.exceptions import (
    CaseBuilderError,
    ConfigurationError,
    ConfirmationRequired,
    InvalidModelError,
    MissingIdentifierError,
    NotFoundError,
    ResponseValidationError,
    StoreError,
    StreamError,
)
from casebuilder.domain.identifiers import MonotonicIdGenerator, slugify_label
from casebuilder.domain.interfaces import (
    AssistantInterface,
    RemoteStoreInterface,
    SessionStoreInterface,
)
from casebuilder.domain.models import (
    FIELD_TYPES,
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
from casebuilder.domain.selection import (
    EntityNode,
    FreeFormSelection,
    Rect,
    SelectionResult,
    compose_quick_chat_message,
    rects_intersect,
)
from casebuilder.domain.tool_responses import (
    parse_sse_line,
    process_tool_response,
    should_suppress,
    signals_mutation,
)
from casebuilder.domain.validation import validate_model_ids

__all__ = [
    # Models
    "CaseRecord",
    "Checkpoint",
    "Field",
    "FieldReference",
    "FIELD_TYPES",
    "Process",
    "Stage",
    "Step",
    "StepType",
    "View",
    "ViewLayout",
    "ViewModel",
    "WorkflowModel",
    "resolve_options",
    # Changes
    "Change",
    "ChangeType",
    "ValidatedResponse",
    "describe_change",
    # Exceptions
    "CaseBuilderError",
    "ConfigurationError",
    "ConfirmationRequired",
    "InvalidModelError",
    "MissingIdentifierError",
    "NotFoundError",
    "ResponseValidationError",
    "StoreError",
    "StreamError",
    # Interfaces
    "AssistantInterface",
    "RemoteStoreInterface",
    "SessionStoreInterface",
    # Helpers
    "MonotonicIdGenerator",
    "slugify_label",
    "validate_model_ids",
    "EntityNode",
    "FreeFormSelection",
    "Rect",
    "SelectionResult",
    "compose_quick_chat_message",
    "rects_intersect",
    "parse_sse_line",
    "process_tool_response",
    "should_suppress",
    "signals_mutation",
]
