"""
Domain exceptions for the case builder.

These represent rule violations and collaborator failures surfaced to callers.
"""

from __future__ import annotations


class CaseBuilderError(Exception):
    """Base class for every error raised by casebuilder."""


class MissingIdentifierError(CaseBuilderError):
    """
    Raised when a persisted stage, process or step has no identifier.

    Structural corruption: fatal to loading the case.
    """

    def __init__(self, kind: str, index: int, path: tuple[str, ...] = ()):
        """
        Args:
            kind: "Stage", "Process" or "Step"
            index: Position of the offending node within its parent
            path: Names of the enclosing nodes, outermost first
        """
        self.kind = kind
        self.index = index
        self.path = path
        super().__init__(self._format())

    def _format(self) -> str:
        message = f"{self.kind} at index {self.index}"
        if self.kind == "Process" and self.path:
            message += f' in stage "{self.path[0]}"'
        elif self.kind == "Step" and len(self.path) >= 2:
            message += f' in process "{self.path[1]}" of stage "{self.path[0]}"'
        return f"{message} is missing an ID"


class InvalidModelError(CaseBuilderError):
    """Raised when a persisted row does not have the expected shape."""


class NotFoundError(CaseBuilderError, KeyError):
    """Raised when a stage, process, step, field, view or checkpoint id is unknown."""

    def __init__(self, kind: str, entity_id: object):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")

    def __str__(self) -> str:
        return str(self.args[0])


class StoreError(CaseBuilderError):
    """
    Raised when a persistence call fails.

    Carries the HTTP status (None for transport failures) and the response body
    so callers can decide on user-facing messaging.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        body: str = "",
        method: str = "",
        url: str = "",
    ):
        detail = f"{status} {body}".strip() if status is not None else body
        super().__init__(f"{message}: {detail}" if detail else message)
        self.status = status
        self.body = body
        self.method = method
        self.url = url


class ConfirmationRequired(CaseBuilderError):
    """Raised when a destructive history action is attempted without confirmation."""


class StreamError(CaseBuilderError):
    """Raised when the assistant stream fails mid-flight."""


class ResponseValidationError(CaseBuilderError):
    """Raised when an assistant JSON document fails schema validation."""


class ConfigurationError(CaseBuilderError):
    """Raised when configuration files or environment values are invalid."""
