"""
Domain interfaces (Ports) for the case builder.

These abstract base classes define the contracts that adapters must satisfy:
the remote CRUD store, the session-scoped key/value store and the workflow
assistant. They have no external dependencies.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, Mapping, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from casebuilder.domain.changes import ValidatedResponse
    from casebuilder.domain.models import CaseRecord, Field, View
    from casebuilder.domain.prompts import HistoryEntry


class RemoteStoreInterface(ABC):
    """
    Port for the remote persistence endpoint.

    All rows cross this boundary already normalized into domain objects.
    Failures raise StoreError; implementations never retry.
    """

    @abstractmethod
    async def get_case(self, case_id: int) -> "CaseRecord":
        """
        Fetch one case.

        Raises:
            StoreError: Transport failure or non-success status
        """

    @abstractmethod
    async def put_case(
        self, case_id: int, name: str, description: str, model: Mapping[str, Any]
    ) -> "CaseRecord | None":
        """
        Persist the case's name, description and embedded workflow model.

        Returns:
            The stored row when the server echoes it, else None
        """

    @abstractmethod
    async def list_fields(self, case_id: int, name: str | None = None) -> list["Field"]:
        """
        List the case's fields, optionally filtered by exact technical name.
        """

    @abstractmethod
    async def create_field(self, data: Mapping[str, Any]) -> "Field":
        """
        Create a field row.

        Raises:
            StoreError: With status 409 when (name, caseid) already exists
        """

    @abstractmethod
    async def update_field(self, field_id: int, data: Mapping[str, Any]) -> "Field | None":
        pass

    @abstractmethod
    async def delete_field(self, field_id: int) -> None:
        pass

    @abstractmethod
    async def list_views(self, case_id: int) -> list["View"]:
        pass

    @abstractmethod
    async def create_view(self, data: Mapping[str, Any]) -> "View":
        pass

    @abstractmethod
    async def update_view(self, view_id: int, data: Mapping[str, Any]) -> "View | None":
        pass

    @abstractmethod
    async def delete_view(self, view_id: int) -> None:
        pass


class SessionStoreInterface(ABC):
    """
    Port for session-scoped key/value persistence.

    Values are strings (JSON-encoded by callers).
    """

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass


class AssistantInterface(ABC):
    """
    Port for the workflow assistant.

    The streaming path drives tool calls on the server and reports progress as
    server-sent-event lines. The non-streaming path returns a structured
    proposal that the caller may apply.
    """

    @abstractmethod
    def stream(
        self,
        prompt: str,
        system_context: str,
        history: Sequence["HistoryEntry"] = (),
    ) -> AsyncGenerator[str, None]:
        """
        Stream the reply as raw SSE lines.

        Args:
            prompt: The user's message
            system_context: JSON context describing the current case
            history: Prior non-empty chat turns, oldest first

        Raises:
            StreamError: Transport failure or non-success status
        """

    @abstractmethod
    async def generate(self, prompt: str, system_context: str) -> "ValidatedResponse":
        """
        Request a structured proposal.

        Raises:
            StreamError: Transport failure
            ResponseValidationError: Reply is not a valid proposal document
        """
