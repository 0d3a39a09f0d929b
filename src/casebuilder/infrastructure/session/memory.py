"""
In-memory session store.

Lives as long as the process, like a browser tab's session storage.
"""

from casebuilder.domain.interfaces import SessionStoreInterface


class InMemorySessionStore(SessionStoreInterface):
    """Simple dict-backed session store for testing."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._items)
