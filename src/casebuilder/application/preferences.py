"""Session-scoped editor preferences (active tabs, chat panel geometry)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from casebuilder.domain.interfaces import SessionStoreInterface

logger = logging.getLogger(__name__)

ACTIVE_TAB_STORAGE_KEY = "active_tab"
ACTIVE_PANEL_TAB_STORAGE_KEY = "active_panel_tab"
CHAT_PANEL_WIDTH_STORAGE_KEY = "chat_panel_width"
CHAT_PANEL_EXPANDED_STORAGE_KEY = "chat_panel_expanded"

CHAT_MIN_WIDTH = 300
CHAT_MAX_WIDTH = 800

MAIN_TABS = ("workflow", "fields", "views")
PANEL_TABS = ("chat", "history")


def clamp_chat_width(width: float) -> int:
    return int(max(CHAT_MIN_WIDTH, min(CHAT_MAX_WIDTH, width)))


class EditorPreferences:
    """Reads every preference once at construction; writes on each change."""

    def __init__(
        self,
        store: SessionStoreInterface,
        default_tab: str = "workflow",
        default_panel_tab: str = "chat",
        default_chat_width: int = 450,
    ) -> None:
        self._store = store
        self._active_tab = self._read_choice(ACTIVE_TAB_STORAGE_KEY, MAIN_TABS, default_tab)
        self._active_panel_tab = self._read_choice(
            ACTIVE_PANEL_TAB_STORAGE_KEY, PANEL_TABS, default_panel_tab
        )
        self._chat_width = self._read_width(default_chat_width)
        self._chat_expanded = self._store.get_item(CHAT_PANEL_EXPANDED_STORAGE_KEY) != "false"

    def _read_choice(self, key: str, allowed: tuple[str, ...], default: str) -> str:
        value = self._store.get_item(key)
        if value in allowed:
            return value
        if value is not None:
            logger.debug("Ignoring stored %s=%r", key, value)
        return default

    def _read_width(self, default: int) -> int:
        raw = self._store.get_item(CHAT_PANEL_WIDTH_STORAGE_KEY)
        if raw is None:
            return clamp_chat_width(default)
        try:
            return clamp_chat_width(float(raw))
        except ValueError:
            logger.debug("Ignoring stored chat width %r", raw)
            return clamp_chat_width(default)

    @property
    def active_tab(self) -> str:
        return self._active_tab

    @active_tab.setter
    def active_tab(self, value: str) -> None:
        if value not in MAIN_TABS:
            raise ValueError(f"Unknown tab: {value}")
        self._active_tab = value
        self._store.set_item(ACTIVE_TAB_STORAGE_KEY, value)

    @property
    def active_panel_tab(self) -> str:
        return self._active_panel_tab

    @active_panel_tab.setter
    def active_panel_tab(self, value: str) -> None:
        if value not in PANEL_TABS:
            raise ValueError(f"Unknown panel tab: {value}")
        self._active_panel_tab = value
        self._store.set_item(ACTIVE_PANEL_TAB_STORAGE_KEY, value)

    @property
    def chat_width(self) -> int:
        return self._chat_width

    @chat_width.setter
    def chat_width(self, value: float) -> None:
        self._chat_width = clamp_chat_width(value)
        self._store.set_item(CHAT_PANEL_WIDTH_STORAGE_KEY, str(self._chat_width))

    @property
    def chat_expanded(self) -> bool:
        return self._chat_expanded

    @chat_expanded.setter
    def chat_expanded(self, value: bool) -> None:
        self._chat_expanded = value
        self._store.set_item(CHAT_PANEL_EXPANDED_STORAGE_KEY, "true" if value else "false")
