"""Tests for EditorPreferences."""

import pytest

from casebuilder.application.preferences import EditorPreferences, clamp_chat_width


class TestClampChatWidth:
    @pytest.mark.parametrize(("width", "expected"), [(100, 300), (450, 450), (1200, 800)])
    def test_clamp(self, width, expected):
        assert clamp_chat_width(width) == expected


class TestEditorPreferences:
    def test_defaults(self, session_store):
        prefs = EditorPreferences(session_store)
        assert prefs.active_tab == "workflow"
        assert prefs.active_panel_tab == "chat"
        assert prefs.chat_width == 450
        assert prefs.chat_expanded is True

    def test_changes_are_persisted(self, session_store):
        prefs = EditorPreferences(session_store)
        prefs.active_tab = "views"
        prefs.active_panel_tab = "history"
        prefs.chat_width = 2000
        prefs.chat_expanded = False

        reloaded = EditorPreferences(session_store)
        assert reloaded.active_tab == "views"
        assert reloaded.active_panel_tab == "history"
        assert reloaded.chat_width == 800
        assert reloaded.chat_expanded is False
        assert session_store.get_item("chat_panel_expanded") == "false"

    def test_invalid_tab_rejected(self, session_store):
        prefs = EditorPreferences(session_store)
        with pytest.raises(ValueError):
            prefs.active_tab = "settings"
        with pytest.raises(ValueError):
            prefs.active_panel_tab = "settings"

    def test_invalid_stored_values_fall_back(self, session_store):
        session_store.set_item("active_tab", "settings")
        session_store.set_item("chat_panel_width", "wide")
        prefs = EditorPreferences(session_store)
        assert prefs.active_tab == "workflow"
        assert prefs.chat_width == 450

    def test_stored_width_is_clamped(self, session_store):
        session_store.set_item("chat_panel_width", "120")
        assert EditorPreferences(session_store).chat_width == 300
