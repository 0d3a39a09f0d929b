"""Tests for assistant prompt material."""

import json

from casebuilder.domain.models import Field
from casebuilder.domain.prompts import (
    SYSTEM_MESSAGE,
    HistoryEntry,
    build_generation_context,
    build_system_context,
)


class TestHistoryEntry:
    def test_to_dict(self) -> None:
        """HistoryEntry serializes to the chat message shape."""
        assert HistoryEntry("user", "hi").to_dict() == {"role": "user", "content": "hi"}


class TestBuildSystemContext:
    def test_document_shape(self, sample_model) -> None:
        """The context names the case and embeds the stage tree."""
        context = json.loads(build_system_context(12, "Claims", sample_model))

        assert context["currentCaseId"] == 12
        assert context["name"] == "Claims"
        assert context["stages"][0]["processes"][0]["steps"][0]["viewId"] == 70
        assert "isNew=false" in context["instructions"]
        assert context["instructions"].endswith("The current case ID is: 12")


class TestBuildGenerationContext:
    def test_without_model(self) -> None:
        assert build_generation_context() == SYSTEM_MESSAGE

    def test_with_model_appends_snapshot(self, sample_model) -> None:
        """The current stages and fields follow the instructions."""
        fields = [Field(id=7, name="age", label="Age", type="Integer", case_id=1)]
        context = build_generation_context(sample_model, fields)

        assert context.startswith(SYSTEM_MESSAGE)
        snapshot = json.loads(context.split("Current workflow model:\n", 1)[1])
        assert [s["name"] for s in snapshot["stages"]] == ["Intake", "Review"]
        assert snapshot["fields"][0]["name"] == "age"
