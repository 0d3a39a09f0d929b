"""Tests for assistant stream text classification."""

import pytest

from casebuilder.domain.tool_responses import (
    StreamFrame,
    parse_sse_line,
    process_tool_response,
    should_suppress,
    signals_mutation,
)


class TestParseSseLine:
    def test_text_frame(self):
        assert parse_sse_line('data: {"text": "Hello"}') == StreamFrame(text="Hello")

    def test_done_frame(self):
        assert parse_sse_line('data: {"done": true}') == StreamFrame(done=True)

    def test_error_frame(self):
        assert parse_sse_line('data: {"error": "quota"}').error == "quota"

    def test_tool_event(self):
        frame = parse_sse_line('data: {"tool": {"name": "saveFields", "mutated": true}}')
        assert frame is not None
        assert frame.tool_name == "saveFields"
        assert frame.tool_mutated is True

    def test_tool_event_without_mutation_flag(self):
        frame = parse_sse_line('data: {"tool": {"name": "listViews"}}')
        assert frame is not None
        assert frame.tool_mutated is None

    @pytest.mark.parametrize("line", ["", "event: message", ": keepalive", "data:{}x"])
    def test_non_data_lines(self, line):
        assert parse_sse_line(line) is None

    def test_malformed_json_is_skipped(self, caplog):
        assert parse_sse_line("data: {not json") is None
        assert "Failed to parse SSE data" in caplog.text

    def test_non_object_payload(self):
        assert parse_sse_line("data: [1, 2]") is None

    def test_empty_text_is_none(self):
        assert parse_sse_line('data: {"text": ""}') == StreamFrame()


class TestShouldSuppress:
    def test_raw_tool_result_hidden(self):
        assert should_suppress('{"id": 1, "name": "kitchen", "type": "Text"}')

    def test_list_tool_narration_hidden(self):
        assert should_suppress('Calling listFields: [{"name": "kitchen", "order": 1}]')

    def test_save_fields_result_shown(self):
        text = '{"ids": [1, 2], "fields": [{"name": "a"}, {"name": "b"}]}'
        assert not should_suppress(text)

    def test_salient_keyword_overrides(self):
        assert not should_suppress('{"name": "Claims workflow", "id": 3}')

    def test_prose_is_shown(self):
        assert not should_suppress("I will add a Review stage.")

    def test_payload_keys_in_prose_are_shown(self):
        """Keys alone are not enough; the text must look like raw output."""
        assert not should_suppress('The field has "name": and "type": set.')


class TestSignalsMutation:
    @pytest.mark.parametrize(
        "text",
        [
            "Field created",
            "I removed the old step",
            "Operation completed successfully",
            "All constraints satisfied.",
            "[[COMPLETED]]",
            "Workflow 'Claims' saved successfully",
        ],
    )
    def test_mutation_phrases(self, text):
        assert signals_mutation(text)

    @pytest.mark.parametrize("text", ["Looking at your stages", "Found 3 items", ""])
    def test_neutral_phrases(self, text):
        assert not signals_mutation(text)


class TestProcessToolResponse:
    def test_field_result(self):
        assert (
            process_tool_response('{"id":1,"name":"Kitchen","type":"Text"}')
            == "Field 'Kitchen' of type Text saved successfully"
        )

    def test_save_fields_result(self):
        text = '{"ids": [1, 2], "fields": [{"name": "a"}, {"name": "b"}]}'
        assert process_tool_response(text) == "Saved 2 fields: a, b"

    def test_view_result(self):
        text = '{"name": "Intake Form", "caseid": 3, "model": {"fields": []}}'
        assert process_tool_response(text) == "View 'Intake Form' saved successfully"

    def test_workflow_result(self):
        text = '{"name": "Claims", "description": "d", "model": {"stages": []}}'
        assert process_tool_response(text) == "Workflow 'Claims' saved successfully"

    def test_message_result(self):
        assert process_tool_response('{"message": "Done"}') == "Done"

    def test_generic_saved(self):
        assert process_tool_response('{"id": 3, "name": "X"}') == "Saved 'X'"

    def test_deleted_field_with_views(self):
        text = (
            '{"success": true, "deletedId": 4, "deletedName": "age", '
            '"type": "field", "updatedViewsCount": 2}'
        )
        assert process_tool_response(text) == "Deleted field 'age' (removed from 2 views)"

    def test_deleted_view(self):
        text = '{"success": true, "deletedId": 4, "deletedName": "Form", "type": "view"}'
        assert process_tool_response(text) == "Deleted view 'Form'"

    def test_deleted_unknown_kind(self):
        text = '{"success": true, "deletedId": 4, "deletedName": "S", "type": "stage"}'
        assert process_tool_response(text) == "Deleted item 'S'"

    def test_deleted_without_name(self):
        assert (
            process_tool_response('{"success": true, "deletedId": 4}')
            == "Item with ID 4 deleted successfully"
        )

    def test_error_result(self):
        assert process_tool_response('{"error": "boom"}') == "Error: boom"

    def test_lists(self):
        assert process_tool_response("[]") == "No items found"
        assert process_tool_response("[1]") == "Found 1 item"
        assert process_tool_response("[1, 2, 3]") == "Found 3 items"

    @pytest.mark.parametrize("text", ["Hello there", '{"foo": 1}', '"quoted"', "42"])
    def test_unrecognized_text_unchanged(self, text):
        assert process_tool_response(text) == text

    def test_zero_id_counts_as_absent(self):
        text = '{"id": 0, "name": "X", "type": "Text"}'
        assert process_tool_response(text) == text
