"""
Classification of assistant stream text.

The assistant narrates its tool calls in plain text frames. Three decisions are
made per frame:

- should_suppress: hide raw tool-call JSON the user does not need to read
- process_tool_response: turn a tool result document into a sentence
- signals_mutation: whether the frame implies the persisted workflow changed

These are keyword heuristics over free text; a structured ``tool`` event in the
stream takes precedence when the server sends one (see StreamReconciler).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data: "

# Lowercased JSON keys that mark text as a raw tool payload
TOOL_PAYLOAD_KEYS: tuple[str, ...] = (
    '"id":',
    '"name":',
    '"type":',
    '"caseid":',
    '"model":',
    '"primary":',
    '"required":',
    '"label":',
    '"description":',
    '"order":',
    '"options":',
    '"defaultvalue":',
)

LIST_TOOL_MARKERS: tuple[str, ...] = ("listviews", "listfields")

# Text containing any of these is shown even if it looks like a tool payload
SALIENT_KEYWORDS: tuple[str, ...] = (
    "workflow",
    "created",
    "saved",
    "stages",
    "processes",
    "steps",
    "breakdown",
    "summary",
)

MUTATION_KEYWORDS: tuple[str, ...] = (
    "created",
    "saved",
    "deleted",
    "removed",
    "operation completed successfully",
    "updated",
    "all constraints satisfied",
    "task completed successfully",
    "[[completed]]",
)


@dataclass(frozen=True)
class StreamFrame:
    """One decoded ``data:`` payload of the assistant stream."""

    text: str | None = None
    error: str | None = None
    done: bool = False
    tool_name: str | None = None
    tool_mutated: bool | None = None


def parse_sse_line(line: str) -> StreamFrame | None:
    """
    Decode one server-sent-event line.

    Returns None for lines that are not ``data:`` lines. Malformed JSON is
    logged and skipped (None).
    """
    if not line.startswith(SSE_DATA_PREFIX):
        return None
    try:
        payload = json.loads(line[len(SSE_DATA_PREFIX) :])
    except json.JSONDecodeError:
        logger.warning("Failed to parse SSE data: %s", line)
        return None
    if not isinstance(payload, dict):
        logger.warning("Ignoring non-object SSE payload: %s", line)
        return None

    text = payload.get("text")
    error = payload.get("error")
    tool = payload.get("tool")
    tool_name: str | None = None
    tool_mutated: bool | None = None
    if isinstance(tool, dict):
        tool_name = str(tool["name"]) if tool.get("name") is not None else None
        if "mutated" in tool:
            tool_mutated = bool(tool["mutated"])

    return StreamFrame(
        text=text if isinstance(text, str) and text else None,
        error=str(error) if error else None,
        done=bool(payload.get("done")),
        tool_name=tool_name,
        tool_mutated=tool_mutated,
    )


def _has_payload_keys(lower: str) -> bool:
    return any(key in lower for key in TOOL_PAYLOAD_KEYS)


def should_suppress(text: str) -> bool:
    """
    Decide whether a text frame is raw tool output to hide from the user.

    The shape check comes first. Two shapes count as raw output:

    - list-tool narration (mentions listViews/listFields) embedding payload keys
    - a bare JSON object with payload keys, unless it is a saveFields result
      (carries both ``"ids":`` and ``"fields":``)

    A shape match is then overridden (shown after all) when the text mentions
    one of SALIENT_KEYWORDS.
    """
    lower = text.lower()
    if not _has_payload_keys(lower):
        return False

    is_list_tool = any(marker in lower for marker in LIST_TOOL_MARKERS)
    stripped = text.strip()
    raw_result = (
        stripped.startswith("{")
        and stripped.endswith("}")
        and not ('"ids":' in lower and '"fields":' in lower)
    )
    if not (is_list_tool or raw_result):
        return False
    return not any(keyword in lower for keyword in SALIENT_KEYWORDS)


def signals_mutation(text: str) -> bool:
    """Whether a text frame suggests the assistant changed persisted data."""
    lower = text.lower()
    if any(keyword in lower for keyword in MUTATION_KEYWORDS):
        return True
    return "workflow" in lower and "saved successfully" in lower


def _render(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" + ("" if count == 1 else "s")


def process_tool_response(text: str) -> str:
    """
    Rewrite a tool result document as a short human sentence.

    Text that is not a JSON object or array is returned unchanged, as is any
    document that matches none of the known result shapes. Field presence
    follows truthiness: zero, empty strings and empty collections count as
    absent.

    Examples:
        >>> process_tool_response('{"id":1,"name":"Kitchen","type":"Text"}')
        "Field 'Kitchen' of type Text saved successfully"
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return text

    if isinstance(data, list):
        if not data:
            return "No items found"
        return f"Found {_plural(len(data), 'item')}"

    if not isinstance(data, dict):
        return text

    ids, fields = data.get("ids"), data.get("fields")
    if ids and isinstance(ids, list) and fields and isinstance(fields, list):
        names = ", ".join(
            _render(item["name"]) if isinstance(item, dict) and item.get("name") is not None else ""
            for item in fields
        )
        return f"Saved {_plural(len(fields), 'field')}: {names}"

    name = data.get("name")
    if name and data.get("type") and data.get("id"):
        return f"Field '{_render(name)}' of type {_render(data['type'])} saved successfully"
    if name and data.get("caseid") and data.get("model"):
        return f"View '{_render(name)}' saved successfully"
    if name and data.get("description") and data.get("model"):
        return f"Workflow '{_render(name)}' saved successfully"
    if data.get("message"):
        return _render(data["message"])
    if data.get("id") and name:
        return f"Saved '{_render(name)}'"

    if data.get("success") and data.get("deletedId"):
        deleted_name = data.get("deletedName")
        kind = data.get("type")
        if deleted_name and kind:
            item_type = kind if kind in ("field", "view") else "item"
            views_count = data.get("updatedViewsCount")
            if kind == "field" and views_count:
                return (
                    f"Deleted {item_type} '{_render(deleted_name)}' "
                    f"(removed from {_render(views_count)} view"
                    f"{'' if views_count == 1 else 's'})"
                )
            return f"Deleted {item_type} '{_render(deleted_name)}'"
        return f"Item with ID {_render(data['deletedId'])} deleted successfully"

    if data.get("error"):
        return f"Error: {_render(data['error'])}"
    return text
