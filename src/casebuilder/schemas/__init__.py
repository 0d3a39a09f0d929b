"""JSON Schema definitions for documents exchanged with the workflow assistant.

Schemas:
    - validated_response.schema.json: Structured (non-streaming) assistant reply

Usage:
    from casebuilder.schemas import parse_validated_response

    response = parse_validated_response(json.loads(reply))
"""

from __future__ import annotations

import json
import re
from functools import cache
from importlib.resources import files
from typing import Any

import jsonschema

from casebuilder.domain.changes import ValidatedResponse
from casebuilder.domain.exceptions import ResponseValidationError

_FENCED_JSON = re.compile(r"```(?:json)?\s*\n(.*?)\n\s*```", re.DOTALL)


@cache
def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema from the schemas package.

    Args:
        name: Schema filename (e.g., 'validated_response.schema.json')

    Returns:
        Parsed JSON schema as a dictionary
    """
    schema_text = files("casebuilder.schemas").joinpath(name).read_text()
    result: dict[str, Any] = json.loads(schema_text)
    return result


def get_validated_response_schema() -> dict[str, Any]:
    return _load_schema("validated_response.schema.json")


def validate_response_document(data: Any) -> None:
    """Validate an assistant reply document against the schema.

    Raises:
        ResponseValidationError: If validation fails
    """
    try:
        jsonschema.validate(data, get_validated_response_schema())
    except jsonschema.ValidationError as err:
        path = "/".join(str(p) for p in err.absolute_path) or "<root>"
        raise ResponseValidationError(f"Invalid assistant response at {path}: {err.message}") from err


def extract_json_document(text: str) -> Any:
    """Decode the JSON document in a model reply, tolerating markdown fences.

    Raises:
        ResponseValidationError: If no JSON document can be decoded
    """
    candidate = text.strip()
    match = _FENCED_JSON.search(candidate)
    if match:
        candidate = match.group(1).strip()
    elif not candidate.startswith("{"):
        start, end = candidate.find("{"), candidate.rfind("}")
        if start != -1 and end > start:
            candidate = candidate[start : end + 1]
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as err:
        raise ResponseValidationError(f"Assistant reply is not valid JSON: {err}") from err


def parse_validated_response(data: Any) -> ValidatedResponse:
    """Validate a decoded document and build the domain object."""
    validate_response_document(data)
    return ValidatedResponse.from_dict(data)


__all__ = [
    "extract_json_document",
    "get_validated_response_schema",
    "parse_validated_response",
    "validate_response_document",
]
