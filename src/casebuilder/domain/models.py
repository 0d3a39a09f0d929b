"""
Domain models for the case builder.

A case owns one WorkflowModel (stages -> processes -> steps) plus case-scoped
fields and views. All models are immutable (frozen dataclasses holding tuples)
so a snapshot handed to the checkpoint ledger can never change afterwards.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from casebuilder.domain.exceptions import InvalidModelError

# =============================================================================
# STEP AND FIELD TYPES
# =============================================================================


class StepType(str, Enum):
    """Closed set of step kinds a process may contain."""

    COLLECT_INFORMATION = "Collect information"
    APPROVE_REJECT = "Approve/Reject"
    AUTOMATION = "Automation"
    CREATE_CASE = "Create Case"
    DECISION = "Decision"
    GENERATE_DOCUMENT = "Generate Document"
    GENERATIVE_AI = "Generative AI"
    ROBOTIC_AUTOMATION = "Robotic Automation"
    SEND_NOTIFICATION = "Send Notification"

    @property
    def display_name(self) -> str:
        if self is StepType.COLLECT_INFORMATION:
            return "Collect Information"
        return self.value

    @classmethod
    def parse(cls, value: Any) -> StepType:
        """Coerce a persisted value, rejecting anything outside the enumeration."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as err:
            raise InvalidModelError(f"Unknown step type: {value!r}") from err


# Technical field type -> display name
FIELD_TYPES: dict[str, str] = {
    "Address": "Address",
    "AutoComplete": "Auto Complete",
    "Checkbox": "Checkbox",
    "Currency": "Currency",
    "Date": "Date",
    "DateTime": "Date & Time",
    "Decimal": "Decimal Number",
    "Dropdown": "Dropdown",
    "Email": "Email",
    "Integer": "Whole Number",
    "Location": "Location",
    "ReferenceValues": "Reference Values",
    "DataReferenceSingle": "Single Data Reference",
    "DataReferenceMulti": "Multiple Data References",
    "CaseReferenceSingle": "Single Case Reference",
    "CaseReferenceMulti": "Multiple Case References",
    "Percentage": "Percentage",
    "Phone": "Phone Number",
    "RadioButtons": "Radio Buttons",
    "RichText": "Rich Text Editor",
    "Status": "Status",
    "Text": "Single Line Text",
    "TextArea": "Multi Line Text",
    "Time": "Time",
    "URL": "Website URL",
    "UserReference": "User Reference",
}


def field_type_display_name(field_type: str) -> str:
    return FIELD_TYPES.get(field_type, field_type)


# =============================================================================
# FIELD REFERENCES
# =============================================================================


@dataclass(frozen=True)
class FieldReference:
    """Non-owning link from a step or view to a case field."""

    field_id: int
    required: bool = False
    order: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"fieldId": self.field_id, "required": self.required}
        if self.order is not None:
            data["order"] = self.order
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FieldReference:
        try:
            field_id = int(data["fieldId"])
        except (KeyError, TypeError, ValueError) as err:
            raise InvalidModelError(f"Invalid field reference: {data!r}") from err
        order = data.get("order")
        return cls(
            field_id=field_id,
            required=bool(data.get("required", False)),
            order=int(order) if order is not None else None,
        )


def _references_from(raw: Any) -> tuple[FieldReference, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(
        FieldReference.from_dict(item)
        for item in raw
        if isinstance(item, Mapping) and "fieldId" in item
    )


# =============================================================================
# WORKFLOW TREE
# =============================================================================


@dataclass(frozen=True)
class Step:
    """Individual task inside a process."""

    id: int
    name: str
    type: StepType
    fields: tuple[FieldReference, ...] = ()
    view_id: int | None = None

    @property
    def collects_information(self) -> bool:
        return self.type is StepType.COLLECT_INFORMATION

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "fields": [ref.to_dict() for ref in self.fields],
        }
        if self.view_id is not None:
            data["viewId"] = self.view_id
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Step:
        view_id = data.get("viewId")
        return cls(
            id=int(data["id"]),
            name=str(data.get("name", "")),
            type=StepType.parse(data.get("type")),
            fields=_references_from(data.get("fields")),
            view_id=int(view_id) if isinstance(view_id, int | float) else None,
        )


@dataclass(frozen=True)
class Process:
    """Group of steps nested under a stage."""

    id: int
    name: str
    steps: tuple[Step, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "steps": [step.to_dict() for step in self.steps],
        }


@dataclass(frozen=True)
class Stage:
    """Sequential phase of the workflow."""

    id: int
    name: str
    processes: tuple[Process, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "processes": [process.to_dict() for process in self.processes],
        }


@dataclass(frozen=True)
class WorkflowModel:
    """Root aggregate embedded in a case record."""

    name: str
    description: str = ""
    stages: tuple[Stage, ...] = ()

    def iter_steps(self) -> Iterator[tuple[Stage, Process, Step]]:
        """Yield every step with its ancestors, in tree order."""
        for stage in self.stages:
            for process in stage.processes:
                for step in process.steps:
                    yield stage, process, step

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.description:
            data["description"] = self.description
        data["stages"] = [stage.to_dict() for stage in self.stages]
        return data


# =============================================================================
# FIELDS
# =============================================================================


def resolve_options(override: Any, existing: Any) -> tuple[str, ...]:
    """
    Resolve a field's choice list.

    Order of precedence: an explicit override, else the existing value (a list,
    or a serialized JSON array as older rows store it), else empty.
    """
    if override is not None:
        return tuple(str(option) for option in override)
    if isinstance(existing, list | tuple):
        return tuple(str(option) for option in existing)
    if isinstance(existing, str) and existing:
        try:
            parsed = json.loads(existing)
        except json.JSONDecodeError:
            return ()
        if isinstance(parsed, list):
            return tuple(str(option) for option in parsed)
    return ()


@dataclass(frozen=True)
class Field:
    """Case-scoped data slot referenced (never copied) by steps and views."""

    id: int
    name: str
    label: str
    type: str
    primary: bool = False
    required: bool = False
    options: tuple[str, ...] = ()
    order: int = 0
    sample_value: Any = None
    description: str = ""
    case_id: int | None = None

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "label": self.label,
            "type": self.type,
            "primary": self.primary,
            "required": self.required,
            "options": list(self.options),
            "order": self.order,
            "sampleValue": self.sample_value,
            "description": self.description,
            "caseid": self.case_id,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Field:
        try:
            field_id = int(row["id"])
        except (KeyError, TypeError, ValueError) as err:
            raise InvalidModelError(f"Field row without id: {row!r}") from err
        case_id = row.get("caseid", row.get("caseID"))
        return cls(
            id=field_id,
            name=str(row.get("name", "")),
            label=str(row.get("label") or row.get("name", "")),
            type=str(row.get("type", "Text")),
            primary=bool(row.get("primary", False)),
            required=bool(row.get("required", False)),
            options=resolve_options(None, row.get("options")),
            order=int(row.get("order") or 0),
            sample_value=row.get("sampleValue"),
            description=str(row.get("description") or ""),
            case_id=int(case_id) if case_id is not None else None,
        )


# =============================================================================
# VIEWS
# =============================================================================


@dataclass(frozen=True)
class ViewLayout:
    type: str = "form"
    columns: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "columns": self.columns}


@dataclass(frozen=True)
class ViewModel:
    """Ordered field list and layout of a view."""

    fields: tuple[FieldReference, ...] = ()
    layout: ViewLayout = field(default_factory=ViewLayout)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fields": [ref.to_dict() for ref in self.fields],
            "layout": self.layout.to_dict(),
        }

    @classmethod
    def from_raw(cls, raw: Any) -> ViewModel:
        """
        Normalize the stored view model.

        Older rows keep the model as a JSON string, newer ones as an object.
        This is the single place where both are accepted.
        """
        if isinstance(raw, str):
            try:
                raw = json.loads(raw) if raw.strip() else {}
            except json.JSONDecodeError:
                raw = {}
        if not isinstance(raw, Mapping):
            return cls()
        layout_raw = raw.get("layout")
        layout = ViewLayout()
        if isinstance(layout_raw, Mapping):
            layout = ViewLayout(
                type=str(layout_raw.get("type", "form")),
                columns=int(layout_raw.get("columns", 1)),
            )
        return cls(fields=_references_from(raw.get("fields")), layout=layout)


@dataclass(frozen=True)
class View:
    """Form definition backing a "Collect information" step."""

    id: int
    name: str
    case_id: int | None
    model: ViewModel = field(default_factory=ViewModel)

    def field_ids(self) -> tuple[int, ...]:
        return tuple(ref.field_id for ref in self.model.fields)

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "caseid": self.case_id,
            "model": self.model.to_dict(),
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> View:
        try:
            view_id = int(row["id"])
        except (KeyError, TypeError, ValueError) as err:
            raise InvalidModelError(f"View row without id: {row!r}") from err
        case_id = row.get("caseid", row.get("caseID"))
        return cls(
            id=view_id,
            name=str(row.get("name") or ""),
            case_id=int(case_id) if case_id is not None else None,
            model=ViewModel.from_raw(row.get("model")),
        )


# =============================================================================
# CASE RECORD AND CHECKPOINTS
# =============================================================================


@dataclass(frozen=True)
class CaseRecord:
    """Persisted case row; ``model`` is the raw (unvalidated) workflow mapping."""

    id: int
    name: str
    description: str
    model: Mapping[str, Any]

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> CaseRecord:
        model = row.get("model")
        if isinstance(model, str):
            try:
                model = json.loads(model) if model.strip() else {}
            except json.JSONDecodeError as err:
                raise InvalidModelError(f"Case model is not valid JSON: {err}") from err
        if model is None:
            model = {}
        if not isinstance(model, Mapping):
            raise InvalidModelError(f"Case model must be an object, got {type(model).__name__}")
        try:
            case_id = int(row["id"])
        except (KeyError, TypeError, ValueError) as err:
            raise InvalidModelError(f"Case row without id: {row!r}") from err
        return cls(
            id=case_id,
            name=str(row.get("name") or ""),
            description=str(row.get("description") or ""),
            model=model,
        )


@dataclass(frozen=True)
class Checkpoint:
    """Named, timestamped snapshot of the whole workflow model."""

    id: int
    timestamp: str  # ISO 8601
    description: str
    model: WorkflowModel
