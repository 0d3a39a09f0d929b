"""
In-memory implementation of the remote store.

Useful for testing and offline editing. Mirrors the server's behaviour:
assigns ids, rejects duplicate field names per case, and strips a deleted
field from every view model.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from casebuilder.domain.exceptions import StoreError
from casebuilder.domain.interfaces import RemoteStoreInterface
from casebuilder.domain.models import CaseRecord, Field, View, ViewModel


@dataclass
class _Failure:
    status: int
    body: str
    entity_id: int | None
    remaining: int | None


class InMemoryRemoteStore(RemoteStoreInterface):
    """Dictionary-backed store with per-(method, table) failure injection."""

    def __init__(
        self,
        cases_table: str = "Cases",
        fields_table: str = "Fields",
        views_table: str = "Views",
    ) -> None:
        self.cases_table = cases_table
        self.fields_table = fields_table
        self.views_table = views_table
        self._tables: dict[str, dict[int, dict[str, Any]]] = {
            cases_table: {},
            fields_table: {},
            views_table: {},
        }
        self._next_id = 1
        self._failures: dict[tuple[str, str], list[_Failure]] = {}
        self.calls: list[tuple[str, str, int | None]] = []

    # =========================================================================
    # TEST HELPERS
    # =========================================================================

    def seed_case(
        self,
        name: str,
        model: Mapping[str, Any] | str | None = None,
        description: str = "",
        case_id: int | None = None,
    ) -> int:
        """Insert a case row directly; ``model`` may be a JSON string."""
        row_id = case_id if case_id is not None else self._allocate()
        self._next_id = max(self._next_id, row_id + 1)
        self._tables[self.cases_table][row_id] = {
            "id": row_id,
            "name": name,
            "description": description,
            "model": copy.deepcopy(model) if model is not None else {"stages": []},
        }
        return row_id

    def inject_failure(
        self,
        method: str,
        table: str,
        status: int = 500,
        body: str = "Internal server error",
        *,
        entity_id: int | None = None,
        times: int | None = None,
    ) -> None:
        """
        Make matching requests fail.

        Args:
            method: "GET", "POST", "PUT" or "DELETE"
            table: Table name, e.g. "Views"
            entity_id: Only fail requests for this row id
            times: Fail this many times, then succeed (None = always)
        """
        key = (method.upper(), table)
        self._failures.setdefault(key, []).append(_Failure(status, body, entity_id, times))

    def clear_failures(self) -> None:
        self._failures.clear()

    def raw_row(self, table: str, row_id: int) -> dict[str, Any] | None:
        row = self._tables[table].get(row_id)
        return copy.deepcopy(row) if row is not None else None

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _allocate(self) -> int:
        row_id = self._next_id
        self._next_id += 1
        return row_id

    def _check(self, method: str, table: str, entity_id: int | None = None) -> None:
        self.calls.append((method, table, entity_id))
        for failure in self._failures.get((method, table), []):
            if failure.entity_id is not None and failure.entity_id != entity_id:
                continue
            if failure.remaining is not None:
                if failure.remaining <= 0:
                    continue
                failure.remaining -= 1
            raise StoreError(
                f"{method} {table} failed",
                status=failure.status,
                body=failure.body,
                method=method,
                url=f"memory://{table}/{entity_id if entity_id is not None else ''}",
            )

    def _get_row(self, method: str, table: str, row_id: int) -> dict[str, Any]:
        row = self._tables[table].get(row_id)
        if row is None:
            raise StoreError(
                f"{method} {table} failed",
                status=404,
                body=f"{table} row {row_id} not found",
                method=method,
                url=f"memory://{table}/{row_id}",
            )
        return row

    # =========================================================================
    # CASES
    # =========================================================================

    async def get_case(self, case_id: int) -> CaseRecord:
        self._check("GET", self.cases_table, case_id)
        return CaseRecord.from_row(copy.deepcopy(self._get_row("GET", self.cases_table, case_id)))

    async def put_case(
        self, case_id: int, name: str, description: str, model: Mapping[str, Any]
    ) -> CaseRecord | None:
        self._check("PUT", self.cases_table, case_id)
        row = self._get_row("PUT", self.cases_table, case_id)
        row.update(name=name, description=description, model=copy.deepcopy(dict(model)))
        return CaseRecord.from_row(copy.deepcopy(row))

    # =========================================================================
    # FIELDS
    # =========================================================================

    async def list_fields(self, case_id: int, name: str | None = None) -> list[Field]:
        self._check("GET", self.fields_table)
        return [
            Field.from_row(copy.deepcopy(row))
            for row in self._tables[self.fields_table].values()
            if row.get("caseid") == case_id and (name is None or row.get("name") == name)
        ]

    async def create_field(self, data: Mapping[str, Any]) -> Field:
        self._check("POST", self.fields_table)
        for row in self._tables[self.fields_table].values():
            if row.get("name") == data.get("name") and row.get("caseid") == data.get("caseid"):
                raise StoreError(
                    f"POST {self.fields_table} failed",
                    status=409,
                    body=f'A field named "{data.get("name")}" already exists in this case',
                    method="POST",
                    url=f"memory://{self.fields_table}/",
                )
        row_id = self._allocate()
        row = {**copy.deepcopy(dict(data)), "id": row_id}
        self._tables[self.fields_table][row_id] = row
        return Field.from_row(copy.deepcopy(row))

    async def update_field(self, field_id: int, data: Mapping[str, Any]) -> Field | None:
        self._check("PUT", self.fields_table, field_id)
        row = self._get_row("PUT", self.fields_table, field_id)
        row.update(copy.deepcopy(dict(data)))
        row["id"] = field_id
        return Field.from_row(copy.deepcopy(row))

    async def delete_field(self, field_id: int) -> None:
        self._check("DELETE", self.fields_table, field_id)
        self._get_row("DELETE", self.fields_table, field_id)
        del self._tables[self.fields_table][field_id]
        for row in self._tables[self.views_table].values():
            model = ViewModel.from_raw(row.get("model"))
            kept = tuple(ref for ref in model.fields if ref.field_id != field_id)
            if len(kept) != len(model.fields):
                row["model"] = ViewModel(fields=kept, layout=model.layout).to_dict()

    # =========================================================================
    # VIEWS
    # =========================================================================

    async def list_views(self, case_id: int) -> list[View]:
        self._check("GET", self.views_table)
        return [
            View.from_row(copy.deepcopy(row))
            for row in self._tables[self.views_table].values()
            if row.get("caseid") == case_id
        ]

    async def create_view(self, data: Mapping[str, Any]) -> View:
        self._check("POST", self.views_table)
        row_id = self._allocate()
        row = {**copy.deepcopy(dict(data)), "id": row_id}
        self._tables[self.views_table][row_id] = row
        return View.from_row(copy.deepcopy(row))

    async def update_view(self, view_id: int, data: Mapping[str, Any]) -> View | None:
        self._check("PUT", self.views_table, view_id)
        row = self._get_row("PUT", self.views_table, view_id)
        row.update(copy.deepcopy(dict(data)))
        row["id"] = view_id
        return View.from_row(copy.deepcopy(row))

    async def delete_view(self, view_id: int) -> None:
        self._check("DELETE", self.views_table, view_id)
        self._get_row("DELETE", self.views_table, view_id)
        del self._tables[self.views_table][view_id]
