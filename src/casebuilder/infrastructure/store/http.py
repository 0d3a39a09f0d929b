"""
HTTP adapter for the persistence endpoint.

One generic route serves every table:
``{base_url}{database_path}?table=<T>&id=<id>&caseid=<cid>``. Writes send
``{"table": T, "data": row}``; responses wrap rows as ``{"data": ...}``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from casebuilder.domain.exceptions import InvalidModelError, StoreError
from casebuilder.domain.interfaces import RemoteStoreInterface
from casebuilder.domain.models import CaseRecord, Field, View

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_PATH = "/api/database"


class HttpRemoteStore(RemoteStoreInterface):
    """Remote store backed by ``httpx.AsyncClient``. Never retries."""

    def __init__(
        self,
        base_url: str,
        database_path: str = DEFAULT_DATABASE_PATH,
        *,
        timeout: float = 30.0,
        cases_table: str = "Cases",
        fields_table: str = "Fields",
        views_table: str = "Views",
        client: httpx.AsyncClient | None = None,
    ):
        """
        Args:
            base_url: Scheme and host of the editor backend
            database_path: Path of the generic table route
            timeout: Per-request timeout in seconds
            client: Preconfigured client (tests pass one with a MockTransport)
        """
        self._url = base_url.rstrip("/") + database_path
        self._cases = cases_table
        self._fields = fields_table
        self._views = views_table
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpRemoteStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Mapping[str, Any] | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> Any:
        query = {"table": table, **{k: v for k, v in (params or {}).items() if v is not None}}
        body = {"table": table, "data": dict(data)} if data is not None else None
        try:
            response = await self._client.request(method, self._url, params=query, json=body)
        except httpx.HTTPError as err:
            logger.error("%s %s failed: %s", method, self._url, err)
            raise StoreError(
                f"{method} {table} failed: {err}", method=method, url=self._url
            ) from err

        if response.status_code >= 400:
            logger.error(
                "%s %s -> %d (params=%s, body=%s): %s",
                method,
                response.request.url,
                response.status_code,
                query,
                body,
                response.text,
            )
            raise StoreError(
                f"{method} {table} failed",
                status=response.status_code,
                body=response.text,
                method=method,
                url=str(response.request.url),
            )

        if not response.content:
            return None
        try:
            payload = response.json()
        except ValueError as err:
            raise StoreError(
                f"{method} {table} returned a non-JSON body",
                status=response.status_code,
                body=response.text,
                method=method,
                url=str(response.request.url),
            ) from err
        if isinstance(payload, Mapping) and "data" in payload:
            return payload["data"]
        return payload

    @staticmethod
    def _rows(payload: Any) -> list[Mapping[str, Any]]:
        if payload is None:
            return []
        if isinstance(payload, Mapping):
            return [payload]
        if isinstance(payload, list):
            return [row for row in payload if isinstance(row, Mapping)]
        raise InvalidModelError(f"Expected a row list, got {type(payload).__name__}")

    # =========================================================================
    # CASES
    # =========================================================================

    async def get_case(self, case_id: int) -> CaseRecord:
        rows = self._rows(await self._request("GET", self._cases, params={"id": case_id}))
        if not rows:
            raise StoreError(f"Case {case_id} not found", status=404, method="GET", url=self._url)
        return CaseRecord.from_row(rows[0])

    async def put_case(
        self, case_id: int, name: str, description: str, model: Mapping[str, Any]
    ) -> CaseRecord | None:
        payload = await self._request(
            "PUT",
            self._cases,
            params={"id": case_id},
            data={"name": name, "description": description, "model": dict(model)},
        )
        rows = self._rows(payload)
        return CaseRecord.from_row(rows[0]) if rows and "id" in rows[0] else None

    # =========================================================================
    # FIELDS
    # =========================================================================

    async def list_fields(self, case_id: int, name: str | None = None) -> list[Field]:
        payload = await self._request(
            "GET", self._fields, params={"caseid": case_id, "name": name}
        )
        fields = [Field.from_row(row) for row in self._rows(payload)]
        if name is not None:
            fields = [f for f in fields if f.name == name]
        return fields

    async def create_field(self, data: Mapping[str, Any]) -> Field:
        rows = self._rows(await self._request("POST", self._fields, data=data))
        if not rows:
            raise StoreError("Field create returned no row", method="POST", url=self._url)
        return Field.from_row(rows[0])

    async def update_field(self, field_id: int, data: Mapping[str, Any]) -> Field | None:
        payload = await self._request("PUT", self._fields, params={"id": field_id}, data=data)
        rows = self._rows(payload)
        return Field.from_row(rows[0]) if rows and "id" in rows[0] else None

    async def delete_field(self, field_id: int) -> None:
        await self._request("DELETE", self._fields, params={"id": field_id})

    # =========================================================================
    # VIEWS
    # =========================================================================

    async def list_views(self, case_id: int) -> list[View]:
        payload = await self._request("GET", self._views, params={"caseid": case_id})
        return [View.from_row(row) for row in self._rows(payload)]

    async def create_view(self, data: Mapping[str, Any]) -> View:
        rows = self._rows(await self._request("POST", self._views, data=data))
        if not rows:
            raise StoreError("View create returned no row", method="POST", url=self._url)
        return View.from_row(rows[0])

    async def update_view(self, view_id: int, data: Mapping[str, Any]) -> View | None:
        payload = await self._request("PUT", self._views, params={"id": view_id}, data=data)
        rows = self._rows(payload)
        return View.from_row(rows[0]) if rows and "id" in rows[0] else None

    async def delete_view(self, view_id: int) -> None:
        await self._request("DELETE", self._views, params={"id": view_id})
