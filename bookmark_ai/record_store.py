from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional, Protocol

import httpx

from .utils import iso_now

logger = logging.getLogger(__name__)

TRANSIENT_STATUSES = {502, 503, 504}


class RecordStoreError(Exception):
    """Raised when data store operations fail."""


class RecordStoreConnectionError(RecordStoreError):
    """Raised when the data store is unreachable (network/timeout)."""


class RecordStoreApiError(RecordStoreError):
    """Raised when the data store returns an error response."""


class RecordNotFoundError(RecordStoreError):
    """Raised when a lookup that expects a record finds none."""


class RecordStore(Protocol):
    async def insert(self, table: str, values: Mapping[str, Any]) -> Dict[str, Any]: ...

    async def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]: ...

    async def update(
        self, table: str, filters: Mapping[str, Any], values: Mapping[str, Any]
    ) -> List[Dict[str, Any]]: ...

    async def delete(self, table: str, filters: Mapping[str, Any]) -> int: ...


class InMemoryRecordStore:
    """Process-local store, used in tests and for running without a backend."""

    def __init__(self) -> None:
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {}

    async def insert(self, table: str, values: Mapping[str, Any]) -> Dict[str, Any]:
        now = iso_now()
        record = {"id": str(uuid.uuid4()), "created_at": now, "updated_at": now, **values}
        self._tables.setdefault(table, {})[str(record["id"])] = record
        return copy.deepcopy(record)

    async def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        rows = [r for r in self._tables.get(table, {}).values() if _matches(r, filters or {})]
        if order_by:
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=descending)
            rows = present + missing
        if limit is not None:
            rows = rows[:limit]
        return [copy.deepcopy(r) for r in rows]

    async def update(
        self, table: str, filters: Mapping[str, Any], values: Mapping[str, Any]
    ) -> List[Dict[str, Any]]:
        updated: List[Dict[str, Any]] = []
        for record in self._tables.get(table, {}).values():
            if not _matches(record, filters):
                continue
            record.update(values)
            if "updated_at" not in values:
                record["updated_at"] = iso_now()
            updated.append(copy.deepcopy(record))
        return updated

    async def delete(self, table: str, filters: Mapping[str, Any]) -> int:
        rows = self._tables.get(table, {})
        doomed = [key for key, record in rows.items() if _matches(record, filters)]
        for key in doomed:
            del rows[key]
        return len(doomed)


async def fetch_one(store: RecordStore, table: str, filters: Mapping[str, Any]) -> Dict[str, Any]:
    rows = await store.select(table, filters, limit=1)
    if not rows:
        raise RecordNotFoundError(f"No record in {table} matching {dict(filters)}")
    return rows[0]


def _matches(record: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
    return all(record.get(key) == value for key, value in filters.items())


class SupabaseRecordStore:
    """Record store backed by a Supabase (PostgREST) project."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 20.0,
    ):
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Prefer": "return=representation",
            },
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def insert(self, table: str, values: Mapping[str, Any]) -> Dict[str, Any]:
        response = await self._request("POST", f"/{table}", json=dict(values))
        rows = response.json()
        if not rows:
            raise RecordStoreApiError(f"Insert into {table} returned no rows.")
        return rows[0]

    async def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params = {"select": "*", **_filter_params(filters or {})}
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = str(limit)
        response = await self._request("GET", f"/{table}", params=params)
        return response.json()

    async def update(
        self, table: str, filters: Mapping[str, Any], values: Mapping[str, Any]
    ) -> List[Dict[str, Any]]:
        response = await self._request(
            "PATCH", f"/{table}", params=_filter_params(filters), json=dict(values)
        )
        return response.json()

    async def delete(self, table: str, filters: Mapping[str, Any]) -> int:
        response = await self._request("DELETE", f"/{table}", params=_filter_params(filters))
        return len(response.json())

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        for attempt in range(2):
            try:
                response = await self._client.request(method, path, **kwargs)
                response.raise_for_status()
                return response
            except httpx.RequestError as exc:
                logger.warning("Data store request error %s %s: %s", method, path, exc)
                if attempt == 0:
                    continue
                raise RecordStoreConnectionError(f"Data store request failed: {exc}") from exc
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if status in TRANSIENT_STATUSES and attempt == 0:
                    logger.warning("Data store transient status %s for %s %s; retrying once", status, method, path)
                    continue
                raise RecordStoreApiError(f"Data store request returned error: {exc}") from exc
        raise RecordStoreApiError(f"Data store request failed after retries: {method} {path}")


def _filter_params(filters: Mapping[str, Any]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    for key, value in filters.items():
        if value is None:
            params[key] = "is.null"
        elif isinstance(value, bool):
            params[key] = f"eq.{'true' if value else 'false'}"
        else:
            params[key] = f"eq.{value}"
    return params
