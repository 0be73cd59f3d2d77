"""Async client for the NocoDB v2 REST API.

Every call goes through :meth:`NocoDBClient._request`, which is the only place
httpx errors are translated into :class:`~nocodb_mcp.exceptions.BackendError`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import TracebackType
from typing import TYPE_CHECKING, Any, Literal

import anyio
import httpx

from nocodb_mcp.backend._httpx_utils import create_nocodb_http_client
from nocodb_mcp.exceptions import BackendError, TableNotFound
from nocodb_mcp.utilities.logging import get_logger

if TYPE_CHECKING:
    from nocodb_mcp.settings import Settings

logger = get_logger(__name__)

LINK_TO_ANOTHER_RECORD = "LinkToAnotherRecord"

RelationType = Literal["hm", "bt", "mm"]


class NocoDBClient:
    """Thin async wrapper over the NocoDB data and meta APIs.

    Table names are resolved to table ids against the configured base on every
    call; nothing is cached.
    """

    def __init__(
        self,
        base_url: str,
        api_token: str,
        base_id: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.base_id = base_id
        self._client = create_nocodb_http_client(
            self.base_url,
            api_token,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> NocoDBClient:
        return cls(
            settings.nocodb_url,
            settings.nocodb_api_token,
            settings.nocodb_base_id,
            timeout=settings.backend_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> NocoDBClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        action: str,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        files: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            BackendError: on a non-2xx status (with status code and body) or on
                any transport failure such as a timeout (without status).
        """
        if params is not None:
            params = {key: value for key, value in params.items() if value is not None}
        logger.debug("[%s] %s %s params=%s", action, method, path, params)

        try:
            response = await self._client.request(method, path, params=params or None, json=json, files=files)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            body = _decode_body(e.response)
            detail = _error_detail(body) or e.response.reason_phrase
            logger.warning("[%s] NocoDB returned %s: %s", action, e.response.status_code, detail)
            raise BackendError(
                f"Error {action}: request failed with status code {e.response.status_code}: {detail}",
                status_code=e.response.status_code,
                response_body=body,
            ) from e
        except httpx.HTTPError as e:
            logger.warning("[%s] NocoDB request failed: %r", action, e)
            raise BackendError(f"Error {action}: {str(e) or type(e).__name__}") from e

        logger.debug("[%s] response status %s", action, response.status_code)
        return _decode_body(response)

    async def _list_table_entries(self) -> list[dict[str, Any]]:
        data = await self._request(
            "GET",
            f"/api/v2/meta/bases/{self.base_id}/tables",
            action="listing tables",
        )
        return list((data or {}).get("list") or [])

    async def get_table_id(self, table_name: str) -> str:
        """Resolve a table title to its NocoDB id."""
        for table in await self._list_table_entries():
            if table.get("title") == table_name:
                logger.debug("Resolved table %r to %s", table_name, table["id"])
                return table["id"]
        logger.info("Table %r not found in base %s", table_name, self.base_id)
        raise TableNotFound(table_name)

    # Records

    async def get_records(
        self,
        table_name: str,
        filters: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
        sort: str | None = None,
        fields: str | None = None,
    ) -> dict[str, Any]:
        table_id = await self.get_table_id(table_name)
        output = await self._request(
            "GET",
            f"/api/v2/tables/{table_id}/records",
            action="getting records",
            params={"where": filters, "limit": limit, "offset": offset, "sort": sort, "fields": fields},
        )
        submitted = {
            "tableName": table_name,
            "filters": filters,
            "limit": limit,
            "offset": offset,
            "sort": sort,
            "fields": fields,
        }
        return {"input": {k: v for k, v in submitted.items() if v is not None}, "output": output}

    async def get_record(self, table_name: str, record_id: str | int, fields: str | None = None) -> Any:
        table_id = await self.get_table_id(table_name)
        return await self._request(
            "GET",
            f"/api/v2/tables/{table_id}/records/{record_id}",
            action="getting record",
            params={"fields": fields},
        )

    async def count_records(self, table_name: str, filters: str | None = None, view_id: str | None = None) -> Any:
        table_id = await self.get_table_id(table_name)
        return await self._request(
            "GET",
            f"/api/v2/tables/{table_id}/records/count",
            action="counting records",
            params={"where": filters, "viewId": view_id},
        )

    async def post_records(self, table_name: str, data: dict[str, Any] | list[dict[str, Any]]) -> dict[str, Any]:
        table_id = await self.get_table_id(table_name)
        output = await self._request(
            "POST",
            f"/api/v2/tables/{table_id}/records",
            action="creating records",
            json=data,
        )
        return {"input": data, "output": output}

    async def patch_records(self, table_name: str, row_id: int, data: dict[str, Any]) -> dict[str, Any]:
        table_id = await self.get_table_id(table_name)
        output = await self._request(
            "PATCH",
            f"/api/v2/tables/{table_id}/records",
            action="updating records",
            json=[{**data, "Id": row_id}],
        )
        return {"input": data, "output": output}

    async def delete_records(self, table_name: str, row_id: int) -> Any:
        table_id = await self.get_table_id(table_name)
        return await self._request(
            "DELETE",
            f"/api/v2/tables/{table_id}/records",
            action="deleting records",
            json={"Id": row_id},
        )

    # Links

    async def get_linked_records(
        self,
        table_name: str,
        link_field_id: str,
        record_id: str | int,
        *,
        fields: str | None = None,
        sort: str | None = None,
        filters: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Any:
        table_id = await self.get_table_id(table_name)
        return await self._request(
            "GET",
            f"/api/v2/tables/{table_id}/links/{link_field_id}/records/{record_id}",
            action="getting linked records",
            params={"fields": fields, "sort": sort, "where": filters, "limit": limit, "offset": offset},
        )

    async def link_records(
        self,
        table_name: str,
        link_field_id: str,
        record_id: str | int,
        links: Sequence[Mapping[str, Any]],
    ) -> Any:
        table_id = await self.get_table_id(table_name)
        return await self._request(
            "POST",
            f"/api/v2/tables/{table_id}/links/{link_field_id}/records/{record_id}",
            action="linking records",
            json=[dict(link) for link in links],
        )

    async def unlink_records(
        self,
        table_name: str,
        link_field_id: str,
        record_id: str | int,
        links: Sequence[Mapping[str, Any]],
    ) -> Any:
        table_id = await self.get_table_id(table_name)
        return await self._request(
            "DELETE",
            f"/api/v2/tables/{table_id}/links/{link_field_id}/records/{record_id}",
            action="unlinking records",
            json=[dict(link) for link in links],
        )

    # Attachments

    async def upload_attachment(self, file_path: str, storage_path: str, file_name: str, mime_type: str) -> Any:
        try:
            content = await anyio.Path(file_path).read_bytes()
        except OSError as e:
            raise BackendError(f"Failed to read file from path: {file_path}. Error: {e}") from e
        logger.debug("Read %d bytes from %s", len(content), file_path)

        return await self._request(
            "POST",
            "/api/v2/storage/upload",
            action="uploading attachment",
            params={"path": storage_path},
            files={"file": (file_name, content, mime_type)},
        )

    # Meta

    async def list_tables(self) -> list[str]:
        return [table["title"] for table in await self._list_table_entries()]

    async def get_table_metadata(self, table_name: str) -> Any:
        table_id = await self.get_table_id(table_name)
        return await self._request("GET", f"/api/v2/meta/tables/{table_id}", action="getting table metadata")

    async def add_column(
        self,
        table_name: str,
        column_name: str,
        column_type: str,
        parent_table_name: str | None = None,
        relation_type: RelationType | None = None,
    ) -> Any:
        """Add a column; LinkToAnotherRecord columns need the parent table and relation type."""
        table_id = await self.get_table_id(table_name)

        payload: dict[str, Any]
        if column_type == LINK_TO_ANOTHER_RECORD:
            if not parent_table_name or not relation_type:
                raise ValueError(
                    "For 'LinkToAnotherRecord' column type, 'parentTableName' and 'relationType' parameters are required."
                )
            parent_id = await self.get_table_id(parent_table_name)
            payload = {
                "title": column_name,
                "uidt": column_type,
                "fk_related_model_id": parent_id,
                "fk_child_column_id": None,
                "fk_parent_column_id": None,
                "fk_mm_model_id": parent_id if relation_type == "mm" else None,
                "fk_mm_child_column_id": None,
                "fk_mm_parent_column_id": None,
                "type": relation_type,
            }
        else:
            payload = {"title": column_name, "uidt": column_type}

        return await self._request(
            "POST",
            f"/api/v2/meta/tables/{table_id}/columns",
            action="adding column",
            json=payload,
        )

    async def remove_column(self, column_id: str) -> Any:
        return await self._request("DELETE", f"/api/v2/meta/columns/{column_id}", action="removing column")

    async def create_table(self, table_name: str, columns: Sequence[Mapping[str, Any]]) -> Any:
        """Create a table, prepending an ``Id`` column when none is given."""
        column_defs = [{"title": col["title"], "uidt": col["uidt"]} for col in columns]
        if not any(str(col["title"]).lower() == "id" for col in column_defs):
            column_defs.insert(0, {"title": "Id", "uidt": "ID"})
            logger.debug("Auto-added 'Id' column to %r", table_name)

        return await self._request(
            "POST",
            f"/api/v2/meta/bases/{self.base_id}/tables",
            action="creating table",
            json={"title": table_name, "columns": column_defs},
        )


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_detail(body: Any) -> str | None:
    if isinstance(body, dict):
        for key in ("msg", "message", "error"):
            if isinstance(body.get(key), str):
                return body[key]
        return None
    if isinstance(body, str) and body:
        return body
    return None
