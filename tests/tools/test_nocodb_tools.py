import json
from typing import Any

import httpx
import pytest

from nocodb_mcp.backend.client import NocoDBClient
from nocodb_mcp.exceptions import InvalidParams
from nocodb_mcp.tools import ToolManager
from nocodb_mcp.tools.nocodb import register_nocodb_tools

pytestmark = pytest.mark.anyio

BASE_ID = "p_base"

TOOL_NAMES = [
    "nocodb-get-records",
    "nocodb-post-records",
    "nocodb-patch-records",
    "nocodb-delete-records",
    "nocodb-get-record",
    "nocodb-count-records",
    "nocodb-get-linked-records",
    "nocodb-link-records",
    "nocodb-unlink-records",
    "nocodb-upload-attachment",
    "nocodb-get-list-tables",
    "nocodb-get-table-metadata",
    "nocodb-alter-table-add-column",
    "nocodb-alter-table-remove-column",
    "nocodb-create-table",
]


@pytest.fixture
def requests() -> list[httpx.Request]:
    return []


@pytest.fixture
async def manager(requests: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        path = request.url.path
        if path == f"/api/v2/meta/bases/{BASE_ID}/tables":
            return httpx.Response(200, json={"list": [{"id": "m_orders", "title": "orders"}]})
        if path == "/api/v2/tables/m_orders/records" and request.method == "GET":
            return httpx.Response(200, json={"list": [{"Id": 1}], "pageInfo": {"totalRows": 1}})
        if path == "/api/v2/tables/m_orders/links/cl_items/records/3":
            return httpx.Response(200, json=True)
        return httpx.Response(404, json={"msg": "not found"})

    async with NocoDBClient("https://nocodb.test", "token", BASE_ID, transport=httpx.MockTransport(handler)) as client:
        yield register_nocodb_tools(ToolManager(), client)


def result_payload(result: Any) -> Any:
    return json.loads(result.content[0].text)


class TestCatalog:
    async def test_registers_every_tool(self, manager: ToolManager):
        assert [tool.name for tool in manager.list_tools()] == TOOL_NAMES

    async def test_schemas_use_camel_case_names(self, manager: ToolManager):
        get_records = manager.get_tool("nocodb-get-records")
        assert get_records is not None
        schema = get_records.parameters
        assert set(schema["properties"]) == {"tableName", "filters", "limit", "offset", "sort", "fields"}
        assert schema["required"] == ["tableName"]

        link_records = manager.get_tool("nocodb-link-records")
        assert link_records is not None
        assert set(link_records.parameters["required"]) == {"tableName", "linkFieldId", "recordId", "linksToAdd"}

        upload = manager.get_tool("nocodb-upload-attachment")
        assert upload is not None
        assert set(upload.parameters["properties"]) == {"filePathOnServer", "storagePath", "fileName", "mimeType"}

    async def test_get_records_description_carries_filter_rules(self, manager: ToolManager):
        tool = manager.get_tool("nocodb-get-records")
        assert tool is not None
        assert "Filter Rules:" in tool.description
        assert "(colName,eq,colValue)" in tool.description

    async def test_list_tables_takes_no_arguments(self, manager: ToolManager):
        tool = manager.get_tool("nocodb-get-list-tables")
        assert tool is not None
        assert tool.parameters.get("properties", {}) == {}


class TestInvocation:
    async def test_get_records_echoes_input(self, manager: ToolManager, requests: list[httpx.Request]):
        result = await manager.invoke("nocodb-get-records", {"tableName": "orders", "limit": 10})

        assert result.is_error is False
        assert result_payload(result) == {
            "input": {"tableName": "orders", "limit": 10},
            "output": {"list": [{"Id": 1}], "pageInfo": {"totalRows": 1}},
        }
        assert requests[-1].url.params["limit"] == "10"

    async def test_missing_table_is_error_content(self, manager: ToolManager, requests: list[httpx.Request]):
        result = await manager.invoke("nocodb-get-records", {"tableName": "customers", "limit": 10})

        assert result.is_error is True
        assert result_payload(result) == {"error": "Table 'customers' not found"}
        assert len(requests) == 1

    async def test_limit_must_be_positive(self, manager: ToolManager, requests: list[httpx.Request]):
        with pytest.raises(InvalidParams):
            await manager.invoke("nocodb-get-records", {"tableName": "orders", "limit": 0})
        assert requests == []

    async def test_link_records_accepts_json_encoded_list(
        self, manager: ToolManager, requests: list[httpx.Request]
    ):
        result = await manager.invoke(
            "nocodb-link-records",
            {"tableName": "orders", "linkFieldId": "cl_items", "recordId": 3, "linksToAdd": '[{"id": 25}]'},
        )

        assert result.is_error is False
        assert result_payload(result) is True
        assert json.loads(requests[-1].content) == [{"id": 25}]

    async def test_link_records_rejects_empty_list(self, manager: ToolManager):
        with pytest.raises(InvalidParams):
            await manager.invoke(
                "nocodb-link-records",
                {"tableName": "orders", "linkFieldId": "cl_items", "recordId": 3, "linksToAdd": []},
            )

    async def test_link_column_requires_parent_and_relation(
        self, manager: ToolManager, requests: list[httpx.Request]
    ):
        with pytest.raises(InvalidParams, match="parentTableName"):
            await manager.invoke(
                "nocodb-alter-table-add-column",
                {"tableName": "orders", "columnName": "Customer", "columnType": "LinkToAnotherRecord"},
            )
        assert requests == []

    async def test_unknown_relation_type_is_rejected(self, manager: ToolManager):
        with pytest.raises(InvalidParams):
            await manager.invoke(
                "nocodb-alter-table-add-column",
                {
                    "tableName": "orders",
                    "columnName": "Customer",
                    "columnType": "LinkToAnotherRecord",
                    "parentTableName": "customers",
                    "relationType": "oo",
                },
            )
