"""Tests for the NocoDB REST client, against an in-process fake NocoDB."""

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from nocodb_mcp.backend.client import NocoDBClient
from nocodb_mcp.exceptions import BackendError, TableNotFound

pytestmark = pytest.mark.anyio

BASE_ID = "p_base"
TABLES = {"list": [{"id": "m_customers", "title": "customers"}, {"id": "m_orders", "title": "orders"}]}


class FakeNocoDB:
    """Records every request and answers from a route table."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {
            ("GET", f"/api/v2/meta/bases/{BASE_ID}/tables"): (200, TABLES),
        }

    def add(self, method: str, path: str, status_code: int, payload: Any) -> None:
        self.routes[(method, path)] = (status_code, payload)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"msg": f"no route for {request.method} {request.url.path}"})
        status_code, payload = route
        return httpx.Response(status_code, json=payload)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def fake() -> FakeNocoDB:
    return FakeNocoDB()


@pytest.fixture
async def client(fake: FakeNocoDB):
    async with NocoDBClient(
        "https://nocodb.test/", "secret-token", BASE_ID, transport=httpx.MockTransport(fake)
    ) as client:
        yield client


def body(request: httpx.Request) -> Any:
    return json.loads(request.content)


async def test_every_request_carries_the_token(client: NocoDBClient, fake: FakeNocoDB):
    await client.list_tables()

    assert fake.last.headers["xc-token"] == "secret-token"
    assert str(fake.last.url) == f"https://nocodb.test/api/v2/meta/bases/{BASE_ID}/tables"


async def test_get_table_id_matches_on_title(client: NocoDBClient):
    assert await client.get_table_id("orders") == "m_orders"


async def test_get_table_id_unknown_table(client: NocoDBClient, fake: FakeNocoDB):
    with pytest.raises(TableNotFound) as excinfo:
        await client.get_table_id("customer")

    assert str(excinfo.value) == "Table 'customer' not found"
    # Only the table listing was requested.
    assert len(fake.requests) == 1


async def test_list_tables_returns_titles(client: NocoDBClient):
    assert await client.list_tables() == ["customers", "orders"]


async def test_get_records_echoes_input_and_passes_output_through(client: NocoDBClient, fake: FakeNocoDB):
    page = {"list": [{"Id": 1, "name": "Ada"}], "pageInfo": {"totalRows": 1}}
    fake.add("GET", "/api/v2/tables/m_customers/records", 200, page)

    result = await client.get_records("customers", filters="(name,eq,Ada)", limit=10, sort="-name")

    assert result == {
        "input": {"tableName": "customers", "filters": "(name,eq,Ada)", "limit": 10, "sort": "-name"},
        "output": page,
    }
    params = fake.last.url.params
    assert params["where"] == "(name,eq,Ada)"
    assert params["limit"] == "10"
    assert params["sort"] == "-name"
    assert "offset" not in params
    assert "fields" not in params


async def test_get_record_and_count(client: NocoDBClient, fake: FakeNocoDB):
    fake.add("GET", "/api/v2/tables/m_orders/records/7", 200, {"Id": 7})
    fake.add("GET", "/api/v2/tables/m_orders/records/count", 200, {"count": 3})

    assert await client.get_record("orders", 7, fields="Id") == {"Id": 7}
    assert fake.last.url.params["fields"] == "Id"

    assert await client.count_records("orders", filters="(status,eq,open)", view_id="vw_1") == {"count": 3}
    assert fake.last.url.params["where"] == "(status,eq,open)"
    assert fake.last.url.params["viewId"] == "vw_1"


async def test_post_records(client: NocoDBClient, fake: FakeNocoDB):
    fake.add("POST", "/api/v2/tables/m_orders/records", 200, [{"Id": 11}])
    data = [{"total": 10}, {"total": 20}]

    result = await client.post_records("orders", data)

    assert result == {"input": data, "output": [{"Id": 11}]}
    assert body(fake.last) == data


async def test_patch_records_sends_id_in_a_list(client: NocoDBClient, fake: FakeNocoDB):
    fake.add("PATCH", "/api/v2/tables/m_orders/records", 200, [{"Id": 5}])

    result = await client.patch_records("orders", 5, {"status": "done"})

    assert body(fake.last) == [{"status": "done", "Id": 5}]
    assert result == {"input": {"status": "done"}, "output": [{"Id": 5}]}


async def test_delete_records_sends_id_in_the_body(client: NocoDBClient, fake: FakeNocoDB):
    fake.add("DELETE", "/api/v2/tables/m_orders/records", 200, {"Id": 5})

    assert await client.delete_records("orders", 5) == {"Id": 5}
    assert fake.last.method == "DELETE"
    assert body(fake.last) == {"Id": 5}


async def test_link_and_unlink(client: NocoDBClient, fake: FakeNocoDB):
    path = "/api/v2/tables/m_orders/links/cl_items/records/3"
    fake.add("POST", path, 200, True)
    fake.add("DELETE", path, 200, True)
    fake.add("GET", path, 200, {"list": [{"id": 25}]})

    assert await client.link_records("orders", "cl_items", 3, [{"id": 25}, {"id": 30}]) is True
    assert body(fake.last) == [{"id": 25}, {"id": 30}]

    assert await client.unlink_records("orders", "cl_items", "3", [{"id": 25}]) is True
    assert fake.last.method == "DELETE"
    assert body(fake.last) == [{"id": 25}]

    assert await client.get_linked_records("orders", "cl_items", 3, limit=5, filters="(id,gt,1)") == {
        "list": [{"id": 25}]
    }
    assert fake.last.url.params["limit"] == "5"
    assert fake.last.url.params["where"] == "(id,gt,1)"


async def test_http_error_becomes_backend_error(client: NocoDBClient, fake: FakeNocoDB):
    fake.add(
        "POST",
        "/api/v2/tables/m_orders/records",
        400,
        {"msg": "Field 'totl' not found"},
    )

    with pytest.raises(BackendError) as excinfo:
        await client.post_records("orders", {"totl": 1})

    error = excinfo.value
    assert error.status_code == 400
    assert error.response_body == {"msg": "Field 'totl' not found"}
    assert "Field 'totl' not found" in str(error)
    assert "400" in str(error)


async def test_transport_error_becomes_backend_error_without_status():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    async with NocoDBClient("https://nocodb.test", "t", BASE_ID, transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(BackendError) as excinfo:
            await client.list_tables()

    assert excinfo.value.status_code is None
    assert "timed out" in str(excinfo.value)


async def test_upload_attachment(client: NocoDBClient, fake: FakeNocoDB, tmp_path: Path):
    report = tmp_path / "report.pdf"
    report.write_bytes(b"%PDF-1.4 fake")
    fake.add("POST", "/api/v2/storage/upload", 200, [{"path": "reports/Q1.pdf"}])

    result = await client.upload_attachment(str(report), "reports/2025", "Q1.pdf", "application/pdf")

    assert result == [{"path": "reports/Q1.pdf"}]
    request = fake.last
    assert request.url.params["path"] == "reports/2025"
    assert request.headers["content-type"].startswith("multipart/form-data")
    assert b'filename="Q1.pdf"' in request.content
    assert b"%PDF-1.4 fake" in request.content


async def test_upload_attachment_missing_file(client: NocoDBClient, fake: FakeNocoDB, tmp_path: Path):
    missing = tmp_path / "nope.txt"

    with pytest.raises(BackendError, match="Failed to read file from path"):
        await client.upload_attachment(str(missing), "x", "nope.txt", "text/plain")

    assert fake.requests == []


async def test_get_table_metadata_and_remove_column(client: NocoDBClient, fake: FakeNocoDB):
    fake.add("GET", "/api/v2/meta/tables/m_orders", 200, {"id": "m_orders", "columns": []})
    fake.add("DELETE", "/api/v2/meta/columns/cl_old", 200, {})

    assert await client.get_table_metadata("orders") == {"id": "m_orders", "columns": []}
    assert await client.remove_column("cl_old") == {}
    assert fake.last.method == "DELETE"


async def test_add_plain_column(client: NocoDBClient, fake: FakeNocoDB):
    fake.add("POST", "/api/v2/meta/tables/m_orders/columns", 200, {"id": "cl_new"})

    await client.add_column("orders", "StockCount", "Number")

    assert body(fake.last) == {"title": "StockCount", "uidt": "Number"}


async def test_add_many_to_many_link_column(client: NocoDBClient, fake: FakeNocoDB):
    fake.add("POST", "/api/v2/meta/tables/m_orders/columns", 200, {"id": "cl_link"})

    await client.add_column("orders", "Customers", "LinkToAnotherRecord", "customers", "mm")

    assert body(fake.last) == {
        "title": "Customers",
        "uidt": "LinkToAnotherRecord",
        "fk_related_model_id": "m_customers",
        "fk_child_column_id": None,
        "fk_parent_column_id": None,
        "fk_mm_model_id": "m_customers",
        "fk_mm_child_column_id": None,
        "fk_mm_parent_column_id": None,
        "type": "mm",
    }


async def test_add_link_column_requires_options(client: NocoDBClient):
    with pytest.raises(ValueError, match="parentTableName"):
        await client.add_column("orders", "Customers", "LinkToAnotherRecord")


async def test_create_table_prepends_id_column(client: NocoDBClient, fake: FakeNocoDB):
    fake.add("POST", f"/api/v2/meta/bases/{BASE_ID}/tables", 200, {"id": "m_new"})

    await client.create_table("employees", [{"title": "Name", "uidt": "SingleLineText"}])

    assert body(fake.last) == {
        "title": "employees",
        "columns": [{"title": "Id", "uidt": "ID"}, {"title": "Name", "uidt": "SingleLineText"}],
    }


async def test_create_table_keeps_existing_id_column(client: NocoDBClient, fake: FakeNocoDB):
    fake.add("POST", f"/api/v2/meta/bases/{BASE_ID}/tables", 200, {"id": "m_new"})

    await client.create_table("employees", [{"title": "ID", "uidt": "ID"}, {"title": "Name", "uidt": "SingleLineText"}])

    assert [col["title"] for col in body(fake.last)["columns"]] == ["ID", "Name"]
