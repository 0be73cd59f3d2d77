"""The NocoDB tool catalog.

Each tool is a thin typed wrapper over one :class:`NocoDBClient` method. The
parameter annotations double as the published input schema, so aliases
(``tableName``, ``rowId`` ...) are the names clients send.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, NonNegativeInt, PositiveInt

from nocodb_mcp.backend.client import LINK_TO_ANOTHER_RECORD, NocoDBClient
from nocodb_mcp.exceptions import InvalidParams
from nocodb_mcp.tools.descriptions import COLUMN_TYPES, FILTER_RULES
from nocodb_mcp.tools.tool_manager import ToolManager
from nocodb_mcp.utilities.logging import get_logger

logger = get_logger(__name__)

TableName = Annotated[str, Field(alias="tableName", description="Name of the NocoDB table.")]
LinkTableName = Annotated[str, Field(alias="tableName", description="Name of the table containing the link field.")]
LinkFieldId = Annotated[
    str,
    Field(
        alias="linkFieldId",
        description="The ID of the LinkToAnotherRecord column (e.g., 'cl_xyz123'). Get this from table metadata.",
    ),
]
Filters = Annotated[str | None, Field(description="Filtering conditions using NocoDB's query language.")]
Limit = Annotated[PositiveInt | None, Field(description="Maximum number of records to return.")]
Offset = Annotated[NonNegativeInt | None, Field(description="Number of records to skip (for pagination).")]


class LinkTarget(BaseModel):
    id: int = Field(description="ID of the record on the other side of the link.")


class ColumnDefinition(BaseModel):
    title: str = Field(description="Name of the column.")
    uidt: str = Field(description="Type of the column (NocoDB UIDT).")


GET_RECORDS_DESCRIPTION = (
    "Nocodb - Get Records. Retrieves a list of records from a table, with options for filtering, "
    "sorting, pagination, and field selection.\n"
    "Hints:\n"
    '1. Get all records (default limit applies): {"tableName": "customers"}\n'
    '2. Filter records: {"tableName": "orders", "filters": "(status,eq,completed)~and(total,gt,100)"}\n'
    '3. Paginate: {"tableName": "products", "limit": 50, "offset": 100}\n'
    '4. Sort: {"tableName": "users", "sort": "-lastLogin,name"}\n'
    '5. Select fields: {"tableName": "tasks", "fields": "id,title,dueDate"}\n'
    f"Filter Rules:\n{FILTER_RULES}"
)


def register_nocodb_tools(manager: ToolManager, client: NocoDBClient) -> ToolManager:
    """Register every NocoDB tool on ``manager``, bound to ``client``."""

    # Records

    async def get_records(
        table_name: TableName,
        filters: Filters = None,
        limit: Limit = None,
        offset: Offset = None,
        sort: Annotated[
            str | None,
            Field(description="Comma-separated list of fields to sort by. Prefix with '-' for descending order."),
        ] = None,
        fields: Annotated[
            str | None, Field(description="Comma-separated list of field names to include in the response.")
        ] = None,
    ) -> dict[str, Any]:
        return await client.get_records(table_name, filters, limit, offset, sort, fields)

    manager.add_tool(get_records, name="nocodb-get-records", description=GET_RECORDS_DESCRIPTION)

    async def post_records(
        table_name: TableName,
        data: Annotated[
            dict[str, Any] | list[dict[str, Any]],
            Field(
                description="An object representing a single record or an array of objects for multiple records. "
                "Keys must match table column names exactly."
            ),
        ],
    ) -> dict[str, Any]:
        """Nocodb - Post Records. Creates one or more new records in a specified table.
        IMPORTANT: Use 'nocodb-get-table-metadata' first to confirm the exact column names (case-sensitive).
        Example:
        {"tableName": "tasks", "data": {"title": "New Task", "priority": "High", "dueDate": "2025-12-31"}}
        """
        return await client.post_records(table_name, data)

    manager.add_tool(post_records, name="nocodb-post-records")

    async def patch_records(
        table_name: TableName,
        row_id: Annotated[PositiveInt, Field(alias="rowId", description="The ID of the record to update.")],
        data: Annotated[
            dict[str, Any],
            Field(description="An object containing the fields to update. Keys must match table column names exactly."),
        ],
    ) -> dict[str, Any]:
        """Nocodb - Patch Records. Updates an existing record in a specified table.
        IMPORTANT: Use 'nocodb-get-table-metadata' first to confirm the exact column names (case-sensitive).
        Example:
        {"tableName": "tasks", "rowId": 5, "data": {"status": "Completed", "completedAt": "2025-04-13"}}
        """
        return await client.patch_records(table_name, row_id, data)

    manager.add_tool(patch_records, name="nocodb-patch-records")

    async def delete_records(
        table_name: TableName,
        row_id: Annotated[PositiveInt, Field(alias="rowId", description="The ID of the record to delete.")],
    ) -> Any:
        """Nocodb - Delete Records. Deletes a record from a specified table.
        Example: {"tableName": "tasks", "rowId": 10}
        """
        return await client.delete_records(table_name, row_id)

    manager.add_tool(delete_records, name="nocodb-delete-records")

    async def get_record(
        table_name: TableName,
        record_id: Annotated[
            str | int, Field(alias="recordId", description="The ID of the specific record to retrieve.")
        ],
        fields: Annotated[str | None, Field(description="Comma-separated list of fields to return.")] = None,
    ) -> Any:
        """Nocodb - Get Record. Retrieves a single specific record by its ID.
        Hints:
        1. Get record by ID: {"tableName": "customers", "recordId": 123}
        2. Select specific fields: {"tableName": "customers", "recordId": 123, "fields": "id,name,email"}
        """
        return await client.get_record(table_name, record_id, fields)

    manager.add_tool(get_record, name="nocodb-get-record")

    async def count_records(
        table_name: TableName,
        filters: Annotated[str | None, Field(description="Filtering conditions (same format as get-records).")] = None,
        view_id: Annotated[
            str | None, Field(alias="viewId", description="Optional view ID to count records within a specific view.")
        ] = None,
    ) -> Any:
        """Nocodb - Count Records. Counts the number of records in a table, optionally applying filters.
        Hints:
        1. Count all: {"tableName": "orders"}
        2. Count with filter: {"tableName": "orders", "filters": "(status,eq,pending)"}
        3. Count in view: {"tableName": "orders", "viewId": "vw_abc123"}
        """
        return await client.count_records(table_name, filters, view_id)

    manager.add_tool(count_records, name="nocodb-count-records")

    # Links

    async def get_linked_records(
        table_name: LinkTableName,
        link_field_id: LinkFieldId,
        record_id: Annotated[
            str | int,
            Field(alias="recordId", description="The ID of the record whose linked records you want to retrieve."),
        ],
        fields: Annotated[str | None, Field(description="Fields to return for the linked records.")] = None,
        sort: Annotated[str | None, Field(description="Sorting for the linked records.")] = None,
        filters: Annotated[str | None, Field(description="Filtering for the linked records.")] = None,
        limit: Limit = None,
        offset: Offset = None,
    ) -> Any:
        """Nocodb - Get Linked Records. Retrieves records linked to a specific record via a LinkToAnotherRecord field.
        Hints:
        1. Get all linked: {"tableName": "orders", "linkFieldId": "cl_xyz123", "recordId": 1}
        2. With options: {"tableName": "orders", "linkFieldId": "cl_xyz123", "recordId": 1, "fields": "id,product_name", "limit": 10}
        """
        return await client.get_linked_records(
            table_name,
            link_field_id,
            record_id,
            fields=fields,
            sort=sort,
            filters=filters,
            limit=limit,
            offset=offset,
        )

    manager.add_tool(get_linked_records, name="nocodb-get-linked-records")

    async def link_records(
        table_name: LinkTableName,
        link_field_id: LinkFieldId,
        record_id: Annotated[str | int, Field(alias="recordId", description="The ID of the record to link from.")],
        links_to_add: Annotated[
            list[LinkTarget],
            Field(
                alias="linksToAdd",
                min_length=1,
                description="Array of objects, each containing the 'id' (lowercase) of a record to link to. "
                "E.g., [{'id': 5}, {'id': 6}]",
            ),
        ],
    ) -> Any:
        """Nocodb - Link Records. Creates links between a record and one or more other records.
        Example:
        {"tableName": "projects", "linkFieldId": "cl_abc456", "recordId": 10, "linksToAdd": [{"id": 25}, {"id": 30}]}
        """
        return await client.link_records(
            table_name, link_field_id, record_id, [link.model_dump() for link in links_to_add]
        )

    manager.add_tool(link_records, name="nocodb-link-records")

    async def unlink_records(
        table_name: LinkTableName,
        link_field_id: LinkFieldId,
        record_id: Annotated[
            str | int, Field(alias="recordId", description="The ID of the record to unlink from.")
        ],
        links_to_remove: Annotated[
            list[LinkTarget],
            Field(
                alias="linksToRemove",
                min_length=1,
                description="Array of objects, each containing the 'id' (lowercase) of a linked record to remove. "
                "E.g., [{'id': 5}, {'id': 6}]",
            ),
        ],
    ) -> Any:
        """Nocodb - Unlink Records. Removes links between a record and one or more other records.
        Example:
        {"tableName": "projects", "linkFieldId": "cl_abc456", "recordId": 10, "linksToRemove": [{"id": 25}]}
        """
        return await client.unlink_records(
            table_name, link_field_id, record_id, [link.model_dump() for link in links_to_remove]
        )

    manager.add_tool(unlink_records, name="nocodb-unlink-records")

    # Attachments

    async def upload_attachment(
        file_path_on_server: Annotated[
            str,
            Field(alias="filePathOnServer", description="Absolute path to the file on the server running this MCP."),
        ],
        storage_path: Annotated[
            str, Field(alias="storagePath", description="Path within NocoDB storage (e.g., 'attachments/images').")
        ],
        file_name: Annotated[
            str, Field(alias="fileName", description="The desired file name for the attachment in NocoDB.")
        ],
        mime_type: Annotated[
            str,
            Field(alias="mimeType", description="MIME type of the file (e.g., 'image/jpeg', 'application/pdf')."),
        ],
    ) -> Any:
        """Nocodb - Upload Attachment. Uploads a file from the MCP server's local filesystem to NocoDB storage.
        Example:
        {"filePathOnServer": "/app/data/report.pdf", "storagePath": "reports/2025", "fileName": "Q1_Report.pdf", "mimeType": "application/pdf"}
        """
        return await client.upload_attachment(file_path_on_server, storage_path, file_name, mime_type)

    manager.add_tool(upload_attachment, name="nocodb-upload-attachment")

    # Metadata and schema

    async def get_list_tables() -> list[str]:
        """Nocodb - Get List Tables. Retrieves a list of all table names in the configured NocoDB base."""
        return await client.list_tables()

    manager.add_tool(get_list_tables, name="nocodb-get-list-tables")

    async def get_table_metadata(table_name: TableName) -> Any:
        """Nocodb - Get Table Metadata. Retrieves detailed metadata for a specific table, including column names, types, and IDs.
        CRITICAL: Use this tool before 'nocodb-post-records' or 'nocodb-patch-records' to get the exact column names required.
        Example: {"tableName": "users"}
        """
        return await client.get_table_metadata(table_name)

    manager.add_tool(get_table_metadata, name="nocodb-get-table-metadata")

    async def alter_table_add_column(
        table_name: Annotated[
            str, Field(alias="tableName", description="Name of the NocoDB table where the column will be added.")
        ],
        column_name: Annotated[str, Field(alias="columnName", description="Name for the new column.")],
        column_type: Annotated[str, Field(alias="columnType", description="Type of the new column (NocoDB UIDT).")],
        parent_table_name: Annotated[
            str | None,
            Field(
                alias="parentTableName",
                description="Required if columnType is 'LinkToAnotherRecord'. Name of the table this column links TO.",
            ),
        ] = None,
        relation_type: Annotated[
            Literal["hm", "bt", "mm"] | None,
            Field(
                alias="relationType",
                description="Required if columnType is 'LinkToAnotherRecord'. Type of relationship: "
                "'hm' (HasMany), 'bt' (BelongsTo), 'mm' (ManyToMany).",
            ),
        ] = None,
    ) -> Any:
        if column_type == LINK_TO_ANOTHER_RECORD and (not parent_table_name or not relation_type):
            raise InvalidParams(
                "For 'LinkToAnotherRecord' column type, 'parentTableName' and 'relationType' parameters are required."
            )
        return await client.add_column(table_name, column_name, column_type, parent_table_name, relation_type)

    manager.add_tool(
        alter_table_add_column,
        name="nocodb-alter-table-add-column",
        description=(
            "Nocodb - Alter Table Add Column. Adds a new column to an existing table.\n"
            f"Supported column types (uidt): {COLUMN_TYPES}\n"
            "IMPORTANT: For 'LinkToAnotherRecord', you MUST provide 'parentTableName' and 'relationType'.\n"
            "Examples:\n"
            '1. Standard column: {"tableName": "products", "columnName": "StockCount", "columnType": "Number"}\n'
            '2. Link column (HasMany): {"tableName": "authors", "columnName": "Books", '
            '"columnType": "LinkToAnotherRecord", "parentTableName": "books", "relationType": "hm"}\n'
            '3. Link column (BelongsTo): {"tableName": "books", "columnName": "Author", '
            '"columnType": "LinkToAnotherRecord", "parentTableName": "authors", "relationType": "bt"}'
        ),
    )

    async def alter_table_remove_column(
        column_id: Annotated[
            str, Field(alias="columnId", description="The unique ID of the column to remove (obtained from metadata).")
        ],
    ) -> Any:
        """Nocodb - Alter Table Remove Column. Removes an existing column from a table.
        WARNING: This action is irreversible and will delete the column and all its data.
        Get the 'columnId' from 'nocodb-get-table-metadata'.
        Example: {"columnId": "cl_abc123xyz"}
        """
        return await client.remove_column(column_id)

    manager.add_tool(alter_table_remove_column, name="nocodb-alter-table-remove-column")

    async def create_table(
        table_name: Annotated[str, Field(alias="tableName", description="Name for the new NocoDB table.")],
        data: Annotated[
            list[ColumnDefinition],
            Field(min_length=1, description="Array defining the columns for the new table."),
        ],
    ) -> Any:
        """Nocodb - Create Table. Creates a new table with specified columns.
        An 'Id' column (type: ID) will be added automatically if not provided.
        Supported column types (uidt): See 'nocodb-alter-table-add-column'.
        Example:
        {"tableName": "employees", "data": [{"title": "Name", "uidt": "SingleLineText"}, {"title": "HireDate", "uidt": "Date"}]}
        """
        return await client.create_table(table_name, [column.model_dump() for column in data])

    manager.add_tool(create_table, name="nocodb-create-table")

    logger.debug("Registered %d NocoDB tools", len(manager))
    return manager
