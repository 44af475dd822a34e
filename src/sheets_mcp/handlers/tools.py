"""
MCP Tool Handlers

Handles tool listing and execution for the MCP protocol.
Exposes spreadsheet tools: list_spreadsheets, create_spreadsheet, append_rows
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Type

from pydantic import BaseModel, ValidationError

from ..config import Settings
from ..credentials import CredentialProvider
from ..envelope import respond_with
from ..errors import ConfigurationError, ExternalAPIError, ToolInputError
from ..models import (
    AppendRowsInput,
    AppendRowsOutput,
    CreateSpreadsheetInput,
    CreateSpreadsheetOutput,
    ListSpreadsheetsInput,
    ListSpreadsheetsOutput,
    SpreadsheetRef,
    ToolCallRequest,
    ToolCallResponse,
    ToolDefinition,
    ToolListResponse,
)

logger = logging.getLogger(__name__)

SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"


class ToolKind(str, Enum):
    """Every tool this server exposes."""
    LIST_SPREADSHEETS = "list_spreadsheets"
    CREATE_SPREADSHEET = "create_spreadsheet"
    APPEND_ROWS = "append_rows"


@dataclass(frozen=True)
class ToolContext:
    """Dependencies handed to every tool handler."""
    settings: Settings
    credentials: CredentialProvider


Handler = Callable[[Any, ToolContext], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class ToolSpec:
    """Registered tool: metadata, schemas and handler."""
    kind: ToolKind
    title: str
    description: str
    input_model: Type[BaseModel]
    output_model: Type[BaseModel]
    input_schema: Dict[str, Any]
    output_schema: Dict[str, Any]
    handler: Handler

    @property
    def name(self) -> str:
        return self.kind.value

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            title=self.title,
            description=self.description,
            inputSchema=self.input_schema,
            outputSchema=self.output_schema,
        )


async def _execute(request) -> Dict[str, Any]:
    """Run a googleapiclient request without blocking the event loop."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, request.execute)


# ============================================================================
# Tool Handlers
# ============================================================================

async def list_spreadsheets(args: ListSpreadsheetsInput, ctx: ToolContext) -> Dict[str, Any]:
    """List spreadsheets inside the configured Drive folder."""
    folder_id = ctx.settings.drive_folder_id
    if not folder_id:
        raise ConfigurationError("DRIVE_FOLDER_ID is required to list spreadsheets.")

    clients = await ctx.credentials.get_clients()
    response = await _execute(
        clients.drive.files().list(
            q=f"'{folder_id}' in parents and mimeType='{SPREADSHEET_MIME_TYPE}' and trashed=false",
            pageSize=args.pageSize,
            supportsAllDrives=True,
            includeItemsFromAllDrives=True,
            fields="files(id,name)",
        )
    )

    spreadsheets = [
        SpreadsheetRef(id=item.get("id", ""), name=item.get("name", ""))
        for item in (response or {}).get("files") or []
    ]
    logger.info(f"Listed {len(spreadsheets)} spreadsheets in folder {folder_id}")
    return respond_with(ListSpreadsheetsOutput(spreadsheets=spreadsheets))


async def create_spreadsheet(args: CreateSpreadsheetInput, ctx: ToolContext) -> Dict[str, Any]:
    """
    Create a spreadsheet and, if a folder is configured, add the folder as a parent.

    Raises:
        ExternalAPIError: If the create call does not return a spreadsheet id
    """
    clients = await ctx.credentials.get_clients()
    creation = await _execute(
        clients.sheets.spreadsheets().create(
            body={"properties": {"title": args.title}},
            fields="spreadsheetId,properties/title",
        )
    ) or {}

    spreadsheet_id = creation.get("spreadsheetId")
    if not spreadsheet_id:
        raise ExternalAPIError("Failed to create spreadsheet.")

    folder_id = ctx.settings.drive_folder_id
    if folder_id:
        await _execute(
            clients.drive.files().update(
                fileId=spreadsheet_id,
                addParents=folder_id,
                supportsAllDrives=True,
                fields="id, parents",
            )
        )
        logger.info(f"Moved spreadsheet {spreadsheet_id} into folder {folder_id}")

    title = (creation.get("properties") or {}).get("title") or args.title
    logger.info(f"Created spreadsheet {spreadsheet_id} ({title!r})")
    return respond_with(CreateSpreadsheetOutput(spreadsheetId=spreadsheet_id, title=title))


async def append_rows(args: AppendRowsInput, ctx: ToolContext) -> Dict[str, Any]:
    """Append rows after the existing data in a range, parsed as if typed by a user."""
    clients = await ctx.credentials.get_clients()
    response = await _execute(
        clients.sheets.spreadsheets().values().append(
            spreadsheetId=args.spreadsheetId,
            range=args.range,
            valueInputOption="USER_ENTERED",
            body={"values": args.values},
        )
    ) or {}

    updates = response.get("updates") or {}
    return respond_with(AppendRowsOutput(
        updatedRange=updates.get("updatedRange") or "",
        updatedRows=updates.get("updatedRows") or 0,
    ))


# ============================================================================
# Tool Registry
# ============================================================================

TOOL_REGISTRY: Dict[ToolKind, ToolSpec] = {
    ToolKind.LIST_SPREADSHEETS: ToolSpec(
        kind=ToolKind.LIST_SPREADSHEETS,
        title="List spreadsheets",
        description="Lists spreadsheets in the configured Drive folder.",
        input_model=ListSpreadsheetsInput,
        output_model=ListSpreadsheetsOutput,
        input_schema={
            "type": "object",
            "properties": {
                "pageSize": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 100
                }
            },
            "additionalProperties": False
        },
        output_schema={
            "type": "object",
            "properties": {
                "spreadsheets": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "id": {"type": "string"},
                            "name": {"type": "string"}
                        },
                        "required": ["id", "name"],
                        "additionalProperties": False
                    }
                }
            },
            "required": ["spreadsheets"],
            "additionalProperties": False
        },
        handler=list_spreadsheets,
    ),
    ToolKind.CREATE_SPREADSHEET: ToolSpec(
        kind=ToolKind.CREATE_SPREADSHEET,
        title="Create spreadsheet",
        description="Creates a new Google Sheet and stores it in the configured folder.",
        input_model=CreateSpreadsheetInput,
        output_model=CreateSpreadsheetOutput,
        input_schema={
            "type": "object",
            "properties": {
                "title": {
                    "type": "string",
                    "minLength": 1
                }
            },
            "required": ["title"],
            "additionalProperties": False
        },
        output_schema={
            "type": "object",
            "properties": {
                "spreadsheetId": {"type": "string"},
                "title": {"type": "string"}
            },
            "required": ["spreadsheetId", "title"],
            "additionalProperties": False
        },
        handler=create_spreadsheet,
    ),
    ToolKind.APPEND_ROWS: ToolSpec(
        kind=ToolKind.APPEND_ROWS,
        title="Append rows",
        description="Appends rows to a sheet using A1 notation.",
        input_model=AppendRowsInput,
        output_model=AppendRowsOutput,
        input_schema={
            "type": "object",
            "properties": {
                "spreadsheetId": {
                    "type": "string"
                },
                "range": {
                    "type": "string",
                    "description": "Range like Sheet1!A1"
                },
                "values": {
                    "type": "array",
                    "items": {
                        "type": "array",
                        "items": {
                            "type": ["string", "number", "boolean"]
                        }
                    },
                    "minItems": 1
                }
            },
            "required": ["spreadsheetId", "range", "values"],
            "additionalProperties": False
        },
        output_schema={
            "type": "object",
            "properties": {
                "updatedRange": {"type": "string"},
                "updatedRows": {"type": "integer"}
            },
            "required": ["updatedRange", "updatedRows"],
            "additionalProperties": False
        },
        handler=append_rows,
    ),
}

_unregistered = set(ToolKind) - set(TOOL_REGISTRY)
if _unregistered:
    raise RuntimeError(f"Tools without a registry entry: {sorted(k.value for k in _unregistered)}")


def get_tool(name: str) -> ToolSpec:
    """
    Look up a tool by its wire name.

    Raises:
        ToolInputError: If no tool has that name
    """
    try:
        kind = ToolKind(name)
    except ValueError:
        raise ToolInputError(
            f"Tool '{name}' not found. Available tools: {[k.value for k in ToolKind]}"
        )
    return TOOL_REGISTRY[kind]


def _describe_validation_error(tool_name: str, exc: ValidationError) -> str:
    problems: List[str] = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ())) or "arguments"
        problems.append(f"{location}: {err.get('msg')}")
    return f"Invalid arguments for tool {tool_name}: " + "; ".join(problems)


async def list_tools() -> ToolListResponse:
    """
    List all available tools.

    Returns:
        ToolListResponse with list of tool definitions
    """
    return ToolListResponse(tools=[spec.definition() for spec in TOOL_REGISTRY.values()])


async def call_tool(request: ToolCallRequest, ctx: ToolContext) -> ToolCallResponse:
    """
    Execute a tool call.

    Args:
        request: Tool call request with name and arguments
        ctx: Settings and credential provider for the handlers

    Returns:
        ToolCallResponse with tool output, or with isError set if the tool failed

    Raises:
        ToolInputError: If the tool is unknown or the arguments are invalid.
            Raised before any Google API call is made.
    """
    spec = get_tool(request.name)

    try:
        args = spec.input_model.model_validate(request.arguments)
    except ValidationError as e:
        raise ToolInputError(_describe_validation_error(spec.name, e))

    try:
        result = await spec.handler(args, ctx)
        spec.output_model.model_validate(result["structuredContent"])
        return ToolCallResponse(**result, isError=False)

    except Exception as e:
        logger.error(f"Error executing tool '{spec.name}': {e}", exc_info=True)
        return ToolCallResponse(
            content=[{
                "type": "text",
                "text": str(e)
            }],
            isError=True
        )
