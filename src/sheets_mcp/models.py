"""
MCP Protocol and Tool Models

This module defines Pydantic models for MCP protocol messages and for the
structured inputs and outputs of the spreadsheet tools.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, StrictBool, StrictFloat, StrictInt, StrictStr
from typing import Optional, Dict, Any, List, Union


# ============================================================================
# Protocol Models
# ============================================================================

class JSONRPCRequest(BaseModel):
    """Inbound JSON-RPC 2.0 request or notification."""
    model_config = ConfigDict(extra="allow")

    jsonrpc: StrictStr = Field(..., description="Protocol version marker, always '2.0'")
    method: StrictStr = Field(..., description="Method name")
    params: Optional[Dict[str, Any]] = Field(None, description="Method parameters")
    id: Optional[Union[StrictStr, StrictInt]] = Field(None, description="Request id, absent for notifications")


class ToolDefinition(BaseModel):
    """MCP tool definition schema."""
    name: str = Field(..., description="Tool name/identifier")
    title: str = Field(..., description="Human-readable tool title")
    description: str = Field(..., description="Tool description")
    inputSchema: Dict[str, Any] = Field(..., description="JSON schema for tool inputs")
    outputSchema: Dict[str, Any] = Field(..., description="JSON schema for structured tool output")


class ToolListResponse(BaseModel):
    """Result of tools/list."""
    tools: List[ToolDefinition] = Field(..., description="List of available tools")


class ToolCallRequest(BaseModel):
    """Params of tools/call."""
    name: StrictStr = Field(..., description="Tool name to call")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Tool arguments")


class ToolCallResponse(BaseModel):
    """Result of tools/call."""
    content: List[Dict[str, Any]] = Field(..., description="Tool output content")
    structuredContent: Optional[Any] = Field(None, description="Structured tool output")
    isError: bool = Field(default=False, description="Whether the result is an error")


class MCPError(BaseModel):
    """Plain HTTP error body used outside JSON-RPC (e.g. unknown session)."""
    error: str = Field(..., description="Error message")


# ============================================================================
# Tool Input Models
# ============================================================================

Cell = Union[StrictStr, StrictBool, StrictInt, StrictFloat]


class ListSpreadsheetsInput(BaseModel):
    """Input model for list_spreadsheets."""
    pageSize: StrictInt = Field(25, ge=1, le=100, description="Maximum number of spreadsheets to return")

    @field_validator("pageSize", mode="before")
    @classmethod
    def whole_float_to_int(cls, value):
        # JSON 5.0 is the number 5; 2.5, true and "5" still fail the strict check
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value


class CreateSpreadsheetInput(BaseModel):
    """Input model for create_spreadsheet."""
    title: StrictStr = Field(..., min_length=1, description="Title of the new spreadsheet")


class AppendRowsInput(BaseModel):
    """Input model for append_rows."""
    spreadsheetId: StrictStr = Field(..., description="Target spreadsheet id")
    range: StrictStr = Field(..., description="Range like Sheet1!A1")
    values: List[List[Cell]] = Field(..., min_length=1, description="Rows to append")


# ============================================================================
# Tool Output Models
# ============================================================================

class SpreadsheetRef(BaseModel):
    """A spreadsheet as listed by Drive."""
    id: str = Field(..., description="Drive file id")
    name: str = Field(..., description="Spreadsheet name")


class ListSpreadsheetsOutput(BaseModel):
    """Output model for list_spreadsheets."""
    spreadsheets: List[SpreadsheetRef] = Field(default_factory=list, description="Spreadsheets in the folder")


class CreateSpreadsheetOutput(BaseModel):
    """Output model for create_spreadsheet."""
    spreadsheetId: str = Field(..., description="Id of the created spreadsheet")
    title: str = Field(..., description="Title of the created spreadsheet")


class AppendRowsOutput(BaseModel):
    """Output model for append_rows."""
    updatedRange: str = Field("", description="A1 range that received the rows")
    updatedRows: int = Field(0, description="Number of rows written")
