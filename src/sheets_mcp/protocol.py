"""
MCP protocol server.

One MCPServer instance is shared by every transport. It turns a JSON-RPC
message into a JSON-RPC response (or None for notifications); transports only
move bytes.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from . import __version__
from .errors import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    JSONRPCError,
    ToolInputError,
    jsonrpc_error,
)
from .handlers import tools
from .models import JSONRPCRequest, ToolCallRequest

logger = logging.getLogger(__name__)

SERVER_NAME = "sheets-mcp"
SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")
LATEST_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]


class MCPServer:
    """JSON-RPC dispatcher over the tool registry."""

    def __init__(self, ctx: tools.ToolContext, name: str = SERVER_NAME, version: str = __version__):
        self.ctx = ctx
        self.name = name
        self.version = version

    def connect(self, transport) -> None:
        """Bind this server to a transport so inbound messages reach handle_message."""
        transport.bind(self.handle_message)

    async def handle_message(self, message: Any) -> Optional[Dict[str, Any]]:
        """
        Process one JSON-RPC message.

        Returns:
            The response dict, or None if the message was a notification.
        """
        if not isinstance(message, dict):
            return jsonrpc_error(INVALID_REQUEST, "Invalid Request: expected a JSON object")

        raw_id = message.get("id")
        try:
            request = JSONRPCRequest.model_validate(message)
        except ValidationError:
            return jsonrpc_error(INVALID_REQUEST, "Invalid Request", id=raw_id)
        if request.jsonrpc != "2.0":
            return jsonrpc_error(INVALID_REQUEST, "Invalid Request: jsonrpc must be '2.0'", id=raw_id)

        if "id" not in message:
            logger.debug(f"Notification received: {request.method}")
            return None

        try:
            result = await self._dispatch(request.method, request.params or {})
        except JSONRPCError as e:
            return {"jsonrpc": "2.0", "id": request.id, "error": e.to_dict()}
        except Exception as e:
            logger.error(f"Unhandled error in {request.method}: {e}", exc_info=True)
            return jsonrpc_error(INTERNAL_ERROR, str(e) or "Internal error", id=request.id)

        return {"jsonrpc": "2.0", "id": request.id, "result": result}

    async def _dispatch(self, method: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if method == "initialize":
            return self._initialize(params)

        elif method == "ping":
            return {}

        elif method == "tools/list":
            listing = await tools.list_tools()
            return listing.model_dump()

        elif method == "tools/call":
            try:
                call = ToolCallRequest.model_validate(params)
            except ValidationError:
                raise JSONRPCError(INVALID_PARAMS, "Invalid params: tools/call requires a tool name and an arguments object")
            try:
                response = await tools.call_tool(call, self.ctx)
            except ToolInputError as e:
                raise JSONRPCError(INVALID_PARAMS, str(e))
            return response.model_dump(exclude_none=True)

        raise JSONRPCError(METHOD_NOT_FOUND, f"Method not found: {method}")

    def _initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        requested = params.get("protocolVersion")
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION
        client = (params.get("clientInfo") or {}).get("name", "unknown")
        logger.info(f"Initialize from client {client}, protocol {version}")
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": self.name, "version": self.version},
        }
