"""Exception types shared by the tools, the protocol server and the HTTP layer."""

from typing import Any, Dict, Optional

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class ConfigurationError(RuntimeError):
    """A setting required by a tool is missing."""


class ToolInputError(ValueError):
    """Tool arguments do not match the tool's input schema, or the tool is unknown."""


class ExternalAPIError(RuntimeError):
    """The Google API answered, but not with what the tool needs."""


class JSONRPCError(Exception):
    """Protocol-level failure rendered as a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


def jsonrpc_error(code: int, message: str, id: Any = None, data: Optional[Any] = None) -> Dict[str, Any]:
    """
    Standard JSON-RPC error envelope:
      {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": id}
    """
    return {
        "jsonrpc": "2.0",
        "error": JSONRPCError(code, message, data).to_dict(),
        "id": id,
    }
