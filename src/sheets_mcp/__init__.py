"""
Google Sheets Model Context Protocol (MCP) Server

This package implements an MCP server that exposes:
- Tools: list_spreadsheets, create_spreadsheet, append_rows

The tools are reachable over two HTTP transports that share one protocol server:
- POST /mcp: single JSON-RPC call, single JSON response
- GET /sse + POST /messages: long-lived event stream with a companion message endpoint
"""

__version__ = "0.1.0"
