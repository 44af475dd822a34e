"""
MCP Endpoint Handlers

This package contains handlers for MCP protocol methods:
- tools: Tool registry, listing and execution
"""
