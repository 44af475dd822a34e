"""Run the Sheets MCP server with uvicorn."""

import logging

import uvicorn

from .server import MCP_PATH, MESSAGES_PATH, SSE_PATH, app

logger = logging.getLogger("sheets_mcp")


def main() -> None:
    # The module-level app already loaded settings and configured logging
    settings = app.state.settings

    logger.info(f"Starting server on {settings.host}:{settings.port}")
    logger.info(f"Streamable HTTP endpoint: POST {MCP_PATH}")
    logger.info(f"SSE endpoint: GET {SSE_PATH} (messages: POST {MESSAGES_PATH})")

    # uvicorn exits with status 1 if the port cannot be bound
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
