"""
MCP Server - Main FastAPI Application

Implements the Model Context Protocol over two HTTP transports that share one
protocol server and tool registry:
- POST /mcp: request/response (one JSON-RPC call, one JSON reply)
- GET /sse: event stream, one session per connection
- POST /messages?sessionId=<id>: client-to-server messages for an SSE session
"""

import logging
from typing import Optional

from fastapi import APIRouter, FastAPI, Query, Request, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse

from . import __version__
from .auth import verify_api_key
from .config import Settings, load_settings
from .credentials import CredentialProvider
from .errors import INTERNAL_ERROR, PARSE_ERROR, jsonrpc_error
from .handlers.tools import ToolContext
from .models import MCPError
from .protocol import MCPServer
from .transports import JsonResponseTransport, SessionTable, SseTransport, TransportClosedError

logger = logging.getLogger(__name__)

MCP_PATH = "/mcp"
SSE_PATH = "/sse"
MESSAGES_PATH = "/messages"

router = APIRouter()


def configure_logging(settings: Settings) -> None:
    """Configure root logging at the level from LOG_LEVEL."""
    logging.basicConfig(level=settings.log_level)
    logging.getLogger().setLevel(settings.log_level)


# ============================================================================
# Error Handlers
# ============================================================================

async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=jsonrpc_error(INTERNAL_ERROR, "Internal server error")
    )


# ============================================================================
# Health Check
# ============================================================================

@router.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "sheets-mcp",
        "version": __version__
    }


@router.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Google Sheets MCP Server",
        "version": __version__,
        "protocol": "Model Context Protocol",
        "endpoints": {
            "streamable_http": f"POST {MCP_PATH}",
            "sse": f"GET {SSE_PATH}",
            "messages": f"POST {MESSAGES_PATH}?sessionId=<id>",
            "docs": "/docs"
        }
    }


# ============================================================================
# Request/Response Endpoint
# ============================================================================

@router.post(MCP_PATH, tags=["MCP"], summary="Handle one JSON-RPC call")
async def mcp_endpoint(request: Request, api_key: str = Security(verify_api_key)):
    """
    Handle a single JSON-RPC message with a fresh, call-scoped transport.

    Returns the JSON-RPC response, or 202 with no body for a notification.
    """
    try:
        message = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content=jsonrpc_error(PARSE_ERROR, "Parse error"))

    transport = JsonResponseTransport()
    try:
        request.app.state.mcp_server.connect(transport)
        response = await transport.handle_request(message)
    except Exception as e:
        logger.error(f"Error handling {MCP_PATH} request: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=jsonrpc_error(INTERNAL_ERROR, str(e) or "Internal server error")
        )
    finally:
        await transport.close()

    if response is None:
        return Response(status_code=202)
    return JSONResponse(content=response)


# ============================================================================
# Event-Stream Endpoints
# ============================================================================

async def session_stream(sessions: SessionTable, server: MCPServer, transport: SseTransport, request):
    """Event stream for one SSE connection; the session exists exactly while this runs."""
    async with sessions.open(transport):
        server.connect(transport)
        transport.start()
        async for chunk in transport.event_stream(request):
            yield chunk


@router.get(SSE_PATH, tags=["MCP"], summary="Open an event-stream session")
async def sse_endpoint(request: Request, api_key: str = Security(verify_api_key)):
    """
    Open a server-sent event stream.

    The first event ("endpoint") carries the URL to post messages to, including
    the session id. JSON-RPC responses follow as "message" events.
    """
    endpoint = request.scope.get("root_path", "") + MESSAGES_PATH
    transport = SseTransport(endpoint=endpoint)
    state = request.app.state
    return StreamingResponse(
        session_stream(state.sessions, state.mcp_server, transport, request),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post(MESSAGES_PATH, tags=["MCP"], summary="Post a message to an SSE session")
async def messages_endpoint(
    request: Request,
    session_id: Optional[str] = Query(None, alias="sessionId"),
    api_key: str = Security(verify_api_key),
):
    """
    Forward a client message to its SSE session.

    The reply is delivered on the event stream, not in this response.
    """
    transport = request.app.state.sessions.get(session_id)
    if transport is None:
        return JSONResponse(status_code=400, content=MCPError(error="Unknown session").model_dump())

    try:
        message = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content=MCPError(error="Invalid JSON").model_dump())

    try:
        await transport.handle_post_message(message)
    except TransportClosedError:
        return JSONResponse(status_code=400, content=MCPError(error="Unknown session").model_dump())

    return PlainTextResponse("Accepted", status_code=202)


# ============================================================================
# Application Factory
# ============================================================================

def create_app(
    settings: Optional[Settings] = None,
    credentials: Optional[CredentialProvider] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Server settings; loaded from the environment if omitted
        credentials: Google client provider; built from settings if omitted
    """
    settings = settings or load_settings()
    configure_logging(settings)
    settings.warn_missing()
    credentials = credentials or CredentialProvider(settings)

    app = FastAPI(
        title="Google Sheets MCP Server",
        description="Model Context Protocol server exposing Google Sheets tools",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # CORS middleware for cross-origin requests
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.credentials = credentials
    app.state.mcp_server = MCPServer(ToolContext(settings=settings, credentials=credentials))
    app.state.sessions = SessionTable()

    app.add_exception_handler(Exception, general_exception_handler)
    app.include_router(router)
    return app


app = create_app()
