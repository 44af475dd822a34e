"""
MCP transports and the SSE session table.

A transport binds the shared MCPServer to one HTTP exchange:
- JsonResponseTransport: one POST /mcp call, one JSON response, then closed.
- SseTransport: one GET /sse connection. Responses are pushed as server-sent
  events; the client posts its messages to /messages?sessionId=<id>.
"""

import asyncio
import json
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Any], Awaitable[Optional[Dict[str, Any]]]]

# How often an idle stream checks whether the client is still connected
DISCONNECT_POLL_SECONDS = 1.0


class TransportClosedError(RuntimeError):
    """Raised when a message is fed into a transport that has been closed."""


class Transport:
    """Common binding and lifecycle for both transports."""

    def __init__(self):
        self._handler: Optional[MessageHandler] = None
        self.closed = False

    def bind(self, handler: MessageHandler) -> None:
        self._handler = handler

    async def _dispatch(self, message: Any) -> Optional[Dict[str, Any]]:
        if self._handler is None:
            raise RuntimeError("Transport is not connected to a server")
        return await self._handler(message)

    async def close(self) -> None:
        self.closed = True


class JsonResponseTransport(Transport):
    """Stateless transport for a single request/response call."""

    async def handle_request(self, message: Any) -> Optional[Dict[str, Any]]:
        """Feed one inbound message to the server and return its response, if any."""
        if self.closed:
            raise TransportClosedError("Transport is closed")
        return await self._dispatch(message)


class SseTransport(Transport):
    """
    Transport for one event-stream connection.

    Inbound messages are queued and processed one at a time in arrival order;
    responses are queued for the event stream.
    """

    def __init__(self, endpoint: str = "/messages", session_id: Optional[str] = None):
        super().__init__()
        self.session_id = session_id or uuid.uuid4().hex
        self.endpoint = endpoint
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    @property
    def endpoint_url(self) -> str:
        return f"{self.endpoint}?sessionId={self.session_id}"

    def start(self) -> None:
        """Start processing inbound messages. Requires a running event loop."""
        if self._worker is None:
            self._worker = asyncio.ensure_future(self._process_inbox())

    async def handle_post_message(self, message: Any) -> None:
        """Accept one client-to-server message for this session."""
        if self.closed:
            raise TransportClosedError(f"Session {self.session_id} is closed")
        self._inbox.put_nowait(message)

    async def send(self, message: Dict[str, Any]) -> None:
        """Queue a server-to-client message on the event stream."""
        if self.closed:
            logger.debug(f"Dropping message for closed session {self.session_id}")
            return
        self._outbox.put_nowait(message)

    async def _process_inbox(self) -> None:
        while True:
            message = await self._inbox.get()
            if message is None:
                break
            try:
                response = await self._dispatch(message)
            except Exception as e:
                logger.error(f"Error handling message for session {self.session_id}: {e}", exc_info=True)
                continue
            if response is not None:
                await self.send(response)

    async def event_stream(self, request) -> AsyncIterator[str]:
        """
        Yield server-sent events until the client disconnects or the transport closes.

        The first event tells the client where to post its messages.
        """
        yield format_sse("endpoint", self.endpoint_url)

        while not self.closed:
            try:
                message = await asyncio.wait_for(self._outbox.get(), timeout=DISCONNECT_POLL_SECONDS)
            except asyncio.TimeoutError:
                if await request.is_disconnected():
                    logger.info(f"SSE client disconnected: {self.session_id}")
                    break
                continue
            if message is None:
                break
            yield format_sse("message", json.dumps(message, ensure_ascii=False))

    async def close(self) -> None:
        if self.closed:
            return
        await super().close()
        # Let the worker finish the message in hand, then stop
        self._inbox.put_nowait(None)
        self._outbox.put_nowait(None)


def format_sse(event: str, data: str) -> str:
    """Render one server-sent event."""
    lines = "".join(f"data: {line}\n" for line in data.splitlines() or [""])
    return f"event: {event}\n{lines}\n"


class SessionTable:
    """Open SSE sessions keyed by session id. Mutated only on the event loop."""

    def __init__(self):
        self._sessions: Dict[str, SseTransport] = {}

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: Optional[str]) -> Optional[SseTransport]:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def add(self, transport: SseTransport) -> None:
        if transport.session_id in self._sessions:
            raise KeyError(f"Session {transport.session_id} already exists")
        self._sessions[transport.session_id] = transport

    def remove(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    @asynccontextmanager
    async def open(self, transport: SseTransport):
        """Register a session for the lifetime of the block; always removed and closed on exit."""
        self.add(transport)
        logger.info(f"SSE session opened: {transport.session_id} ({len(self)} active)")
        try:
            yield transport
        finally:
            self.remove(transport.session_id)
            await transport.close()
            logger.info(f"SSE session closed: {transport.session_id} ({len(self)} active)")
