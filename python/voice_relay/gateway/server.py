"""
Gateway Server.

aiohttp application the telephony gateway connects to:
- {stream_path} - WebSocket upgrade for media streams (426 without upgrade)
- /health - Liveness check
- anything else - JSON service status
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from aiohttp import WSMsgType, web

from ..agent import VoiceAgentClient
from ..config import RelayConfig, get_config
from ..core import CallSession, SessionRegistry
from ..errors import MessageDecodeError
from ..protocol import telephony as telephony_proto
from ..protocol.telephony import (
    ConnectedEvent,
    DtmfMessage,
    MarkMessage,
    MediaMessage,
    StartMessage,
    StopMessage,
    parse_telephony_message,
)

logger = logging.getLogger("relay.gateway")

SERVICE_NAME = "voice-relay"


class RelayServer:
    """
    Accept gateway sockets and route their events to call sessions.

    Each accepted socket is served by its own aiohttp handler task. Sessions
    started on a socket are closed when that socket goes away.
    """

    def __init__(
        self,
        config: Optional[RelayConfig] = None,
        registry: Optional[SessionRegistry] = None,
        connector: Optional[Callable[[], Awaitable[Any]]] = None,
    ):
        """
        Initialize the server.

        Args:
            config: Relay configuration (global config if omitted)
            registry: Session registry shared by all sockets
            connector: Coroutine factory opening an agent socket; defaults to
                VoiceAgentClient built from config
        """
        self.config = config or get_config()
        self.registry = registry if registry is not None else SessionRegistry()
        if connector is None:
            connector = VoiceAgentClient.from_config(self.config).connect
        self._connector = connector
        self._runner: Optional[web.AppRunner] = None
        self._started = False
        self._connection_count = 0
        self._socket_calls: Dict[int, Dict[str, CallSession]] = {}

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get(self.config.stream_path, self._stream_handler)
        app.router.add_get("/health", self._live_handler)
        app.router.add_route("*", "/{tail:.*}", self._status_handler)
        app.on_shutdown.append(self._on_shutdown)
        return app

    def _create_session(self, stream_sid: str, ws: web.WebSocketResponse) -> CallSession:
        return CallSession(
            stream_sid=stream_sid,
            telephony_link=ws,
            registry=self.registry,
            connector=self._connector,
            chunk_size=self.config.chunk_size,
            connect_timeout=self.config.ai_connect_timeout,
            queue_maxsize=self.config.session_queue_maxsize,
        )

    async def _stream_handler(self, request: web.Request) -> web.StreamResponse:
        """Serve one gateway socket."""
        ws = web.WebSocketResponse()
        if not ws.can_prepare(request).ok:
            return web.Response(
                status=426,
                text="Expected WebSocket upgrade",
                headers={"Upgrade": "websocket"},
            )

        await ws.prepare(request)
        self._connection_count += 1
        peer = request.remote
        logger.info(f"Gateway socket opened from {peer}")

        await ws.send_str(telephony_proto.dump(ConnectedEvent()))

        sessions: Dict[str, CallSession] = {}
        self._socket_calls[id(ws)] = sessions
        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    await self._route(msg.data, ws, sessions)
                elif msg.type == WSMsgType.BINARY:
                    logger.warning(f"Ignoring binary frame ({len(msg.data)} bytes) from {peer}")
                elif msg.type == WSMsgType.ERROR:
                    logger.error(f"Gateway socket error: {ws.exception()}")
                    break
        finally:
            del self._socket_calls[id(ws)]
            for session in list(sessions.values()):
                session.close()
            logger.info(f"Gateway socket closed from {peer} ({len(sessions)} open calls)")

        return ws

    async def _route(
        self,
        raw: str,
        ws: web.WebSocketResponse,
        sessions: Dict[str, CallSession],
    ) -> None:
        """Decode one gateway message and hand it to the right session."""
        try:
            message = parse_telephony_message(raw)
        except MessageDecodeError as e:
            logger.warning(f"Dropping malformed gateway message: {e}")
            return

        if isinstance(message, StartMessage):
            session = self._create_session(message.stream_sid, ws)
            if not await self.registry.add(session):
                logger.warning(f"[{message.stream_sid}] Duplicate start ignored")
                return
            self._track(sessions, session)
            logger.info(
                f"[{message.stream_sid}] Call start "
                f"(call_sid={message.call_sid}, from={message.from_number}, to={message.to_number})"
            )
            await session.start()

        elif isinstance(message, (MediaMessage, StopMessage)):
            session = self.registry.get(message.stream_sid)
            if session is None:
                logger.debug(f"[{message.stream_sid}] No session for {type(message).__name__}")
                return
            if isinstance(message, StopMessage):
                sessions.pop(message.stream_sid, None)
            session.handle_telephony(message)

        elif isinstance(message, DtmfMessage):
            logger.info(f"[{message.stream_sid}] DTMF {message.digit}")

        elif isinstance(message, MarkMessage):
            logger.debug(f"[{message.stream_sid}] Playback reached mark {message.name}")

    def _track(self, sessions: Dict[str, CallSession], session: CallSession) -> None:
        """Keep a session in its socket's map until it terminates."""
        sid = session.stream_sid
        sessions[sid] = session

        def _forget(_task: asyncio.Future) -> None:
            if sessions.get(sid) is session:
                del sessions[sid]

        asyncio.ensure_future(session.wait_closed()).add_done_callback(_forget)

    async def _live_handler(self, request: web.Request) -> web.Response:
        """Liveness check - just returns OK if process is running."""
        return web.Response(text="OK", status=200)

    async def _status_handler(self, request: web.Request) -> web.Response:
        return web.json_response(
            {
                "status": "running",
                "service": SERVICE_NAME,
                "stream_path": self.config.stream_path,
                "active_sessions": len(self.registry),
            }
        )

    async def _on_shutdown(self, app: web.Application) -> None:
        await self.registry.close_all()

    async def start(self) -> None:
        """Start the HTTP/WebSocket listener."""
        if self._started:
            return

        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()

        site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await site.start()

        self._started = True
        logger.info(
            f"Relay listening on {self.config.host}:{self.config.port}"
            f" (stream path {self.config.stream_path})"
        )

    async def stop(self) -> None:
        """Close all sessions and stop the listener."""
        await self.registry.close_all()
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        self._started = False
        logger.info("Relay stopped")

    def get_stats(self) -> dict:
        stats = self.registry.get_stats()
        stats["connections_accepted"] = self._connection_count
        stats["socket_calls"] = sum(len(calls) for calls in self._socket_calls.values())
        return stats
