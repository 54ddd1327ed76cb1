"""
Call session state machine.

One CallSession per live call. It owns the outbound voice agent socket and
references the inbound telephony socket owned by the dispatcher.

Both read loops (telephony socket, agent socket) post events onto the
session's queue; a single worker task applies them in order, so session
fields are only ever mutated from that worker. Agent pings bypass the queue
and are answered straight from the agent reader.

States:
    IDLE -> CONNECTING_AI -> STREAMING -> CLOSING -> TERMINATED
Any state may jump to TERMINATED through cleanup().
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TYPE_CHECKING

import websockets

from ..audio import AudioConverter, chunk_payload, decode_base64_pcm, encode_base64_pcm
from ..errors import DecodeError, MessageDecodeError
from ..protocol import agent as agent_proto
from ..protocol import telephony as telephony_proto
from ..protocol.agent import (
    AgentAudio,
    AgentPing,
    ConversationInitiation,
    Interruption,
    OtherAgentEvent,
    Pong,
    UserAudioChunk,
    parse_agent_message,
)
from ..protocol.telephony import (
    ClearEvent,
    MediaMessage,
    OutboundMark,
    OutboundMedia,
    StopMessage,
)

if TYPE_CHECKING:
    from .registry import SessionRegistry

logger = logging.getLogger("relay.session")

# 8kHz * 2 bytes per sample
TELEPHONY_BYTES_PER_MS = 16


class SessionState(Enum):
    """Call session lifecycle state."""
    IDLE = "idle"
    CONNECTING_AI = "connecting_ai"
    STREAMING = "streaming"
    CLOSING = "closing"
    TERMINATED = "terminated"


@dataclass
class _AgentConnected:
    link: Any


@dataclass
class _AgentFailed:
    reason: str


@dataclass
class _AgentClosed:
    reason: str


class CallSession:
    """
    Relay audio for one call between the telephony gateway and the voice agent.

    Args:
        stream_sid: Gateway stream id, unique among live sessions
        telephony_link: Gateway socket; needs ``send_str(text)``
        registry: Registry the session removes itself from on cleanup
        connector: Coroutine factory returning an open agent socket
        chunk_size: Max bytes of 8kHz PCM per outbound media event
        connect_timeout: Seconds allowed for the connector
        queue_maxsize: Caller media queued beyond this is dropped; agent audio never is
    """

    def __init__(
        self,
        stream_sid: str,
        telephony_link: Any,
        registry: "SessionRegistry",
        connector: Callable[[], Awaitable[Any]],
        chunk_size: int = 3200,
        connect_timeout: float = 10.0,
        queue_maxsize: int = 500,
    ):
        self.stream_sid = stream_sid
        self.telephony_link = telephony_link
        self.chunk_size = chunk_size
        self.connect_timeout = connect_timeout
        self.queue_maxsize = queue_maxsize
        self._registry = registry
        self._connector = connector

        self.state = SessionState.IDLE
        self.active = True
        self.ai_link: Optional[Any] = None
        self.conversation_id: Optional[str] = None

        # Outbound telephony counters
        self.sequence_number = 1
        self.chunk_number = 1
        self.bytes_sent = 0
        self.mark_count = 0

        self.start_time: Optional[float] = None

        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._cleaned_up = False
        self._terminated = asyncio.Event()

        # Stats
        self.media_in_count = 0
        self.media_dropped_count = 0
        self.audio_in_count = 0
        self.frames_out_count = 0
        self.decode_error_count = 0

    # Public API (called from the dispatcher)

    async def start(self) -> None:
        """Begin connecting to the voice agent (IDLE -> CONNECTING_AI)."""
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"[{self.stream_sid}] start() in state {self.state.value}")

        self.state = SessionState.CONNECTING_AI
        self.start_time = time.time()
        self._worker = self._spawn(self._run(), "worker")
        self._connect_task = self._spawn(self._connect(), "connect")
        logger.info(f"[{self.stream_sid}] Session started, connecting to agent")

    def handle_telephony(self, message: Any) -> None:
        """Queue an inbound telephony media or stop message."""
        if not self.active:
            return
        if isinstance(message, MediaMessage):
            self._post_caller_media(message)
        else:
            self._queue.put_nowait(message)

    def close(self, reason: str = "telephony socket closed") -> None:
        """Request an orderly shutdown, same path as a stop event."""
        if not self.active:
            return
        self._queue.put_nowait(StopMessage(stream_sid=self.stream_sid, reason=reason))

    async def wait_idle(self) -> None:
        """Wait until every queued event has been processed."""
        await self._queue.join()

    async def wait_closed(self) -> None:
        """Wait until cleanup has finished."""
        await self._terminated.wait()

    async def cleanup(self) -> None:
        """
        Tear the session down. Safe to call more than once.

        Stops the agent reader and connect tasks, closes the agent socket,
        and removes the session from the registry.
        """
        if self._cleaned_up:
            return
        self._cleaned_up = True
        self.active = False
        if self.state is not SessionState.TERMINATED:
            self.state = SessionState.CLOSING

        current = asyncio.current_task()
        for task in (self._connect_task, self._reader_task):
            if task is not None and task is not current and not task.done():
                task.cancel()

        link, self.ai_link = self.ai_link, None
        if link is not None:
            await self._close_link(link)

        await self._registry.remove(self.stream_sid, self)
        self.state = SessionState.TERMINATED

        if self._worker is not None and self._worker is not current and not self._worker.done():
            self._worker.cancel()

        self._terminated.set()

        duration = time.time() - self.start_time if self.start_time else 0.0
        logger.info(
            f"[{self.stream_sid}] Session terminated after {duration:.1f}s "
            f"(media_in={self.media_in_count}, frames_out={self.frames_out_count}, "
            f"dropped={self.media_dropped_count})"
        )

    def get_stats(self) -> dict:
        return {
            "stream_sid": self.stream_sid,
            "state": self.state.value,
            "active": self.active,
            "conversation_id": self.conversation_id,
            "media_in": self.media_in_count,
            "media_dropped": self.media_dropped_count,
            "audio_in": self.audio_in_count,
            "frames_out": self.frames_out_count,
            "marks_out": self.mark_count,
            "decode_errors": self.decode_error_count,
        }

    # Tasks

    def _spawn(self, coro: Awaitable[Any], name: str) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        task.add_done_callback(lambda t: self._on_task_done(name, t))
        return task

    def _on_task_done(self, name: str, task: asyncio.Task) -> None:
        if task.cancelled():
            logger.debug(f"[{self.stream_sid}] Task '{name}' cancelled")
            return
        exc = task.exception()
        if exc:
            logger.error(f"[{self.stream_sid}] Task '{name}' failed: {exc}", exc_info=exc)

    async def _run(self) -> None:
        """Apply queued events one at a time until the session ends."""
        try:
            while self.active:
                event = await self._queue.get()
                try:
                    if self.active:
                        await self._dispatch(event)
                except DecodeError as e:
                    self.decode_error_count += 1
                    logger.error(f"[{self.stream_sid}] Dropping undecodable audio: {e}")
                except websockets.ConnectionClosed as e:
                    logger.warning(f"[{self.stream_sid}] Agent connection lost: {e}")
                    await self.cleanup()
                except Exception as e:
                    logger.error(f"[{self.stream_sid}] Event handling failed: {e}", exc_info=True)
                finally:
                    self._queue.task_done()
        finally:
            await self._drain()

    async def _drain(self) -> None:
        """Discard events left after the session ended."""
        while True:
            try:
                event = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            if isinstance(event, _AgentConnected):
                await self._close_link(event.link)
            self._queue.task_done()

    async def _connect(self) -> None:
        """Open the agent socket and report the outcome to the worker."""
        try:
            link = await asyncio.wait_for(self._connector(), timeout=self.connect_timeout)
        except asyncio.TimeoutError:
            self._queue.put_nowait(
                _AgentFailed(f"agent connect timed out after {self.connect_timeout}s")
            )
            return
        except Exception as e:
            self._queue.put_nowait(_AgentFailed(str(e) or type(e).__name__))
            return

        if not self.active:
            await self._close_link(link)
            return
        self._queue.put_nowait(_AgentConnected(link))

    async def _read_agent(self, link: Any) -> None:
        """Read agent messages; answer pings, queue everything else."""
        reason = "agent closed connection"
        try:
            async for raw in link:
                if not self.active:
                    return
                try:
                    message = parse_agent_message(raw)
                except MessageDecodeError as e:
                    logger.warning(f"[{self.stream_sid}] Bad agent message: {e}")
                    continue

                if isinstance(message, AgentPing):
                    await link.send(agent_proto.dump(Pong(event_id=message.event_id)))
                    continue

                # Agent speech is never dropped.
                self._queue.put_nowait(message)
        except websockets.ConnectionClosed as e:
            reason = f"agent connection closed: {e}"
        finally:
            if self.active:
                self._queue.put_nowait(_AgentClosed(reason))

    def _post_caller_media(self, event: MediaMessage) -> None:
        if self._queue.qsize() >= self.queue_maxsize:
            self.media_dropped_count += 1
            if self.media_dropped_count <= 5 or self.media_dropped_count % 100 == 0:
                logger.warning(
                    f"[{self.stream_sid}] Caller media queue full, dropped={self.media_dropped_count}"
                )
            return
        self._queue.put_nowait(event)

    # Event handlers (worker only)

    async def _dispatch(self, event: Any) -> None:
        if isinstance(event, MediaMessage):
            await self._on_telephony_media(event)
        elif isinstance(event, AgentAudio):
            await self._on_agent_audio(event)
        elif isinstance(event, StopMessage):
            logger.info(f"[{self.stream_sid}] Stop received ({event.reason or 'stop event'})")
            self.state = SessionState.CLOSING
            await self.cleanup()
        elif isinstance(event, _AgentConnected):
            self._on_agent_connected(event.link)
        elif isinstance(event, _AgentFailed):
            logger.error(f"[{self.stream_sid}] Agent connection failed: {event.reason}")
            await self.cleanup()
        elif isinstance(event, _AgentClosed):
            logger.info(f"[{self.stream_sid}] {event.reason}")
            self.state = SessionState.CLOSING
            await self.cleanup()
        elif isinstance(event, ConversationInitiation):
            self.conversation_id = event.conversation_id
            logger.info(
                f"[{self.stream_sid}] Conversation {event.conversation_id} "
                f"(out={event.agent_output_audio_format}, in={event.user_input_audio_format})"
            )
        elif isinstance(event, Interruption):
            logger.info(f"[{self.stream_sid}] Agent interrupted, clearing playback")
            await self._send_telephony(ClearEvent(stream_sid=self.stream_sid))
        elif isinstance(event, OtherAgentEvent):
            logger.debug(f"[{self.stream_sid}] Agent event: {event.type}")
        else:
            logger.debug(f"[{self.stream_sid}] Ignoring {type(event).__name__}")

    def _on_agent_connected(self, link: Any) -> None:
        self.ai_link = link
        self.state = SessionState.STREAMING
        self._reader_task = self._spawn(self._read_agent(link), "agent_reader")
        logger.info(f"[{self.stream_sid}] Agent connected, streaming")

    async def _on_telephony_media(self, message: MediaMessage) -> None:
        """8kHz caller audio -> 16kHz user_audio_chunk."""
        if self.state is not SessionState.STREAMING or self.ai_link is None:
            self.media_dropped_count += 1
            if self.media_dropped_count <= 5 or self.media_dropped_count % 100 == 0:
                logger.warning(
                    f"[{self.stream_sid}] Agent not ready, dropped media "
                    f"(dropped={self.media_dropped_count})"
                )
            return

        pcm_8k = decode_base64_pcm(message.payload)
        pcm_16k = AudioConverter.upsample_8k_to_16k(pcm_8k)
        await self.ai_link.send(
            agent_proto.dump(UserAudioChunk(audio_base64=encode_base64_pcm(pcm_16k)))
        )
        self.media_in_count += 1

    async def _on_agent_audio(self, message: AgentAudio) -> None:
        """16kHz agent audio -> aligned 8kHz media frames followed by a mark."""
        pcm_16k = decode_base64_pcm(message.audio_base64)
        pcm_8k = AudioConverter.downsample_16k_to_8k(pcm_16k)
        self.audio_in_count += 1

        for chunk in chunk_payload(pcm_8k, self.chunk_size):
            await self._send_telephony(
                OutboundMedia(
                    sequence_number=self._next_sequence(),
                    stream_sid=self.stream_sid,
                    chunk=self.chunk_number,
                    timestamp=self.bytes_sent // TELEPHONY_BYTES_PER_MS,
                    payload=encode_base64_pcm(chunk),
                )
            )
            self.chunk_number += 1
            self.bytes_sent += len(chunk)
            self.frames_out_count += 1

        self.mark_count += 1
        await self._send_telephony(
            OutboundMark(
                sequence_number=self._next_sequence(),
                stream_sid=self.stream_sid,
                name=f"audio_{self.mark_count}",
            )
        )

    # Helpers

    def _next_sequence(self) -> int:
        number = self.sequence_number
        self.sequence_number += 1
        return number

    async def _send_telephony(self, event: Any) -> None:
        await self.telephony_link.send_str(telephony_proto.dump(event))

    async def _close_link(self, link: Any) -> None:
        try:
            await link.close()
        except Exception as e:
            logger.debug(f"[{self.stream_sid}] Agent socket close error: {e}")
