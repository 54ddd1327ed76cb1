"""
Telephony gateway message envelopes.

Inbound frames are JSON objects with a top-level ``event`` field and are
decoded once into one of the message classes below. Outbound events are
built from dataclasses and serialised with ``to_dict()``.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ..errors import MessageDecodeError


# Inbound

@dataclass
class StartMessage:
    """Call started."""
    stream_sid: str
    call_sid: Optional[str] = None
    account_sid: Optional[str] = None
    from_number: Optional[str] = None
    to_number: Optional[str] = None


@dataclass
class MediaMessage:
    """Inbound 8kHz PCM16 audio (base64)."""
    stream_sid: str
    payload: str
    chunk: Optional[int] = None
    timestamp: Optional[int] = None


@dataclass
class StopMessage:
    """Call ended."""
    stream_sid: str
    reason: Optional[str] = None


@dataclass
class DtmfMessage:
    """Keypad digit pressed by the caller."""
    stream_sid: str
    digit: str


@dataclass
class MarkMessage:
    """Playback of a previously sent mark has completed."""
    stream_sid: str
    name: str


TelephonyMessage = Union[StartMessage, MediaMessage, StopMessage, DtmfMessage, MarkMessage]


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _stream_sid(data: Dict[str, Any], section: Optional[Dict[str, Any]] = None) -> str:
    """Read stream_sid from the top level or from the event's own section."""
    sid = data.get("stream_sid") or data.get("streamSid")
    if not sid and section:
        sid = section.get("stream_sid") or section.get("streamSid")
    if not sid or not isinstance(sid, str):
        raise MessageDecodeError(f"'{data.get('event')}' event without stream_sid")
    return sid


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise MessageDecodeError(f"'{name}' must be an object")
    return section


def parse_telephony_message(raw: Union[str, bytes]) -> TelephonyMessage:
    """
    Decode one inbound telephony frame.

    Args:
        raw: JSON text received on the gateway socket

    Returns:
        The decoded message

    Raises:
        MessageDecodeError: on invalid JSON, missing fields or unknown events
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MessageDecodeError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MessageDecodeError("Telephony message must be a JSON object")

    event = data.get("event")

    if event == "start":
        start = _section(data, "start")
        return StartMessage(
            stream_sid=_stream_sid(data, start),
            call_sid=start.get("call_sid"),
            account_sid=start.get("account_sid"),
            from_number=start.get("from"),
            to_number=start.get("to"),
        )

    if event == "media":
        media = _section(data, "media")
        payload = media.get("payload")
        if not isinstance(payload, str):
            raise MessageDecodeError("media event without payload")
        return MediaMessage(
            stream_sid=_stream_sid(data, media),
            payload=payload,
            chunk=_optional_int(media.get("chunk")),
            timestamp=_optional_int(media.get("timestamp")),
        )

    if event == "stop":
        stop = _section(data, "stop")
        return StopMessage(stream_sid=_stream_sid(data, stop), reason=stop.get("reason"))

    if event == "dtmf":
        dtmf = _section(data, "dtmf")
        return DtmfMessage(stream_sid=_stream_sid(data, dtmf), digit=str(dtmf.get("digit", "")))

    if event == "mark":
        mark = _section(data, "mark")
        return MarkMessage(stream_sid=_stream_sid(data, mark), name=str(mark.get("name", "")))

    raise MessageDecodeError(f"Unknown telephony event: {event!r}")


# Outbound

@dataclass
class ConnectedEvent:
    """Sent once when the gateway socket opens."""

    def to_dict(self) -> Dict[str, Any]:
        return {"event": "connected"}


@dataclass
class OutboundMedia:
    """One chunk of 8kHz audio for playback."""
    sequence_number: int
    stream_sid: str
    chunk: int
    timestamp: int
    payload: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "media",
            "sequence_number": str(self.sequence_number),
            "stream_sid": self.stream_sid,
            "media": {
                "chunk": str(self.chunk),
                "timestamp": str(self.timestamp),
                "payload": self.payload,
            },
        }


@dataclass
class OutboundMark:
    """Marker sent after an audio burst so playback progress can be tracked."""
    sequence_number: int
    stream_sid: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "mark",
            "sequence_number": str(self.sequence_number),
            "stream_sid": self.stream_sid,
            "mark": {"name": self.name},
        }


@dataclass
class ClearEvent:
    """Ask the gateway to drop any audio still buffered for playback."""
    stream_sid: str

    def to_dict(self) -> Dict[str, Any]:
        return {"event": "clear", "stream_sid": self.stream_sid}


def dump(event: Any) -> str:
    """Serialise an outbound event to JSON text."""
    return json.dumps(event.to_dict())
