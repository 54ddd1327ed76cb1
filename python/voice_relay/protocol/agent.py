"""
Voice agent socket messages.

Inbound messages carry a top-level ``type``. Only the types the relay acts on
get their own class; everything else (transcripts, agent text responses,
debug events) decodes to ``OtherAgentEvent`` and is only logged.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from ..errors import MessageDecodeError


@dataclass
class ConversationInitiation:
    """First message on a new conversation."""
    conversation_id: Optional[str] = None
    agent_output_audio_format: Optional[str] = None
    user_input_audio_format: Optional[str] = None


@dataclass
class AgentAudio:
    """Agent speech as base64 16kHz PCM16."""
    audio_base64: str
    event_id: Optional[int] = None


@dataclass
class AgentPing:
    """Keep-alive; must be answered with a pong carrying the same event_id."""
    event_id: Optional[int]
    ping_ms: Optional[int] = None


@dataclass
class Interruption:
    """The caller barged in; pending agent audio should be discarded."""
    event_id: Optional[int] = None


@dataclass
class OtherAgentEvent:
    """Any message type the relay does not act on."""
    type: str
    data: Dict[str, Any] = field(default_factory=dict)


AgentMessage = Union[ConversationInitiation, AgentAudio, AgentPing, Interruption, OtherAgentEvent]


def _nested(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    return section if isinstance(section, dict) else {}


def parse_agent_message(raw: Union[str, bytes]) -> AgentMessage:
    """
    Decode one message received from the voice agent.

    Raises:
        MessageDecodeError: on invalid JSON or a missing ``type``
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MessageDecodeError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        raise MessageDecodeError("Agent message without type")

    msg_type = data["type"]

    if msg_type == "conversation_initiation_metadata":
        meta = _nested(data, "conversation_initiation_metadata_event")
        return ConversationInitiation(
            conversation_id=meta.get("conversation_id"),
            agent_output_audio_format=meta.get("agent_output_audio_format"),
            user_input_audio_format=meta.get("user_input_audio_format"),
        )

    if msg_type == "audio":
        audio = _nested(data, "audio_event")
        audio_b64 = audio.get("audio_base_64")
        if not isinstance(audio_b64, str):
            raise MessageDecodeError("audio event without audio_base_64")
        return AgentAudio(audio_base64=audio_b64, event_id=audio.get("event_id"))

    if msg_type == "ping":
        ping = _nested(data, "ping_event")
        return AgentPing(event_id=ping.get("event_id"), ping_ms=ping.get("ping_ms"))

    if msg_type == "interruption":
        interruption = _nested(data, "interruption_event")
        return Interruption(event_id=interruption.get("event_id"))

    return OtherAgentEvent(type=msg_type, data=data)


@dataclass
class UserAudioChunk:
    """Caller audio as base64 16kHz PCM16."""
    audio_base64: str

    def to_dict(self) -> Dict[str, Any]:
        return {"user_audio_chunk": self.audio_base64}


@dataclass
class Pong:
    """Reply to a ping."""
    event_id: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "pong", "event_id": self.event_id}


def dump(message: Any) -> str:
    """Serialise an outbound agent message to JSON text."""
    return json.dumps(message.to_dict())
