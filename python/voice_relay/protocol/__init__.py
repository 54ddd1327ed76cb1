"""Wire formats for the telephony gateway and the voice agent."""
from .telephony import (
    ClearEvent,
    ConnectedEvent,
    DtmfMessage,
    MarkMessage,
    MediaMessage,
    OutboundMark,
    OutboundMedia,
    StartMessage,
    StopMessage,
    TelephonyMessage,
    parse_telephony_message,
)
from .agent import (
    AgentAudio,
    AgentMessage,
    AgentPing,
    ConversationInitiation,
    Interruption,
    OtherAgentEvent,
    Pong,
    UserAudioChunk,
    parse_agent_message,
)

__all__ = [
    "ClearEvent",
    "ConnectedEvent",
    "DtmfMessage",
    "MarkMessage",
    "MediaMessage",
    "OutboundMark",
    "OutboundMedia",
    "StartMessage",
    "StopMessage",
    "TelephonyMessage",
    "parse_telephony_message",
    "AgentAudio",
    "AgentMessage",
    "AgentPing",
    "ConversationInitiation",
    "Interruption",
    "OtherAgentEvent",
    "Pong",
    "UserAudioChunk",
    "parse_agent_message",
]
