"""
Voice Relay - telephony media stream to conversational voice agent bridge.

Relays call audio between a telephony gateway and a voice agent:
- Gateway WebSocket listener (8kHz PCM16, JSON envelopes keyed by stream_sid)
- One voice agent WebSocket per call (16kHz PCM16)
- 8kHz <-> 16kHz resampling and frame-aligned re-chunking
- Keep-alive ping/pong and call lifecycle handling

Usage:
    python -m voice_relay

Environment Variables:
    ELEVENLABS_API_KEY - Voice agent API key
    ELEVENLABS_AGENT_ID - Voice agent identifier
    RELAY_PORT - Listen port (default: 8000)
    RELAY_LOG_LEVEL - Log level (DEBUG, INFO, WARNING, ERROR)
"""

__version__ = "1.0.0"

from .config import RelayConfig, get_config
from .core import CallSession, SessionRegistry, SessionState
from .gateway import RelayServer

__all__ = [
    "RelayConfig",
    "get_config",
    "CallSession",
    "SessionRegistry",
    "SessionState",
    "RelayServer",
]
