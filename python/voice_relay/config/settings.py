"""
Relay configuration with environment variable support.

Environment Variables:
    RELAY_HOST - Listen address (default: 0.0.0.0)
    RELAY_PORT - Listen port (default: 8000)
    RELAY_STREAM_PATH - WebSocket path for the telephony gateway (default: /stream)
    RELAY_CHUNK_SIZE - Max bytes per telephony media frame (default: 3200)
    RELAY_AI_CONNECT_TIMEOUT - Seconds allowed for handshake + AI socket open
    RELAY_DEBUG - Enable debug logging (true/false)
    ELEVENLABS_API_KEY - Voice agent API key
    ELEVENLABS_AGENT_ID - Voice agent identifier
    ELEVENLABS_SIGNED_URL_ENDPOINT - Handshake endpoint override
"""

import os
from dataclasses import dataclass, field
from typing import Optional

DEFAULT_SIGNED_URL_ENDPOINT = (
    "https://api.elevenlabs.io/v1/convai/conversation/get_signed_url"
)


def _normalize_path(value: str) -> str:
    """Ensure the stream path starts with a slash."""
    value = value.strip() or "/stream"
    if not value.startswith("/"):
        value = "/" + value
    return value


@dataclass
class RelayConfig:
    """Relay configuration."""

    # Listener
    host: str = field(default_factory=lambda: os.getenv("RELAY_HOST", "0.0.0.0"))
    port: int = field(
        default_factory=lambda: int(os.getenv("RELAY_PORT", "8000"))
    )
    stream_path: str = field(
        default_factory=lambda: _normalize_path(os.getenv("RELAY_STREAM_PATH", "/stream"))
    )

    # Voice agent credentials
    elevenlabs_api_key: str = field(
        default_factory=lambda: os.getenv("ELEVENLABS_API_KEY", "")
    )
    elevenlabs_agent_id: str = field(
        default_factory=lambda: os.getenv("ELEVENLABS_AGENT_ID", "")
    )
    signed_url_endpoint: str = field(
        default_factory=lambda: os.getenv(
            "ELEVENLABS_SIGNED_URL_ENDPOINT", DEFAULT_SIGNED_URL_ENDPOINT
        )
    )

    # Audio settings
    telephony_sample_rate: int = 8000  # gateway side
    agent_sample_rate: int = 16000  # voice agent side
    chunk_size: int = field(
        default_factory=lambda: int(os.getenv("RELAY_CHUNK_SIZE", "3200"))
    )

    # Session settings
    ai_connect_timeout: float = field(
        default_factory=lambda: float(os.getenv("RELAY_AI_CONNECT_TIMEOUT", "10.0"))
    )
    handshake_timeout: float = field(
        default_factory=lambda: float(os.getenv("RELAY_HANDSHAKE_TIMEOUT", "5.0"))
    )
    session_queue_maxsize: int = field(
        default_factory=lambda: int(os.getenv("RELAY_SESSION_QUEUE_MAXSIZE", "500"))
    )

    # Debug
    debug: bool = field(
        default_factory=lambda: os.getenv("RELAY_DEBUG", "false").lower() == "true"
    )

    def __post_init__(self):
        """Validate settings after initialization."""
        import logging

        logger = logging.getLogger("relay.config")

        if not self.has_credentials:
            logger.warning(
                "Voice agent credentials missing. "
                "Set ELEVENLABS_API_KEY and ELEVENLABS_AGENT_ID."
            )
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")

    @property
    def has_credentials(self) -> bool:
        """True when both the API key and agent id are set."""
        return bool(self.elevenlabs_api_key and self.elevenlabs_agent_id)


# Singleton config instance
_config: Optional[RelayConfig] = None


def get_config() -> RelayConfig:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = RelayConfig()
    return _config


def reset_config():
    """Reset the global config (useful for testing)."""
    global _config
    _config = None
