"""
Voice agent client.

Opening a conversation is two steps:
1. GET the signed-URL endpoint with the API key to obtain a one-time
   WebSocket address for the configured agent.
2. Open the WebSocket against that address.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp
import websockets

from ..config import RelayConfig
from ..errors import HandshakeError

logger = logging.getLogger("relay.agent")


class VoiceAgentClient:
    """Create voice agent connections, one per call."""

    def __init__(
        self,
        api_key: str,
        agent_id: str,
        signed_url_endpoint: str,
        handshake_timeout: float = 5.0,
        ping_interval: Optional[float] = 20.0,
    ):
        """
        Initialize the client.

        Args:
            api_key: Sent as the ``xi-api-key`` header
            agent_id: Agent to start conversations with
            signed_url_endpoint: Handshake URL returning ``signed_url``
            handshake_timeout: Total timeout for the handshake request
            ping_interval: WebSocket-level ping interval (None disables)
        """
        self.api_key = api_key
        self.agent_id = agent_id
        self.signed_url_endpoint = signed_url_endpoint
        self.handshake_timeout = handshake_timeout
        self.ping_interval = ping_interval

    @classmethod
    def from_config(cls, config: RelayConfig) -> "VoiceAgentClient":
        return cls(
            api_key=config.elevenlabs_api_key,
            agent_id=config.elevenlabs_agent_id,
            signed_url_endpoint=config.signed_url_endpoint,
            handshake_timeout=config.handshake_timeout,
        )

    async def get_signed_url(self) -> str:
        """
        Request a one-time conversation address.

        Returns:
            The signed WebSocket URL

        Raises:
            HandshakeError: on network errors, non-2xx responses or a
                response without ``signed_url``
        """
        timeout = aiohttp.ClientTimeout(total=self.handshake_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as http:
                async with http.get(
                    self.signed_url_endpoint,
                    params={"agent_id": self.agent_id},
                    headers={"xi-api-key": self.api_key},
                ) as resp:
                    if resp.status >= 300:
                        body = await resp.text()
                        raise HandshakeError(
                            f"Signed URL request failed: HTTP {resp.status} {body[:200]}"
                        )
                    data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise HandshakeError(f"Signed URL request failed: {e}") from e

        signed_url = data.get("signed_url") if isinstance(data, dict) else None
        if not signed_url:
            raise HandshakeError("Signed URL missing from handshake response")
        return signed_url

    async def connect(self) -> Any:
        """
        Run the handshake and open the agent WebSocket.

        Returns:
            Open websockets client connection

        Raises:
            HandshakeError: if either step fails
        """
        signed_url = await self.get_signed_url()
        try:
            ws = await websockets.connect(
                signed_url,
                max_size=None,
                ping_interval=self.ping_interval,
            )
        except (OSError, websockets.InvalidHandshake, websockets.InvalidURI) as e:
            raise HandshakeError(f"Agent socket open failed: {e}") from e

        logger.debug(f"Agent socket open for agent {self.agent_id}")
        return ws
