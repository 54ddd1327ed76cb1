"""Tests for the voice agent client."""

import os
import sys

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from unittest.mock import AsyncMock, patch

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../python'))

from voice_relay.agent import VoiceAgentClient
from voice_relay.config import RelayConfig
from voice_relay.errors import HandshakeError


def signed_url_app(status=200, body=None):
    seen = {}

    async def handler(request):
        seen["api_key"] = request.headers.get("xi-api-key")
        seen["agent_id"] = request.query.get("agent_id")
        return web.json_response(body if body is not None else {}, status=status)

    app = web.Application()
    app.router.add_get("/signed", handler)
    return app, seen


class TestHandshake:
    """Test the signed URL exchange."""

    @pytest.mark.asyncio
    async def test_returns_signed_url(self):
        app, seen = signed_url_app(body={"signed_url": "wss://agent.test/conv?token=t"})

        async with TestServer(app) as server:
            client = VoiceAgentClient("key", "agent-1", str(server.make_url("/signed")))
            url = await client.get_signed_url()

        assert url == "wss://agent.test/conv?token=t"
        assert seen == {"api_key": "key", "agent_id": "agent-1"}

    @pytest.mark.asyncio
    async def test_missing_signed_url(self):
        app, _ = signed_url_app(body={"other": "value"})

        async with TestServer(app) as server:
            client = VoiceAgentClient("key", "agent-1", str(server.make_url("/signed")))
            with pytest.raises(HandshakeError, match="missing"):
                await client.get_signed_url()

    @pytest.mark.asyncio
    async def test_error_status(self):
        app, _ = signed_url_app(status=401, body={"detail": "invalid api key"})

        async with TestServer(app) as server:
            client = VoiceAgentClient("bad", "agent-1", str(server.make_url("/signed")))
            with pytest.raises(HandshakeError, match="401"):
                await client.get_signed_url()

    @pytest.mark.asyncio
    async def test_network_error(self):
        client = VoiceAgentClient("key", "agent-1", "http://127.0.0.1:1/signed")

        with pytest.raises(HandshakeError):
            await client.get_signed_url()


class TestConnect:
    """Test opening the agent socket."""

    @pytest.mark.asyncio
    async def test_connects_to_signed_url(self):
        client = VoiceAgentClient("key", "agent-1", "http://unused")
        link = object()

        with patch.object(client, "get_signed_url", AsyncMock(return_value="wss://agent.test/x")), \
                patch("voice_relay.agent.client.websockets.connect", AsyncMock(return_value=link)) as mock_connect:
            result = await client.connect()

        assert result is link
        assert mock_connect.await_args.args[0] == "wss://agent.test/x"

    @pytest.mark.asyncio
    async def test_socket_failure_raises_handshake_error(self):
        client = VoiceAgentClient("key", "agent-1", "http://unused")

        with patch.object(client, "get_signed_url", AsyncMock(return_value="wss://agent.test/x")), \
                patch("voice_relay.agent.client.websockets.connect",
                      AsyncMock(side_effect=OSError("Connection refused"))):
            with pytest.raises(HandshakeError):
                await client.connect()

    def test_from_config(self):
        config = RelayConfig(elevenlabs_api_key="k", elevenlabs_agent_id="a")

        client = VoiceAgentClient.from_config(config)

        assert client.api_key == "k"
        assert client.agent_id == "a"
        assert client.signed_url_endpoint == config.signed_url_endpoint


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
