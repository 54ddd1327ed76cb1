"""Tests for the session registry."""

import os
import sys

import pytest
from unittest.mock import AsyncMock, MagicMock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../python'))

from voice_relay.core import SessionRegistry


def fake_session(stream_sid):
    session = MagicMock()
    session.stream_sid = stream_sid
    session.cleanup = AsyncMock()
    return session


class TestSessionRegistry:

    @pytest.mark.asyncio
    async def test_add_and_get(self):
        registry = SessionRegistry()
        session = fake_session("A")

        assert await registry.add(session) is True
        assert registry.get("A") is session
        assert "A" in registry
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self):
        """Second start for a live stream id keeps the original session."""
        registry = SessionRegistry()
        first, second = fake_session("A"), fake_session("A")

        assert await registry.add(first) is True
        assert await registry.add(second) is False
        assert registry.get("A") is first
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_remove(self):
        registry = SessionRegistry()
        session = fake_session("A")
        await registry.add(session)

        assert await registry.remove("A") is True
        assert "A" not in registry
        assert await registry.remove("A") is False

    @pytest.mark.asyncio
    async def test_remove_only_matching_session(self):
        registry = SessionRegistry()
        current = fake_session("A")
        await registry.add(current)

        assert await registry.remove("A", fake_session("A")) is False
        assert registry.get("A") is current
        assert await registry.remove("A", current) is True

    @pytest.mark.asyncio
    async def test_close_all(self):
        registry = SessionRegistry()
        sessions = [fake_session(sid) for sid in ("A", "B")]
        for session in sessions:
            await registry.add(session)

        await registry.close_all()

        for session in sessions:
            session.cleanup.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stats(self):
        registry = SessionRegistry()
        await registry.add(fake_session("A"))
        await registry.add(fake_session("B"))
        await registry.remove("A")

        stats = registry.get_stats()

        assert stats == {"active_sessions": 1, "total_registered": 2}


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
