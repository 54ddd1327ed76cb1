"""Pytest configuration and fixtures."""

import os
import sys

import pytest

# Add python directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../python'))
sys.path.insert(0, os.path.dirname(__file__))

from fakes import FakeAgentLink, FakeTelephonyLink


def pytest_configure(config):
    """Configure pytest."""
    os.environ['RELAY_LOG_LEVEL'] = 'WARNING'
    # Register asyncio marker
    config.addinivalue_line("markers", "asyncio: mark test as async")


@pytest.fixture
def agent_link():
    return FakeAgentLink()


@pytest.fixture
def telephony_link():
    return FakeTelephonyLink()


@pytest.fixture
def connector(agent_link):
    """Connector returning the shared fake agent link."""
    async def _connect():
        return agent_link
    return _connect


@pytest.fixture
def sample_audio_silence():
    """320 bytes of silent 8kHz PCM16 (20ms)."""
    return b'\x00' * 320


@pytest.fixture
def sample_audio_tone():
    """440Hz tone at 8kHz, 100ms."""
    import numpy as np
    t = np.arange(800) / 8000.0
    return (np.sin(2 * np.pi * 440 * t) * 10000).astype('<i2').tobytes()
