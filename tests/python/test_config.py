"""Tests for configuration module."""

import logging
import os
import pytest
import sys

# Add python directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../python'))

from voice_relay.config import RelayConfig, get_config, reset_config, setup_logging


class TestRelayConfig:
    """Test RelayConfig class."""

    def setup_method(self):
        """Reset config before each test."""
        reset_config()
        # Clear relevant env vars
        for key in list(os.environ.keys()):
            if key.startswith('RELAY_') and key != 'RELAY_LOG_LEVEL':
                del os.environ[key]
            elif key.startswith('ELEVENLABS_'):
                del os.environ[key]

    def teardown_method(self):
        """Leave no overrides behind for other test modules."""
        self.setup_method()

    def test_default_values(self):
        """Test default configuration values."""
        config = RelayConfig()

        assert config.port == 8000
        assert config.stream_path == "/stream"
        assert config.chunk_size == 3200
        assert config.telephony_sample_rate == 8000
        assert config.agent_sample_rate == 16000
        assert config.signed_url_endpoint.startswith("https://")
        assert config.has_credentials is False

    def test_env_var_override(self):
        """Test environment variable overrides."""
        os.environ['RELAY_PORT'] = '9000'
        os.environ['RELAY_CHUNK_SIZE'] = '1000'
        os.environ['RELAY_STREAM_PATH'] = 'media'
        os.environ['ELEVENLABS_API_KEY'] = 'key'
        os.environ['ELEVENLABS_AGENT_ID'] = 'agent'

        config = RelayConfig()

        assert config.port == 9000
        assert config.chunk_size == 1000
        assert config.stream_path == "/media"
        assert config.has_credentials is True

    def test_invalid_chunk_size(self):
        """Test that a non-positive chunk size is rejected."""
        os.environ['RELAY_CHUNK_SIZE'] = '0'

        with pytest.raises(ValueError):
            RelayConfig()

    def test_singleton_get_config(self):
        """Test singleton pattern of get_config."""
        config1 = get_config()
        config2 = get_config()

        assert config1 is config2

    def test_reset_config(self):
        """Test config reset."""
        config1 = get_config()
        reset_config()
        config2 = get_config()

        assert config1 is not config2


class TestSetupLogging:
    """Test setup_logging helper."""

    def teardown_method(self):
        logging.getLogger("relay.test").handlers.clear()

    def test_level_and_single_handler(self):
        setup_logging(level="DEBUG", name="relay.test")
        logger = setup_logging(level="DEBUG", name="relay.test")

        assert logger.name == "relay.test"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_module_loggers_are_children(self):
        logger = setup_logging(level="WARNING", name="relay.test")
        child = logging.getLogger("relay.test.gateway")

        assert child.parent is logger
        assert child.getEffectiveLevel() == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        logger = setup_logging(level="LOUD", name="relay.test")

        assert logger.level == logging.INFO


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
