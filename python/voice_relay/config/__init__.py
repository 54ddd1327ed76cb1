"""Configuration module."""
from .settings import RelayConfig, get_config, reset_config
from .logging import setup_logging

__all__ = ["RelayConfig", "get_config", "reset_config", "setup_logging"]
