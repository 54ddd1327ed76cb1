"""Voice agent connection module."""
from .client import VoiceAgentClient

__all__ = ["VoiceAgentClient"]
