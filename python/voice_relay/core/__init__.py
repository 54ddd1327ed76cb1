"""Core session components."""
from .call_session import CallSession, SessionState
from .registry import SessionRegistry

__all__ = [
    "CallSession",
    "SessionState",
    "SessionRegistry",
]
