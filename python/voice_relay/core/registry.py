"""
Session Registry.

Maps stream ids to live call sessions. Constructed once at process start and
passed to the dispatcher; every mutation happens under a single lock since
calls start and stop concurrently.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from .call_session import CallSession

logger = logging.getLogger("relay.registry")


class SessionRegistry:
    """Registry of live call sessions keyed by stream id."""

    def __init__(self):
        self._sessions: Dict[str, "CallSession"] = {}
        self._lock = asyncio.Lock()
        self._registered_count = 0

    async def add(self, session: "CallSession") -> bool:
        """
        Register a session.

        Returns:
            False if the stream id is already live; the existing session is
            left untouched.
        """
        async with self._lock:
            if session.stream_sid in self._sessions:
                return False
            self._sessions[session.stream_sid] = session
            self._registered_count += 1
        logger.debug(f"Session registered: {session.stream_sid}")
        return True

    async def remove(
        self,
        stream_sid: str,
        session: Optional["CallSession"] = None,
    ) -> bool:
        """
        Unregister a session.

        Args:
            stream_sid: Stream id to remove
            session: If given, only remove when it is the registered entry

        Returns:
            True if an entry was removed
        """
        async with self._lock:
            current = self._sessions.get(stream_sid)
            if current is None:
                return False
            if session is not None and current is not session:
                return False
            del self._sessions[stream_sid]
        logger.debug(f"Session removed: {stream_sid}")
        return True

    def get(self, stream_sid: str) -> Optional["CallSession"]:
        return self._sessions.get(stream_sid)

    def __contains__(self, stream_sid: object) -> bool:
        return stream_sid in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def stream_sids(self) -> List[str]:
        return list(self._sessions)

    async def close_all(self) -> None:
        """Clean up every live session."""
        async with self._lock:
            sessions = list(self._sessions.values())
        if sessions:
            logger.info(f"Closing {len(sessions)} active sessions")
        for session in sessions:
            await session.cleanup()

    def get_stats(self) -> dict:
        return {
            "active_sessions": len(self._sessions),
            "total_registered": self._registered_count,
        }
