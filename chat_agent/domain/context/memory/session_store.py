from typing import Dict, List, Optional, Callable, Any
import asyncio
import time
from contextlib import asynccontextmanager
import structlog

from chat_agent.domain.models.conversation import Message, Role, Session, SessionStats

logger = structlog.get_logger(__name__)


class SessionStore:
    """Per-session conversation history bounded by length and idle time"""

    def __init__(
        self,
        max_history: int = 20,
        idle_timeout: float = 30 * 60,
        sweep_interval: float = 10 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.max_history = max_history
        self.idle_timeout = idle_timeout
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._session_locks: Dict[str, asyncio.Lock] = {}
        self._lock = asyncio.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    def _is_expired(self, session: Session, now: float) -> bool:
        return now - session.last_activity_at > self.idle_timeout

    def session_lock(self, session_id: str) -> asyncio.Lock:
        """Lock serialising all turns of one session"""

        lock = self._session_locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._session_locks[session_id] = lock
        return lock

    @asynccontextmanager
    async def exclusive(self, session_id: str):
        """Hold the per-session lock for the duration of a turn"""

        async with self.session_lock(session_id):
            yield

    async def get_context(self, session_id: str) -> List[Message]:
        """Get conversation history, dropping the session if it has gone idle"""

        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return []

            if self._is_expired(session, self._clock()):
                del self._sessions[session_id]
                logger.info("Session expired, clearing conversation", session_id=session_id)
                return []

            return list(session.messages)

    async def append(
        self,
        session_id: str,
        role: Role,
        content: str,
        **metadata: Any
    ) -> Message:
        """Append a message, creating the session on first use"""

        async with self._lock:
            now = self._clock()
            session = self._sessions.get(session_id)

            # An idle session starts over rather than being extended
            if session is not None and self._is_expired(session, now):
                session = None

            if session is None:
                session = Session(session_id=session_id, last_activity_at=now)
                self._sessions[session_id] = session

            message = Message(role=Role(role), content=content or "", **metadata)
            session.messages.append(message)
            session.last_activity_at = now

            if len(session.messages) > self.max_history:
                session.messages = session.messages[-self.max_history:]

        logger.debug(
            "Added message to conversation",
            session_id=session_id,
            role=message.role.value,
            total_messages=len(session.messages)
        )
        return message

    async def clear(self, session_id: str) -> bool:
        """Delete a session immediately"""

        async with self._lock:
            removed = self._sessions.pop(session_id, None) is not None

        logger.info("Cleared conversation", session_id=session_id, existed=removed)
        return removed

    async def clear_all(self) -> None:
        """Delete all sessions"""

        async with self._lock:
            self._sessions.clear()

        logger.info("Cleared all conversations")

    async def stats(self) -> SessionStats:
        """Count sessions and messages; messages only count in active sessions"""

        async with self._lock:
            now = self._clock()
            active = [s for s in self._sessions.values() if not self._is_expired(s, now)]

            return SessionStats(
                total_sessions=len(self._sessions),
                active_sessions=len(active),
                total_messages=sum(len(s.messages) for s in active)
            )

    async def cleanup_expired(self) -> int:
        """Remove every idle-expired session and return how many were removed"""

        async with self._lock:
            now = self._clock()
            expired = [
                session_id for session_id, session in self._sessions.items()
                if self._is_expired(session, now)
            ]

            for session_id in expired:
                del self._sessions[session_id]

            # Locks of vanished sessions can go once nobody holds them
            for session_id in list(self._session_locks):
                if session_id not in self._sessions and not self._session_locks[session_id].locked():
                    del self._session_locks[session_id]

        for session_id in expired:
            logger.info("Cleaned up expired session", session_id=session_id)

        return len(expired)

    async def _sweep_loop(self):
        """Periodic idle-session cleanup"""

        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                await self.cleanup_expired()
            except Exception as e:
                logger.error("Session sweep error", error=str(e))

    def start_sweeper(self) -> None:
        """Start the background idle-session sweep"""

        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop())
            logger.info("Session sweeper started", interval=self.sweep_interval)

    async def stop_sweeper(self) -> None:
        """Stop the background sweep"""

        if self._sweeper is None:
            return

        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.info("Session sweeper stopped")
