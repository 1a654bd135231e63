"""
Session Store.

Key-value repository for conversation sessions. Two backends share the
same ``get`` / ``put`` / ``delete`` interface:

- ``InMemorySessionStore`` for a single process (default, and in tests)
- ``RedisSessionStore`` for multi-instance deployments

Both evict sessions that have been idle longer than the configured TTL.
"""

from __future__ import annotations

import time
from typing import Callable, Optional, Protocol

import redis.asyncio as aioredis

from src.config import SessionBackend, Settings, get_settings
from src.logging_config import get_logger
from src.schemas.session import Session

logger = get_logger(__name__)

SESSION_KEY = "recruiter:session:{}"  # JSON-serialized Session


class SessionRepository(Protocol):
    async def get(self, session_id: str) -> Optional[Session]: ...

    async def put(self, session: Session) -> None: ...

    async def delete(self, session_id: str) -> bool: ...


class InMemorySessionStore:
    """Process-local session map with idle-TTL eviction."""

    def __init__(
        self,
        ttl_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, tuple[Session, float]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [
            sid for sid, (_, touched) in self._sessions.items()
            if now - touched >= self.ttl_seconds
        ]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info("sessions_evicted", count=len(expired))

    async def get(self, session_id: str) -> Optional[Session]:
        self._evict_expired()
        entry = self._sessions.get(session_id)
        if entry is None:
            return None
        session, _ = entry
        # Hand out a copy so a failed turn can't leave half-applied changes
        return session.model_copy(deep=True)

    async def put(self, session: Session) -> None:
        self._evict_expired()
        self._sessions[session.id] = (session.model_copy(deep=True), self._clock())

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None


class RedisSessionStore:
    """Sessions as JSON strings in Redis, expiring after ``ttl_seconds`` idle."""

    def __init__(self, client: aioredis.Redis, ttl_seconds: int) -> None:
        self._redis = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int) -> RedisSessionStore:
        return cls(aioredis.from_url(url, decode_responses=True), ttl_seconds)

    async def get(self, session_id: str) -> Optional[Session]:
        raw = await self._redis.get(SESSION_KEY.format(session_id))
        if raw is None:
            return None
        return Session.model_validate_json(raw)

    async def put(self, session: Session) -> None:
        await self._redis.set(
            SESSION_KEY.format(session.id),
            session.model_dump_json(),
            ex=self.ttl_seconds,
        )

    async def delete(self, session_id: str) -> bool:
        return bool(await self._redis.delete(SESSION_KEY.format(session_id)))

    async def close(self) -> None:
        await self._redis.aclose()


def build_session_store(settings: Optional[Settings] = None) -> SessionRepository:
    settings = settings or get_settings()
    if settings.session_backend == SessionBackend.REDIS:
        logger.info("session_store_initialized", backend="redis")
        return RedisSessionStore.from_url(settings.redis_url, settings.session_ttl_seconds)
    logger.info("session_store_initialized", backend="memory", ttl_seconds=settings.session_ttl_seconds)
    return InMemorySessionStore(settings.session_ttl_seconds)
