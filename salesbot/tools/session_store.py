"""
Session storage: key-value backends plus the repository that owns expiry
and per-user locking.

Backends get/set/delete flat JSON records and hand out a per-user lock
that holds across processes where the backend is shared. SessionRepository
turns records into Session models, recreates sessions older than the TTL,
and serializes every turn and nudge for the same user behind one asyncio
lock plus the backend lock.

Redis keeps records for twice the TTL, counted from the last touch, so a
buyer who comes back after the TTL is still recognised as returning.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Optional, Protocol

from pydantic import ValidationError
from redis import asyncio as redis_async
from redis.exceptions import RedisError

from salesbot.config import settings
from salesbot.schemas.session_schema import Session

logger = logging.getLogger(__name__)

KEY_PREFIX = "sess:"
INDEX_KEY = "sess:index"
LOCK_PREFIX = "lock:sess:"
RETENTION_FACTOR = 2


class SessionStoreError(Exception):
    """Raised when session storage cannot be read, written or locked."""


class SessionStore(Protocol):
    async def get(self, user_id: str) -> Optional[dict]: ...

    async def set(self, user_id: str, record: dict) -> None: ...

    async def delete(self, user_id: str) -> None: ...

    async def list_user_ids(self) -> list[str]: ...

    def lock(self, user_id: str) -> AsyncContextManager[None]: ...


class InMemorySessionStore:
    """Process-local store for the console demo and tests."""

    def __init__(self) -> None:
        self._records: dict[str, str] = {}

    async def get(self, user_id: str) -> Optional[dict]:
        raw = self._records.get(user_id)
        return json.loads(raw) if raw is not None else None

    async def set(self, user_id: str, record: dict) -> None:
        self._records[user_id] = json.dumps(record)

    async def delete(self, user_id: str) -> None:
        self._records.pop(user_id, None)

    async def list_user_ids(self) -> list[str]:
        return list(self._records)

    @asynccontextmanager
    async def lock(self, user_id: str) -> AsyncIterator[None]:
        # One process; the repository's asyncio lock is enough.
        yield


class RedisSessionStore:
    """One JSON string per user under ``sess:<id>``, indexed in a set."""

    def __init__(
        self,
        client: redis_async.Redis,
        ttl_seconds: Optional[int] = None,
        lock_timeout: Optional[float] = None,
        lock_wait: Optional[float] = None,
    ) -> None:
        self._client = client
        if ttl_seconds is None:
            ttl_seconds = settings.conversation.session_ttl_days * 86400
        self._retention = int(ttl_seconds * RETENTION_FACTOR)
        self._lock_timeout = lock_timeout or settings.integrations.session_lock_timeout_sec
        self._lock_wait = lock_wait or settings.integrations.session_lock_wait_sec

    @classmethod
    def from_url(cls, url: str) -> "RedisSessionStore":
        return cls(redis_async.from_url(url, decode_responses=True))

    async def get(self, user_id: str) -> Optional[dict]:
        try:
            raw = await self._client.get(KEY_PREFIX + user_id)
        except RedisError as e:
            raise SessionStoreError(f"Session read failed for {user_id}: {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise SessionStoreError(f"Corrupt session record for {user_id}: {e}") from e

    async def set(self, user_id: str, record: dict) -> None:
        # Expiry follows the last touch, so untouched saves do not extend it.
        updated_at = record.get("updated_at")
        expiry = (
            {"exat": int(updated_at) + self._retention}
            if updated_at
            else {"ex": self._retention}
        )
        try:
            await self._client.set(KEY_PREFIX + user_id, json.dumps(record), **expiry)
            await self._client.sadd(INDEX_KEY, user_id)
        except RedisError as e:
            raise SessionStoreError(f"Session write failed for {user_id}: {e}") from e

    async def delete(self, user_id: str) -> None:
        try:
            await self._client.delete(KEY_PREFIX + user_id)
            await self._client.srem(INDEX_KEY, user_id)
        except RedisError as e:
            raise SessionStoreError(f"Session delete failed for {user_id}: {e}") from e

    async def list_user_ids(self) -> list[str]:
        """Indexed users whose record still exists; stale members are pruned."""
        try:
            members = await self._client.smembers(INDEX_KEY)
            live = []
            for user_id in sorted(members):
                if await self._client.exists(KEY_PREFIX + user_id):
                    live.append(user_id)
                else:
                    await self._client.srem(INDEX_KEY, user_id)
        except RedisError as e:
            raise SessionStoreError(f"Session index read failed: {e}") from e
        if len(live) < len(members):
            logger.debug("Pruned %d expired users from the session index", len(members) - len(live))
        return live

    @asynccontextmanager
    async def lock(self, user_id: str) -> AsyncIterator[None]:
        """Redis lock shared by every worker; expires if the holder dies."""
        lock = self._client.lock(
            LOCK_PREFIX + user_id,
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_wait,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            raise SessionStoreError(f"Session lock failed for {user_id}: {e}") from e
        if not acquired:
            raise SessionStoreError(
                f"Session lock for {user_id} not acquired within {self._lock_wait}s"
            )
        try:
            yield
        finally:
            try:
                await lock.release()
            except RedisError as e:
                logger.warning("Session lock release failed for %s: %s", user_id, e)


class SessionRepository:
    """Loads, saves and resets sessions; owns the TTL policy and user locks."""

    def __init__(self, store: SessionStore, ttl_seconds: Optional[float] = None) -> None:
        self._store = store
        if ttl_seconds is None:
            ttl_seconds = settings.conversation.session_ttl_days * 86400
        self._ttl = ttl_seconds
        # Entries live only while someone holds or waits for the lock.
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def lock(self, user_id: str) -> AsyncIterator[None]:
        """Serialize all work for one user."""
        local = self._locks.setdefault(user_id, asyncio.Lock())
        self._waiters[user_id] = self._waiters.get(user_id, 0) + 1
        try:
            async with local:
                async with self._store.lock(user_id):
                    yield
        finally:
            self._waiters[user_id] -= 1
            if not self._waiters[user_id]:
                del self._waiters[user_id]
                del self._locks[user_id]

    async def peek(self, user_id: str) -> Optional[Session]:
        """Stored session as-is, without expiry handling."""
        record = await self._store.get(user_id)
        if record is None:
            return None
        try:
            return Session.from_record(record)
        except ValidationError as e:
            raise SessionStoreError(f"Unreadable session for {user_id}: {e}") from e

    async def load(self, user_id: str, now: float) -> Session:
        """Stored session, or a fresh one when missing or past the TTL."""
        session = await self.peek(user_id)
        if session is None:
            logger.info("New session for %s", user_id)
            return Session.new(user_id, now)
        if session.is_expired(now, self._ttl):
            logger.info("Session for %s expired; starting over", user_id)
            return Session.new(user_id, now, is_returning=True)
        return session

    async def save(self, session: Session, now: float, touch: bool = True) -> None:
        """Persist the session. ``touch`` restarts the TTL clock."""
        if touch:
            session.updated_at = now
        await self._store.set(session.id, session.to_record())

    async def reset(self, user_id: str, now: float) -> Session:
        """Discard everything stored for the user and return a fresh session."""
        await self._store.delete(user_id)
        logger.info("Session reset for %s", user_id)
        return Session.new(user_id, now)

    async def list_user_ids(self) -> list[str]:
        return await self._store.list_user_ids()
