import unittest
from unittest.mock import AsyncMock

from src.config import SessionBackend, Settings
from src.schemas.session import Session, SessionStatus, TranscriptRole
from src.services.field_schema import new_record, set_value
from src.services.session_store import (
    SESSION_KEY,
    InMemorySessionStore,
    RedisSessionStore,
    build_session_store,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _session(session_id="s1"):
    session = Session(id=session_id, record=set_value(new_record(), "title", "QA Engineer"))
    session.add_transcript(TranscriptRole.USER, "QA Engineer")
    return session


class TestInMemorySessionStore(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.store = InMemorySessionStore(ttl_seconds=100, clock=self.clock)

    async def test_put_and_get(self):
        await self.store.put(_session())
        loaded = await self.store.get("s1")
        self.assertEqual(loaded.record["title"], "QA Engineer")
        self.assertIsNone(await self.store.get("other"))

    async def test_get_returns_copy(self):
        await self.store.put(_session())
        loaded = await self.store.get("s1")
        loaded.record["title"] = "Changed"
        loaded.add_transcript(TranscriptRole.ASSISTANT, "hi")

        again = await self.store.get("s1")
        self.assertEqual(again.record["title"], "QA Engineer")
        self.assertEqual(len(again.transcript), 1)

    async def test_idle_sessions_expire(self):
        await self.store.put(_session("old"))
        self.clock.now += 60
        await self.store.put(_session("fresh"))
        self.clock.now += 50

        self.assertIsNone(await self.store.get("old"))
        self.assertIsNotNone(await self.store.get("fresh"))
        self.assertEqual(len(self.store), 1)

    async def test_put_refreshes_ttl(self):
        await self.store.put(_session())
        self.clock.now += 90
        await self.store.put(await self.store.get("s1"))
        self.clock.now += 90
        self.assertIsNotNone(await self.store.get("s1"))

    async def test_delete(self):
        await self.store.put(_session())
        self.assertTrue(await self.store.delete("s1"))
        self.assertFalse(await self.store.delete("s1"))
        self.assertIsNone(await self.store.get("s1"))


class TestRedisSessionStore(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.redis = AsyncMock()
        self.store = RedisSessionStore(self.redis, ttl_seconds=3600)

    async def test_put_writes_json_with_expiry(self):
        session = _session()
        session.status = SessionStatus.PENDING_GENERATION
        await self.store.put(session)

        self.redis.set.assert_awaited_once()
        key, raw = self.redis.set.await_args.args
        self.assertEqual(key, SESSION_KEY.format("s1"))
        self.assertEqual(self.redis.set.await_args.kwargs["ex"], 3600)

        self.redis.get.return_value = raw
        loaded = await self.store.get("s1")
        self.assertEqual(loaded.status, SessionStatus.PENDING_GENERATION)
        self.assertEqual(loaded.record["title"], "QA Engineer")
        self.assertEqual(loaded.transcript[0].role, TranscriptRole.USER)

    async def test_missing_session(self):
        self.redis.get.return_value = None
        self.assertIsNone(await self.store.get("nope"))
        self.redis.get.assert_awaited_once_with("recruiter:session:nope")

    async def test_delete(self):
        self.redis.delete.return_value = 1
        self.assertTrue(await self.store.delete("s1"))
        self.redis.delete.return_value = 0
        self.assertFalse(await self.store.delete("s1"))

    async def test_close(self):
        await self.store.close()
        self.redis.aclose.assert_awaited_once()


class TestBuildSessionStore(unittest.TestCase):

    def test_memory_backend_by_default(self):
        store = build_session_store(Settings(openai_api_key="test-key", _env_file=None))
        self.assertIsInstance(store, InMemorySessionStore)
        self.assertEqual(store.ttl_seconds, 86400)

    def test_redis_backend(self):
        settings = Settings(
            openai_api_key="test-key",
            session_backend=SessionBackend.REDIS,
            redis_url="redis://localhost:6379/3",
            _env_file=None,
        )
        store = build_session_store(settings)
        self.assertIsInstance(store, RedisSessionStore)


if __name__ == "__main__":
    unittest.main()
