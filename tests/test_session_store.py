"""Tests for session persistence, expiry and per-user locking."""

import asyncio

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from salesbot.schemas.session_schema import Chosen, Phase, Session
from salesbot.tools.session_store import (
    INDEX_KEY,
    InMemorySessionStore,
    RedisSessionStore,
    SessionRepository,
    SessionStoreError,
)
from tests.conftest import MORNING, cash_slots, make_session, make_unit

DAY = 86400


class FakeLock:
    def __init__(self, client, name, timeout, blocking_timeout):
        self.client = client
        self.name = name
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout

    async def acquire(self):
        self.client._check()
        if self.name in self.client.held:
            return False
        self.client.held.add(self.name)
        self.client.lock_log.append(("acquire", self.name))
        return True

    async def release(self):
        self.client.held.discard(self.name)
        self.client.lock_log.append(("release", self.name))


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the session store."""

    def __init__(self, fail: bool = False) -> None:
        self.values: dict[str, str] = {}
        self.sets: dict[str, set] = {}
        self.expiry: dict[str, dict] = {}
        self.held: set[str] = set()
        self.lock_log: list[tuple[str, str]] = []
        self.fail = fail

    def _check(self):
        if self.fail:
            raise RedisConnectionError("connection refused")

    async def get(self, key):
        self._check()
        return self.values.get(key)

    async def set(self, key, value, ex=None, exat=None):
        self._check()
        self.values[key] = value
        self.expiry[key] = {"ex": ex, "exat": exat}

    async def exists(self, key):
        self._check()
        return int(key in self.values)

    async def delete(self, key):
        self._check()
        self.values.pop(key, None)

    async def sadd(self, key, member):
        self._check()
        self.sets.setdefault(key, set()).add(member)

    async def srem(self, key, member):
        self._check()
        self.sets.get(key, set()).discard(member)

    async def smembers(self, key):
        self._check()
        return set(self.sets.get(key, set()))

    def lock(self, name, timeout=None, blocking_timeout=None):
        return FakeLock(self, name, timeout, blocking_timeout)


class TestSessionRecord:
    def test_record_is_flat_json(self):
        session = make_session(slots=cash_slots())
        session.picks.ranked = ["A", "B"]
        record = session.to_record()
        assert record["phase"] == "p1"
        assert record["slots"]["plan"] == "cash"
        assert record["picks"]["list"] == ["A", "B"]

    def test_chosen_unit_snapshot_survives(self):
        session = make_session()
        unit = make_unit(SKU="X-1", **{"3yrs": "18200", "sheet_note": "repainted"})
        session.chosen = Chosen(unit_id="X-1", unit=unit)
        restored = Session.from_record(session.to_record())
        assert restored.chosen.unit.monthly(3) == 18200
        assert restored.chosen.unit.model_extra["sheet_note"] == "repainted"


class TestRepositoryLifecycle:
    @pytest.mark.asyncio
    async def test_missing_session_is_new(self, repository):
        session = await repository.load("PSID-1", MORNING)
        assert session.phase == Phase.P1
        assert session.created_at == MORNING
        assert not session.is_returning

    @pytest.mark.asyncio
    async def test_save_then_load(self, repository):
        session = make_session(phase=Phase.P2_PICK, slots=cash_slots())
        await repository.save(session, MORNING + 5)
        loaded = await repository.load("PSID-1", MORNING + 10)
        assert loaded.phase == Phase.P2_PICK
        assert loaded.slots == cash_slots()
        assert loaded.updated_at == MORNING + 5

    @pytest.mark.asyncio
    async def test_within_ttl_is_kept(self, repository):
        await repository.save(make_session(phase=Phase.P2_PICK), MORNING)
        loaded = await repository.load("PSID-1", MORNING + 6 * DAY)
        assert loaded.phase == Phase.P2_PICK

    @pytest.mark.asyncio
    async def test_expired_session_starts_over_as_returning(self, repository):
        await repository.save(make_session(phase=Phase.P3_CASH, slots=cash_slots()), MORNING)
        loaded = await repository.load("PSID-1", MORNING + 7 * DAY + 1)
        assert loaded.phase == Phase.P1
        assert loaded.slots.plan is None
        assert loaded.is_returning

    @pytest.mark.asyncio
    async def test_save_without_touch_keeps_ttl_clock(self, repository):
        session = make_session()
        await repository.save(session, MORNING)
        await repository.save(session, MORNING + DAY, touch=False)
        assert (await repository.peek("PSID-1")).updated_at == MORNING

    @pytest.mark.asyncio
    async def test_reset_discards_record(self, repository):
        await repository.save(make_session(phase=Phase.DONE_CASH), MORNING)
        fresh = await repository.reset("PSID-1", MORNING + 1)
        assert fresh.phase == Phase.P1
        assert await repository.peek("PSID-1") is None

    @pytest.mark.asyncio
    async def test_unreadable_record_is_a_store_error(self):
        store = InMemorySessionStore()
        await store.set("PSID-1", {"phase": "no-such-phase"})
        repository = SessionRepository(store)
        with pytest.raises(SessionStoreError):
            await repository.load("PSID-1", MORNING)


class TestUserLock:
    @pytest.mark.asyncio
    async def test_same_user_is_serialised(self, repository):
        order = []

        async def turn(tag):
            async with repository.lock("PSID-1"):
                order.append(f"{tag}-start")
                await asyncio.sleep(0)
                order.append(f"{tag}-end")

        await asyncio.gather(turn("a"), turn("b"))
        assert order == ["a-start", "a-end", "b-start", "b-end"]

    @pytest.mark.asyncio
    async def test_different_users_interleave(self, repository):
        order = []

        async def turn(user_id):
            async with repository.lock(user_id):
                order.append(f"{user_id}-start")
                await asyncio.sleep(0)
                order.append(f"{user_id}-end")

        await asyncio.gather(turn("A"), turn("B"))
        assert order == ["A-start", "B-start", "A-end", "B-end"]

    @pytest.mark.asyncio
    async def test_lock_entries_are_dropped_after_use(self, repository):
        async def turn():
            async with repository.lock("PSID-1"):
                await asyncio.sleep(0)

        await asyncio.gather(turn(), turn(), turn())
        assert repository._locks == {}

    @pytest.mark.asyncio
    async def test_lock_entry_dropped_when_turn_fails(self, repository):
        with pytest.raises(RuntimeError):
            async with repository.lock("PSID-1"):
                raise RuntimeError("turn failed")
        assert repository._locks == {}


class TestRedisStore:
    @pytest.mark.asyncio
    async def test_round_trip_with_ttl_and_index(self):
        client = FakeRedis()
        store = RedisSessionStore(client, ttl_seconds=7 * DAY)
        await store.set("PSID-1", {"id": "PSID-1"})

        assert await store.get("PSID-1") == {"id": "PSID-1"}
        assert client.expiry["sess:PSID-1"] == {"ex": 14 * DAY, "exat": None}
        assert client.sets[INDEX_KEY] == {"PSID-1"}
        assert await store.list_user_ids() == ["PSID-1"]

        await store.delete("PSID-1")
        assert await store.get("PSID-1") is None
        assert await store.list_user_ids() == []

    @pytest.mark.asyncio
    async def test_connection_failure_is_a_store_error(self):
        store = RedisSessionStore(FakeRedis(fail=True), ttl_seconds=DAY)
        with pytest.raises(SessionStoreError):
            await store.get("PSID-1")
        with pytest.raises(SessionStoreError):
            await store.set("PSID-1", {"id": "PSID-1"})

    @pytest.mark.asyncio
    async def test_corrupt_json_is_a_store_error(self):
        client = FakeRedis()
        client.values["sess:PSID-1"] = "{not json"
        with pytest.raises(SessionStoreError):
            await RedisSessionStore(client, ttl_seconds=DAY).get("PSID-1")

    @pytest.mark.asyncio
    async def test_expiry_follows_last_touch(self):
        client = FakeRedis()
        store = RedisSessionStore(client, ttl_seconds=7 * DAY)
        repository = SessionRepository(store, ttl_seconds=7 * DAY)
        session = make_session()
        await repository.save(session, MORNING)
        assert client.expiry["sess:PSID-1"]["exat"] == int(MORNING) + 14 * DAY

        await repository.save(session, MORNING + DAY, touch=False)
        assert client.expiry["sess:PSID-1"]["exat"] == int(MORNING) + 14 * DAY

    @pytest.mark.asyncio
    async def test_session_past_ttl_is_still_returning(self):
        client = FakeRedis()
        store = RedisSessionStore(client, ttl_seconds=7 * DAY)
        repository = SessionRepository(store, ttl_seconds=7 * DAY)
        await repository.save(make_session(phase=Phase.P3_CASH, slots=cash_slots()), MORNING)

        loaded = await repository.load("PSID-1", MORNING + 7 * DAY + 1)
        assert loaded.phase == Phase.P1
        assert loaded.is_returning

    @pytest.mark.asyncio
    async def test_index_drops_users_whose_record_expired(self):
        client = FakeRedis()
        store = RedisSessionStore(client, ttl_seconds=DAY)
        await store.set("PSID-1", {"id": "PSID-1"})
        await store.set("PSID-2", {"id": "PSID-2"})
        del client.values["sess:PSID-1"]

        assert await store.list_user_ids() == ["PSID-2"]
        assert client.sets[INDEX_KEY] == {"PSID-2"}


class TestRedisLock:
    @pytest.mark.asyncio
    async def test_repository_lock_holds_the_redis_lock(self):
        client = FakeRedis()
        repository = SessionRepository(RedisSessionStore(client, ttl_seconds=DAY))
        async with repository.lock("PSID-1"):
            assert client.held == {"lock:sess:PSID-1"}
        assert client.held == set()
        assert client.lock_log == [("acquire", "lock:sess:PSID-1"), ("release", "lock:sess:PSID-1")]

    @pytest.mark.asyncio
    async def test_lock_held_elsewhere_is_a_store_error(self):
        client = FakeRedis()
        client.held.add("lock:sess:PSID-1")
        repository = SessionRepository(RedisSessionStore(client, ttl_seconds=DAY))
        with pytest.raises(SessionStoreError):
            async with repository.lock("PSID-1"):
                pass
        assert repository._locks == {}

    @pytest.mark.asyncio
    async def test_connection_failure_while_locking_is_a_store_error(self):
        store = RedisSessionStore(FakeRedis(fail=True), ttl_seconds=DAY)
        with pytest.raises(SessionStoreError):
            async with store.lock("PSID-1"):
                pass
