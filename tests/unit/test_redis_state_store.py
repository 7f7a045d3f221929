from unittest.mock import AsyncMock

import pytest

fakeredis = pytest.importorskip("fakeredis")
pytest.importorskip("lupa")

from redis.exceptions import ConnectionError as RedisConnectionError  # noqa: E402

from relaybot.core import PairingEngine  # noqa: E402
from relaybot.core.errors import AlreadyPaired, InvalidPairing, StoreUnavailable  # noqa: E402
from relaybot.core.state_store import EnqueueResult, PairResult, RedisStateStore  # noqa: E402


@pytest.fixture
async def redis_store():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    store = RedisStateStore(key_prefix="test", client=client)
    await store.start()
    yield store
    await store.stop()
    await client.aclose()


def _connection_lost(*args, **kwargs):
    raise RedisConnectionError("Connection refused")


async def test_enqueue_is_idempotent_and_ordered(redis_store) -> None:
    assert await redis_store.add_to_queue(200) is EnqueueResult.QUEUED
    assert await redis_store.add_to_queue(100) is EnqueueResult.QUEUED
    assert await redis_store.add_to_queue(200) is EnqueueResult.ALREADY_QUEUED

    assert await redis_store.queue_members() == [200, 100]


async def test_set_pair_writes_both_entries_and_dequeues(redis_store) -> None:
    await redis_store.add_to_queue(100)
    await redis_store.add_to_queue(200)

    assert await redis_store.set_pair(200, 100, require_queued=True) == (PairResult.PAIRED, None)

    assert await redis_store.get_partner(100) == 200
    assert await redis_store.get_partner(200) == 100
    assert await redis_store.queue_members() == []
    assert await redis_store.pair_count() == 1


async def test_set_pair_rejects_busy_participant(redis_store) -> None:
    await redis_store.set_pair(1, 2)
    await redis_store.add_to_queue(3)

    assert await redis_store.set_pair(3, 1) == (PairResult.BUSY, 1)
    assert await redis_store.get_partner(3) is None
    assert await redis_store.queue_members() == [3]


async def test_set_pair_rejects_participant_not_in_queue(redis_store) -> None:
    await redis_store.add_to_queue(200)

    assert await redis_store.set_pair(200, 100, require_queued=True) == (PairResult.NOT_QUEUED, 100)
    assert await redis_store.get_partner(200) is None
    assert await redis_store.queue_members() == [200]


async def test_enqueue_reports_already_paired(redis_store) -> None:
    await redis_store.set_pair(1, 2)

    assert await redis_store.add_to_queue(1) is EnqueueResult.ALREADY_PAIRED
    assert await redis_store.queue_members() == []


async def test_remove_participant_returns_partner_and_is_idempotent(redis_store) -> None:
    await redis_store.set_pair(1, 2)

    assert await redis_store.remove_participant(1) == 2
    assert await redis_store.get_partner(2) is None
    assert await redis_store.remove_participant(1) is None
    assert await redis_store.pair_count() == 0


async def test_engine_over_redis_store_enforces_exclusivity(redis_store) -> None:
    engine = PairingEngine(redis_store)
    for participant_id in (1, 2, 3):
        await engine.enqueue(participant_id)
    await engine.try_pair(1, 2)

    with pytest.raises(AlreadyPaired):
        await engine.try_pair(1, 3)

    await engine.release(2)
    with pytest.raises(InvalidPairing):
        await engine.try_pair(1, 3)

    await engine.enqueue(1)
    await engine.try_pair(1, 3)

    assert await engine.get_partner(3) == 1


async def test_failed_release_script_raises_store_unavailable_and_keeps_pairing(redis_store, monkeypatch) -> None:
    await redis_store.set_pair(1, 2)
    monkeypatch.setattr(redis_store, "_release", _connection_lost)

    with pytest.raises(StoreUnavailable) as exc_info:
        await redis_store.remove_participant(1)

    assert exc_info.value.code == "STORE_UNAVAILABLE"
    monkeypatch.undo()
    assert await redis_store.get_partner(1) == 2
    assert await redis_store.get_partner(2) == 1


async def test_failed_pair_script_leaves_queue_untouched(redis_store, monkeypatch) -> None:
    await redis_store.add_to_queue(1)
    await redis_store.add_to_queue(2)
    monkeypatch.setattr(redis_store, "_pair", _connection_lost)

    with pytest.raises(StoreUnavailable):
        await PairingEngine(redis_store).try_pair(1, 2)

    monkeypatch.undo()
    assert await redis_store.queue_members() == [1, 2]
    assert await redis_store.get_partner(1) is None


async def test_read_errors_raise_store_unavailable(redis_store, monkeypatch) -> None:
    monkeypatch.setattr(redis_store.redis, "zrange", _connection_lost)
    monkeypatch.setattr(redis_store.redis, "hget", _connection_lost)

    with pytest.raises(StoreUnavailable):
        await redis_store.queue_members()
    with pytest.raises(StoreUnavailable):
        await redis_store.get_partner(1)


async def test_start_raises_store_unavailable_when_redis_is_down() -> None:
    client = AsyncMock()
    client.ping.side_effect = RedisConnectionError("Connection refused")
    store = RedisStateStore(key_prefix="test", client=client)

    with pytest.raises(StoreUnavailable):
        await store.start()
