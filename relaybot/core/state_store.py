"""
Pairing state storage: the waiting queue and the partner map.
Provides an in-memory backend and a Redis backend whose mutations run as
single Lua scripts, so check-and-set is atomic across bot processes.
"""
import enum
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import redis.asyncio as aioredis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from relaybot.core.errors import StoreUnavailable

logger = logging.getLogger(__name__)


class EnqueueResult(enum.Enum):
    """Outcome of adding a participant to the waiting queue."""
    QUEUED = "queued"
    ALREADY_QUEUED = "already_queued"
    ALREADY_PAIRED = "already_paired"


class PairResult(enum.Enum):
    """Outcome of a pairing attempt."""
    PAIRED = "paired"
    BUSY = "busy"
    NOT_QUEUED = "not_queued"


class StateStore(ABC):
    """Access contract for queue and pairing state.

    Every mutator is atomic on its own. Only the pairing engine calls them.
    """

    async def start(self) -> None:
        """Open backend connections."""

    async def stop(self) -> None:
        """Close backend connections."""

    @abstractmethod
    async def add_to_queue(self, participant_id: int) -> EnqueueResult:
        """Queue a participant unless already queued or paired."""

    @abstractmethod
    async def queue_members(self) -> List[int]:
        """Return queued participants in insertion order."""

    @abstractmethod
    async def set_pair(self, first_id: int, second_id: int,
                       require_queued: bool = False) -> Tuple[PairResult, Optional[int]]:
        """Pair two participants and dequeue both.

        Fails with BUSY if either already has a partner, or with NOT_QUEUED
        if ``require_queued`` is set and either is not waiting. A failure
        writes nothing and carries the id of the offending participant.
        """

    @abstractmethod
    async def get_partner(self, participant_id: int) -> Optional[int]:
        """Return the current partner or None."""

    @abstractmethod
    async def remove_participant(self, participant_id: int) -> Optional[int]:
        """Drop the participant's pairing (both directions) and queue entries.

        Returns the former partner, if any.
        """

    @abstractmethod
    async def pair_count(self) -> int:
        """Return the number of active pairings."""


class InMemoryStateStore(StateStore):
    """Single-process backend; state is lost on restart."""

    def __init__(self):
        # dicts keep insertion order, which is the queue order
        self._queue: Dict[int, None] = {}
        self._partners: Dict[int, int] = {}

    async def add_to_queue(self, participant_id: int) -> EnqueueResult:
        if participant_id in self._partners:
            return EnqueueResult.ALREADY_PAIRED
        if participant_id in self._queue:
            return EnqueueResult.ALREADY_QUEUED
        self._queue[participant_id] = None
        return EnqueueResult.QUEUED

    async def queue_members(self) -> List[int]:
        return list(self._queue)

    async def set_pair(self, first_id: int, second_id: int,
                       require_queued: bool = False) -> Tuple[PairResult, Optional[int]]:
        for participant_id in (first_id, second_id):
            if participant_id in self._partners:
                return PairResult.BUSY, participant_id
        if require_queued:
            for participant_id in (first_id, second_id):
                if participant_id not in self._queue:
                    return PairResult.NOT_QUEUED, participant_id
        self._partners[first_id] = second_id
        self._partners[second_id] = first_id
        self._queue.pop(first_id, None)
        self._queue.pop(second_id, None)
        return PairResult.PAIRED, None

    async def get_partner(self, participant_id: int) -> Optional[int]:
        return self._partners.get(participant_id)

    async def remove_participant(self, participant_id: int) -> Optional[int]:
        partner_id = self._partners.pop(participant_id, None)
        self._queue.pop(participant_id, None)
        if partner_id is not None:
            if self._partners.get(partner_id) == participant_id:
                del self._partners[partner_id]
            self._queue.pop(partner_id, None)
        return partner_id

    async def pair_count(self) -> int:
        return len(self._partners) // 2


# KEYS: queue, partners, sequence. ARGV: participant.
_ENQUEUE_SCRIPT = """
if redis.call('HEXISTS', KEYS[2], ARGV[1]) == 1 then
    return 2
end
if redis.call('ZSCORE', KEYS[1], ARGV[1]) then
    return 1
end
local seq = redis.call('INCR', KEYS[3])
redis.call('ZADD', KEYS[1], seq, ARGV[1])
return 0
"""

# KEYS: queue, partners. ARGV: first, second, require_queued (1/0).
# Returns {code, participant}: 0 paired, 1 busy, 2 not queued.
_PAIR_SCRIPT = """
for i = 1, 2 do
    if redis.call('HEXISTS', KEYS[2], ARGV[i]) == 1 then
        return {1, ARGV[i]}
    end
end
if ARGV[3] == '1' then
    for i = 1, 2 do
        if not redis.call('ZSCORE', KEYS[1], ARGV[i]) then
            return {2, ARGV[i]}
        end
    end
end
redis.call('HSET', KEYS[2], ARGV[1], ARGV[2])
redis.call('HSET', KEYS[2], ARGV[2], ARGV[1])
redis.call('ZREM', KEYS[1], ARGV[1], ARGV[2])
return {0, 0}
"""

# KEYS: queue, partners. ARGV: participant.
_RELEASE_SCRIPT = """
local partner = redis.call('HGET', KEYS[2], ARGV[1])
redis.call('HDEL', KEYS[2], ARGV[1])
redis.call('ZREM', KEYS[1], ARGV[1])
if partner then
    if redis.call('HGET', KEYS[2], partner) == ARGV[1] then
        redis.call('HDEL', KEYS[2], partner)
    end
    redis.call('ZREM', KEYS[1], partner)
end
return partner
"""

_ENQUEUE_CODES = {
    0: EnqueueResult.QUEUED,
    1: EnqueueResult.ALREADY_QUEUED,
    2: EnqueueResult.ALREADY_PAIRED,
}

_PAIR_CODES = {
    0: PairResult.PAIRED,
    1: PairResult.BUSY,
    2: PairResult.NOT_QUEUED,
}


class RedisStateStore(StateStore):
    """Redis backend shared by every bot process."""

    def __init__(self, redis_url: str = "redis://localhost:6379/0", key_prefix: str = "pairing",
                 client: Optional[Redis] = None):
        self.redis_url = redis_url
        self.redis: Optional[Redis] = client
        self._owns_client = client is None

        # Key names
        self.queue_key = f"{key_prefix}:queue"
        self.sequence_key = f"{key_prefix}:queue:seq"
        self.partners_key = f"{key_prefix}:partners"

        self._enqueue = None
        self._pair = None
        self._release = None

    async def start(self) -> None:
        """Connect to Redis and register the mutation scripts."""
        if self.redis is None:
            self.redis = aioredis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=20
            )

        try:
            await self.redis.ping()
        except RedisError as e:
            raise StoreUnavailable(f"Cannot connect to Redis at {self.redis_url}: {e}") from e

        self._enqueue = self.redis.register_script(_ENQUEUE_SCRIPT)
        self._pair = self.redis.register_script(_PAIR_SCRIPT)
        self._release = self.redis.register_script(_RELEASE_SCRIPT)
        logger.info(f"Redis state store connected ({self.queue_key}, {self.partners_key})")

    async def stop(self) -> None:
        """Close the Redis connection."""
        if self.redis and self._owns_client:
            await self.redis.aclose()
            self.redis = None
        logger.info("Redis state store closed")

    def _require_started(self) -> None:
        if self.redis is None or self._enqueue is None:
            raise RuntimeError("State store not started")

    async def add_to_queue(self, participant_id: int) -> EnqueueResult:
        self._require_started()
        try:
            code = await self._enqueue(
                keys=[self.queue_key, self.partners_key, self.sequence_key],
                args=[participant_id],
            )
        except RedisError as e:
            raise StoreUnavailable(f"Error enqueuing {participant_id}: {e}") from e
        return _ENQUEUE_CODES[int(code)]

    async def queue_members(self) -> List[int]:
        self._require_started()
        try:
            members = await self.redis.zrange(self.queue_key, 0, -1)
        except RedisError as e:
            raise StoreUnavailable(f"Error reading queue: {e}") from e
        return [int(member) for member in members]

    async def set_pair(self, first_id: int, second_id: int,
                       require_queued: bool = False) -> Tuple[PairResult, Optional[int]]:
        self._require_started()
        try:
            code, participant = await self._pair(
                keys=[self.queue_key, self.partners_key],
                args=[first_id, second_id, int(require_queued)],
            )
        except RedisError as e:
            raise StoreUnavailable(f"Error pairing {first_id} with {second_id}: {e}") from e
        result = _PAIR_CODES[int(code)]
        if result is PairResult.PAIRED:
            return result, None
        return result, int(participant)

    async def get_partner(self, participant_id: int) -> Optional[int]:
        self._require_started()
        try:
            partner = await self.redis.hget(self.partners_key, participant_id)
        except RedisError as e:
            raise StoreUnavailable(f"Error reading partner of {participant_id}: {e}") from e
        return int(partner) if partner is not None else None

    async def remove_participant(self, participant_id: int) -> Optional[int]:
        self._require_started()
        try:
            partner = await self._release(
                keys=[self.queue_key, self.partners_key],
                args=[participant_id],
            )
        except RedisError as e:
            raise StoreUnavailable(f"Error releasing {participant_id}: {e}") from e
        return int(partner) if partner is not None else None

    async def pair_count(self) -> int:
        self._require_started()
        try:
            entries = await self.redis.hlen(self.partners_key)
        except RedisError as e:
            raise StoreUnavailable(f"Error counting pairs: {e}") from e
        return entries // 2


def create_state_store(backend: str, redis_url: Optional[str] = None, key_prefix: str = "pairing") -> StateStore:
    """Build the configured state store backend."""
    if backend == "memory":
        return InMemoryStateStore()
    if backend == "redis":
        return RedisStateStore(redis_url or "redis://localhost:6379/0", key_prefix=key_prefix)
    raise ValueError(f"Unknown state backend: {backend}")
