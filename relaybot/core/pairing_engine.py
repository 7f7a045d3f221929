"""
Pairing engine: the only writer of queue and pairing state.

Per participant the state machine is Idle -> Queued -> Paired -> Idle.
All mutators run inside one engine-wide lock; the store makes each single
mutation atomic on its own, which also covers other bot processes when the
Redis backend is used.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from relaybot.core.errors import AlreadyPaired, InvalidPairing, RegistrationRequired
from relaybot.core.state_store import EnqueueResult, PairResult, StateStore

logger = logging.getLogger(__name__)

ProfileGate = Callable[[int], Awaitable[bool]]


class PairingEngine:
    """Owns the invariants "at most one partner" and "queued xor paired"."""

    def __init__(self, store: StateStore, profile_gate: Optional[ProfileGate] = None):
        self.store = store
        self.profile_gate = profile_gate
        self._lock = asyncio.Lock()

    async def _run_exclusive(self, operation: Callable[..., Awaitable[Any]], *args) -> Any:
        async with self._lock:
            return await operation(*args)

    async def _mutate(self, operation: Callable[..., Awaitable[Any]], *args) -> Any:
        # shielded: a cancelled caller never interrupts a started mutation
        return await asyncio.shield(self._run_exclusive(operation, *args))

    async def enqueue(self, participant_id: int) -> EnqueueResult:
        """Add a participant to the waiting queue (idempotent, no-op if paired)."""
        if self.profile_gate is not None and not await self.profile_gate(participant_id):
            raise RegistrationRequired(participant_id)

        result = await self._mutate(self.store.add_to_queue, participant_id)
        logger.debug(f"Enqueue {participant_id}: {result.value}")
        return result

    async def list_candidates(self, participant_id: int) -> List[int]:
        """Return waiting participants other than the requester, in queue order."""
        members = await self.store.queue_members()
        return [member for member in members if member != participant_id]

    async def try_pair(self, first_id: int, second_id: int) -> None:
        """Pair two queued participants, or fail without touching state."""
        if first_id == second_id:
            raise InvalidPairing(
                f"Participant {first_id} cannot be paired with themselves",
                details={'participant_id': first_id},
            )

        result, participant_id = await self._mutate(self.store.set_pair, first_id, second_id, True)
        if result is PairResult.BUSY:
            logger.info(f"Pairing {first_id} with {second_id} rejected: {participant_id} is busy")
            raise AlreadyPaired(participant_id)
        if result is PairResult.NOT_QUEUED:
            logger.info(f"Pairing {first_id} with {second_id} rejected: {participant_id} is not waiting")
            raise InvalidPairing(
                f"Participant {participant_id} is not waiting for a partner",
                details={'participant_id': participant_id},
            )

        logger.info(f"Paired {first_id} with {second_id}")

    async def get_partner(self, participant_id: int) -> Optional[int]:
        """Return the current partner or None."""
        return await self.store.get_partner(participant_id)

    async def release(self, participant_id: int) -> Optional[int]:
        """End the participant's session and return the former partner.

        Both sides leave the pairing map and the queue. Releasing an idle
        participant is a no-op.
        """
        partner_id = await self._mutate(self.store.remove_participant, participant_id)
        if partner_id is not None:
            logger.info(f"Released pairing {participant_id} <-> {partner_id}")
        else:
            logger.debug(f"Released {participant_id} (no partner)")
        return partner_id

    async def statistics(self) -> Dict[str, int]:
        """Get queue and pairing counters."""
        members = await self.store.queue_members()
        pairs = await self.store.pair_count()
        return {
            'queue_size': len(members),
            'active_pairs': pairs,
        }
