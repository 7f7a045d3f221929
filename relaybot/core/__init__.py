"""Core pairing and relay engine for the Telegram bot."""

from .state_store import StateStore, InMemoryStateStore, RedisStateStore, EnqueueResult, PairResult, create_state_store
from .pairing_engine import PairingEngine
from .envelope import PayloadKind, RelayEnvelope, envelope_from_message
from .deletion import DeleteToken, DeleteResult, DeletionCorrelator, encode_token, decode_token
from .relay_dispatcher import RelayDispatcher, RelayResult, RELAY_ROUTES

__all__ = [
    "StateStore",
    "InMemoryStateStore",
    "RedisStateStore",
    "EnqueueResult",
    "PairResult",
    "create_state_store",
    "PairingEngine",
    "PayloadKind",
    "RelayEnvelope",
    "envelope_from_message",
    "DeleteToken",
    "DeleteResult",
    "DeletionCorrelator",
    "encode_token",
    "decode_token",
    "RelayDispatcher",
    "RelayResult",
    "RELAY_ROUTES"
]
