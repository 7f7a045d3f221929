"""Telegram transport for the relay bot."""

from .bot_client import BotClientManager, MessageRef

__all__ = [
    "BotClientManager",
    "MessageRef"
]
