"""Database module for the relay bot's participant profiles."""

from .models import Base, Participant
from .connection import DatabaseManager, to_async_url
from .profiles import ProfileRepository

__all__ = [
    "Base",
    "Participant",
    "DatabaseManager",
    "to_async_url",
    "ProfileRepository"
]
