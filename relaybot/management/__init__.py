"""Management commands for the relay bot."""

from .admin_commands import AdminCommands

__all__ = [
    "AdminCommands"
]
