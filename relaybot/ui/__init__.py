"""UI components for the Telegram bot interface."""

from .keyboards import (
    KeyboardBuilder, PairingKeyboards, DeleteKeyboards,
    CallbackAction, CALLBACK_DATA_LIMIT, parse_callback_data, build_callback_data
)
from .menus import MenuFormatter, RegistrationFormatter, StatusFormatter

__all__ = [
    "KeyboardBuilder",
    "PairingKeyboards",
    "DeleteKeyboards",
    "CallbackAction",
    "CALLBACK_DATA_LIMIT",
    "parse_callback_data",
    "build_callback_data",
    "MenuFormatter",
    "RegistrationFormatter",
    "StatusFormatter"
]
