"""Telegram update handlers for the relay bot."""

from .handler_registry import HandlerRegistry
from .registration import RegistrationFlow, parse_registration_caption

__all__ = [
    "HandlerRegistry",
    "RegistrationFlow",
    "parse_registration_caption"
]
