"""
Menu components and message formatters for the Telegram bot interface.
Provides consistent message formatting and menu structures.
"""
from typing import Dict, List, Sequence
from telegram import InlineKeyboardMarkup

from relaybot.ui.keyboards import PairingKeyboards

CONTROL_PROMPT = "If you want to delete this message, press the button below."
UNKNOWN_KIND_NOTICE = (
    "Unknown message type. Try sending text, a photo, a video, a voice message or a document."
)
PARTNER_UNREACHABLE_NOTICE = "Your partner can no longer be reached. The chat has been closed."
DELETE_SUCCESS = "Message deleted successfully!"
DELETE_FAILED = "The message could not be deleted!"
DELETE_PARTIAL = "The message was deleted only on one side. A copy may still be visible."
NO_CANDIDATES = "No users are available to connect right now. Please wait..."
SELECT_CANDIDATE = "Choose a user to connect with:"
PARTNER_LEFT = "Your partner has left the chat."
YOU_LEFT = "You have left the chat."
REGISTRATION_DONE = "Registration complete! Now share your location to find a partner."
GEO_SAVED = "Location saved! You can now look for a partner."
GEO_REQUEST = "Please share your location (use the attachment menu and choose 'Location')."
ACCESS_DENIED = "❌ Access denied. Administrator privileges required."


class MenuFormatter:
    """Formats messages and creates menu interfaces."""

    @staticmethod
    def format_greeting(first_name: str) -> tuple[str, InlineKeyboardMarkup]:
        """Format the /start greeting with the Chat button."""
        message = f"👋 Hello, {first_name or 'there'}! Press '💬 Chat' to connect with someone."
        return message, PairingKeyboards.chat_button()

    @staticmethod
    def format_not_connected() -> tuple[str, InlineKeyboardMarkup]:
        """Format the notice for a message sent outside a conversation."""
        message = "You are not connected to anyone yet. Press '💬 Chat' to find a partner."
        return message, PairingKeyboards.chat_button()

    @staticmethod
    def format_candidates(candidate_ids: Sequence[int]) -> tuple[str, InlineKeyboardMarkup]:
        """Format the list of waiting participants."""
        return SELECT_CANDIDATE, PairingKeyboards.candidates(candidate_ids)

    @staticmethod
    def format_connected(partner_id: int) -> tuple[str, InlineKeyboardMarkup]:
        """Format the notice sent to both sides after pairing."""
        return f"You are connected to the user with ID: {partner_id}", PairingKeyboards.exit_button()

    @staticmethod
    def format_partner_busy(partner_id: int) -> str:
        return f"That user is busy right now, please wait: {partner_id}"

    @staticmethod
    def format_already_connected() -> tuple[str, InlineKeyboardMarkup]:
        return "You are already in a chat. Press '🔕 Exit' to leave first.", PairingKeyboards.exit_button()

    @staticmethod
    def format_invalid_pairing() -> tuple[str, InlineKeyboardMarkup]:
        return "You cannot connect to that user. Press '💬 Chat' to pick again.", PairingKeyboards.chat_button()

    @staticmethod
    def format_partner_left() -> tuple[str, InlineKeyboardMarkup]:
        return PARTNER_LEFT, PairingKeyboards.chat_button()

    @staticmethod
    def format_you_left() -> tuple[str, InlineKeyboardMarkup]:
        return YOU_LEFT, PairingKeyboards.chat_button()


class RegistrationFormatter:
    """Formats messages of the registration flow."""

    @staticmethod
    def format_instructions(gender_options: List[str]) -> str:
        """Explain the expected photo caption."""
        genders = " or ".join(option.capitalize() for option in gender_options)
        return f"""
To register, send a photo of yourself with the following caption:

@nickname
{genders}
25
        """.strip()

    @staticmethod
    def format_invalid_format(reason: str, gender_options: List[str]) -> str:
        example = gender_options[0].capitalize() if gender_options else "Male"
        return f"Invalid format! {reason}\nExample:\n@nickname\n{example}\n25"

    @staticmethod
    def format_summary(nickname: str, gender: str, age: int) -> str:
        return f"""
Nickname: @{nickname}
Gender: {gender}
Age: {age}
To update your details, send the photo again.
        """.strip()


class StatusFormatter:
    """Formats the admin status report."""

    @staticmethod
    def format_status(stats: Dict[str, int]) -> str:
        return f"""
📊 Relay Status

• Waiting in queue: {stats.get('queue_size', 0)}
• Active pairs: {stats.get('active_pairs', 0)}
        """.strip()
