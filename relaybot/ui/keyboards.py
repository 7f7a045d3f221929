"""
Inline keyboard components for the Telegram bot interface.
Callback data is routed by prefix: ``chat``, ``select_{id}``, ``exit`` and
``delete_{...}``.
"""
from typing import Any, Dict, List, Optional, Sequence
from telegram import InlineKeyboardButton, InlineKeyboardMarkup
from enum import Enum

# Telegram rejects callback data longer than this many bytes
CALLBACK_DATA_LIMIT = 64


class CallbackAction(Enum):
    """Callback action prefixes for inline keyboards."""
    CHAT = "chat"
    SELECT = "select_"
    EXIT = "exit"
    DELETE = "delete_"

    @property
    def pattern(self) -> str:
        """Regex matching callback data that starts with this prefix."""
        return f"^{self.value}"


class KeyboardBuilder:
    """Builder for creating inline keyboards with consistent styling."""

    def __init__(self):
        self.buttons: List[List[InlineKeyboardButton]] = []
        self.current_row: List[InlineKeyboardButton] = []

    def add_button(self, text: str, callback_data: str) -> 'KeyboardBuilder':
        """Add a button to the current row."""
        self.current_row.append(InlineKeyboardButton(text, callback_data=callback_data))
        return self

    def new_row(self) -> 'KeyboardBuilder':
        """Start a new row of buttons."""
        if self.current_row:
            self.buttons.append(self.current_row)
            self.current_row = []
        return self

    def add_row(self, buttons: List[tuple]) -> 'KeyboardBuilder':
        """Add a complete row of buttons. Each tuple is (text, callback_data)."""
        self.new_row()
        for text, callback_data in buttons:
            self.add_button(text, callback_data)
        return self

    def build(self) -> InlineKeyboardMarkup:
        """Build the final keyboard markup."""
        if self.current_row:
            self.buttons.append(self.current_row)
        return InlineKeyboardMarkup(self.buttons)


class PairingKeyboards:
    """Keyboards for finding, joining and leaving a conversation."""

    @staticmethod
    def chat_button() -> InlineKeyboardMarkup:
        """Single "Chat" button that puts the user in the waiting queue."""
        return KeyboardBuilder().add_row([("💬 Chat", CallbackAction.CHAT.value)]).build()

    @staticmethod
    def exit_button() -> InlineKeyboardMarkup:
        """Exit button attached to relayed messages."""
        return KeyboardBuilder().add_row([("🔕 Exit", CallbackAction.EXIT.value)]).build()

    @staticmethod
    def candidates(candidate_ids: Sequence[int]) -> InlineKeyboardMarkup:
        """One ``select_{id}`` button per waiting participant."""
        builder = KeyboardBuilder()
        for candidate_id in candidate_ids:
            builder.add_row([(f"User {candidate_id}", build_callback_data(CallbackAction.SELECT, candidate_id))])
        return builder.build()


class DeleteKeyboards:
    """Keyboard carrying a delete token."""

    @staticmethod
    def delete_button(callback_data: str, label: str = "🗑 Delete") -> Optional[InlineKeyboardMarkup]:
        """Delete button, or None when the data does not fit in a callback."""
        if len(callback_data.encode("utf-8")) > CALLBACK_DATA_LIMIT:
            return None
        return KeyboardBuilder().add_row([(label, callback_data)]).build()


# Utility functions for callback data parsing
def parse_callback_data(callback_data: str) -> Dict[str, Any]:
    """Split callback data into its action and the remaining parameter string."""
    for action in (CallbackAction.SELECT, CallbackAction.DELETE, CallbackAction.CHAT, CallbackAction.EXIT):
        if callback_data.startswith(action.value):
            result: Dict[str, Any] = {
                'action': action,
                'params': callback_data[len(action.value):],
            }
            if action is CallbackAction.SELECT:
                try:
                    result['id'] = int(result['params'])
                except ValueError:
                    pass
            return result

    return {'action': None, 'params': callback_data}


def build_callback_data(action: CallbackAction, *args) -> str:
    """Build callback data string from action and arguments."""
    return action.value + '_'.join(str(arg) for arg in args)
