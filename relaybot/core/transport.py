"""
Interface the relay consumes from the chat transport.
"""
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Union

from telegram import InlineKeyboardMarkup

ChatId = Union[int, str]


@dataclass(frozen=True)
class MessageRef:
    """Location of a message sent through the transport."""
    chat_id: int
    message_id: int


class Transport(Protocol):
    """Send/edit/delete operations; send failures raise TransportError."""

    async def send_text(self, chat_id: ChatId, text: str,
                        reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef: ...

    async def send_photo(self, chat_id: ChatId, photo: str, caption: Optional[str] = None,
                         reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef: ...

    async def send_video(self, chat_id: ChatId, video: str, caption: Optional[str] = None,
                         reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef: ...

    async def send_voice(self, chat_id: ChatId, voice: str, caption: Optional[str] = None,
                         reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef: ...

    async def send_video_note(self, chat_id: ChatId, video_note: str,
                              reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef: ...

    async def send_document(self, chat_id: ChatId, document: str, caption: Optional[str] = None,
                            reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef: ...

    async def send_audio(self, chat_id: ChatId, audio: str, caption: Optional[str] = None,
                         reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef: ...

    async def send_location(self, chat_id: ChatId, latitude: float, longitude: float,
                            reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef: ...

    async def send_sticker(self, chat_id: ChatId, sticker: str,
                           reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef: ...

    async def send_poll(self, chat_id: ChatId, question: str, options: Sequence[str],
                        reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef: ...

    async def edit_reply_markup(self, chat_id: ChatId, message_id: int,
                                reply_markup: Optional[InlineKeyboardMarkup]) -> None: ...

    async def delete_message(self, chat_id: ChatId, message_id: int) -> bool: ...
