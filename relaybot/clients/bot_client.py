"""
Bot API client manager using python-telegram-bot v21.x.
Owns the Application lifecycle and exposes the send/edit/delete calls the
relay needs, turning Telegram errors into TransportError.
"""
import logging
from typing import Any, Optional, Sequence

from telegram import Bot, InlineKeyboardMarkup
from telegram.error import RetryAfter, TelegramError, TimedOut
from telegram.ext import Application, ContextTypes

from relaybot.core.errors import TransportError
from relaybot.core.transport import ChatId, MessageRef

logger = logging.getLogger(__name__)


class BotClientManager:
    """Manages the Telegram Bot API client."""

    def __init__(self, token: str, protect_content: bool = True):
        self.token = token
        self.protect_content = protect_content
        self.application: Optional[Application] = None
        self.bot: Optional[Bot] = None
        self._is_running = False

    async def initialize(self) -> None:
        """Build the bot application."""
        logger.info("Initializing Bot API client...")

        # Independent participants are handled concurrently; per-participant
        # ordering is enforced by the handler registry.
        self.application = (
            Application.builder()
            .token(self.token)
            .concurrent_updates(True)
            .build()
        )
        self.bot = self.application.bot
        self.application.add_error_handler(self._error_handler)

        logger.info("Bot API client initialized successfully")

    async def _error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle errors raised by update handlers."""
        if isinstance(context.error, RetryAfter):
            logger.warning(f"Rate limited by Telegram: retry after {context.error.retry_after} seconds")
        elif isinstance(context.error, TimedOut):
            logger.warning("Request timed out")
        else:
            logger.error(f"Bot error: {context.error}", exc_info=context.error)

    async def start(self) -> None:
        """Start the application and begin polling."""
        if not self.application:
            await self.initialize()

        logger.info("Starting Bot API client...")
        await self.application.initialize()
        await self.application.start()
        await self.application.updater.start_polling(
            allowed_updates=['message', 'callback_query'],
            drop_pending_updates=True
        )
        self._is_running = True
        logger.info("Bot API client started successfully")

    async def stop(self) -> None:
        """Stop polling and shut the application down."""
        if self.application and self._is_running:
            logger.info("Stopping Bot API client...")
            await self.application.updater.stop()
            await self.application.stop()
            await self.application.shutdown()
            self._is_running = False
            logger.info("Bot API client stopped")

    async def _send(self, operation: str, chat_id: ChatId, **kwargs: Any) -> MessageRef:
        if not self.bot:
            raise TransportError(operation, chat_id, RuntimeError("Bot not initialized"))

        method = getattr(self.bot, operation)
        try:
            message = await method(chat_id=chat_id, protect_content=self.protect_content, **kwargs)
        except TelegramError as e:
            logger.warning(f"{operation} to {chat_id} failed: {e}")
            raise TransportError(operation, chat_id, e) from e
        return MessageRef(message.chat_id, message.message_id)

    async def send_text(self, chat_id: ChatId, text: str,
                        reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef:
        return await self._send("send_message", chat_id, text=text, reply_markup=reply_markup)

    async def send_photo(self, chat_id: ChatId, photo: str, caption: Optional[str] = None,
                         reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef:
        return await self._send("send_photo", chat_id, photo=photo, caption=caption, reply_markup=reply_markup)

    async def send_video(self, chat_id: ChatId, video: str, caption: Optional[str] = None,
                         reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef:
        return await self._send("send_video", chat_id, video=video, caption=caption, reply_markup=reply_markup)

    async def send_voice(self, chat_id: ChatId, voice: str, caption: Optional[str] = None,
                         reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef:
        return await self._send("send_voice", chat_id, voice=voice, caption=caption, reply_markup=reply_markup)

    async def send_video_note(self, chat_id: ChatId, video_note: str,
                              reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef:
        return await self._send("send_video_note", chat_id, video_note=video_note, reply_markup=reply_markup)

    async def send_document(self, chat_id: ChatId, document: str, caption: Optional[str] = None,
                            reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef:
        return await self._send("send_document", chat_id, document=document, caption=caption,
                                reply_markup=reply_markup)

    async def send_audio(self, chat_id: ChatId, audio: str, caption: Optional[str] = None,
                         reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef:
        return await self._send("send_audio", chat_id, audio=audio, caption=caption, reply_markup=reply_markup)

    async def send_location(self, chat_id: ChatId, latitude: float, longitude: float,
                            reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef:
        return await self._send("send_location", chat_id, latitude=latitude, longitude=longitude,
                                reply_markup=reply_markup)

    async def send_sticker(self, chat_id: ChatId, sticker: str,
                           reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef:
        return await self._send("send_sticker", chat_id, sticker=sticker, reply_markup=reply_markup)

    async def send_poll(self, chat_id: ChatId, question: str, options: Sequence[str],
                        reply_markup: Optional[InlineKeyboardMarkup] = None) -> MessageRef:
        return await self._send("send_poll", chat_id, question=question, options=list(options),
                                reply_markup=reply_markup)

    async def edit_reply_markup(self, chat_id: ChatId, message_id: int,
                                reply_markup: Optional[InlineKeyboardMarkup]) -> None:
        """Replace the inline keyboard of an already sent message."""
        if not self.bot:
            raise TransportError("edit_message_reply_markup", chat_id, RuntimeError("Bot not initialized"))
        try:
            await self.bot.edit_message_reply_markup(
                chat_id=chat_id, message_id=message_id, reply_markup=reply_markup
            )
        except TelegramError as e:
            logger.warning(f"Editing keyboard of {chat_id}:{message_id} failed: {e}")
            raise TransportError("edit_message_reply_markup", chat_id, e) from e

    async def delete_message(self, chat_id: ChatId, message_id: int) -> bool:
        """Delete a message; False when Telegram refuses."""
        if not self.bot:
            logger.error("Bot not initialized")
            return False
        try:
            return bool(await self.bot.delete_message(chat_id=chat_id, message_id=message_id))
        except TelegramError as e:
            logger.warning(f"Deleting {chat_id}:{message_id} failed: {e}")
            return False
