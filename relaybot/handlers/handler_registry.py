"""
Handler registry for the bot's commands, callbacks and relayed messages.
Each participant's updates are processed one at a time, in receipt order.
"""
import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

import structlog
from telegram import Update, User
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes, MessageHandler, filters

from relaybot.config.settings import Settings, is_admin
from relaybot.core import (
    DeletionCorrelator, EnqueueResult, PairingEngine, RelayDispatcher, decode_token, envelope_from_message
)
from relaybot.core.errors import (
    AlreadyPaired, DeleteFailed, InvalidPairing, MalformedToken, PartialDeleteFailure,
    PartnerUnreachable, RegistrationRequired, StoreUnavailable, TransportError
)
from relaybot.core.transport import Transport
from relaybot.database import ProfileRepository
from relaybot.ui import CallbackAction, MenuFormatter, RegistrationFormatter, StatusFormatter, parse_callback_data
from relaybot.ui.keyboards import PairingKeyboards
from relaybot.ui.menus import (
    ACCESS_DENIED, DELETE_FAILED, DELETE_PARTIAL, DELETE_SUCCESS, NO_CANDIDATES, PARTNER_UNREACHABLE_NOTICE
)
from .registration import RegistrationFlow

logger = structlog.get_logger(__name__)

STORE_DOWN_NOTICE = "⚠️ The service is temporarily unavailable. Please try again later."


class HandlerRegistry:
    """Registry for all bot handlers, wired to the pairing and relay engine."""

    def __init__(self, transport: Transport, engine: PairingEngine, dispatcher: RelayDispatcher,
                 correlator: DeletionCorrelator, profiles: ProfileRepository, settings: Settings):
        """Initialize the handler registry with required dependencies."""
        self.transport = transport
        self.engine = engine
        self.dispatcher = dispatcher
        self.correlator = correlator
        self.profiles = profiles
        self.settings = settings
        self.registration = RegistrationFlow(profiles, transport, settings.gender_options)
        self.logger = logger.bind(component="handler_registry")
        # asyncio.Lock wakes waiters in FIFO order; a lock lives while anyone holds or awaits it
        self._user_locks: Dict[int, asyncio.Lock] = {}
        self._lock_users: Dict[int, int] = defaultdict(int)

    def register_handlers(self, application: Application) -> None:
        """Register all handlers with the bot application."""
        self.logger.info("Registering handlers with bot client...")

        application.add_handler(CommandHandler(["start", "hello"], self.handle_start))
        application.add_handler(CommandHandler("status", self.handle_status))

        application.add_handler(CallbackQueryHandler(self.handle_chat, pattern=CallbackAction.CHAT.pattern))
        application.add_handler(CallbackQueryHandler(self.handle_select, pattern=CallbackAction.SELECT.pattern))
        application.add_handler(CallbackQueryHandler(self.handle_exit, pattern=CallbackAction.EXIT.pattern))
        application.add_handler(CallbackQueryHandler(self.handle_delete, pattern=CallbackAction.DELETE.pattern))

        application.add_handler(MessageHandler(
            filters.ChatType.PRIVATE & ~filters.COMMAND,
            self.handle_message
        ))

        self.logger.info("All handlers registered successfully")

    @asynccontextmanager
    async def _serialized(self, user_id: int) -> AsyncIterator[None]:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = self._user_locks[user_id] = asyncio.Lock()
        self._lock_users[user_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[user_id] -= 1
            if not self._lock_users[user_id]:
                del self._lock_users[user_id]
                del self._user_locks[user_id]

    async def _ensure_user(self, user: User) -> None:
        if not await self.profiles.user_exists(user.id):
            await self.profiles.ensure_user(user.id, user.username, user.first_name, user.last_name)

    async def _report_store_error(self, chat_id: int, error: StoreUnavailable) -> None:
        self.logger.error("state_store_unavailable", chat_id=chat_id, error=error.message)
        await self.transport.send_text(chat_id, STORE_DOWN_NOTICE)

    # Command handlers
    async def handle_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /start and /hello: register the user and show the Chat button."""
        user = update.effective_user
        if not user:
            return

        await self.profiles.ensure_user(user.id, user.username, user.first_name, user.last_name)
        message, keyboard = MenuFormatter.format_greeting(user.first_name)
        await self.transport.send_text(update.effective_chat.id, message, reply_markup=keyboard)

    async def handle_status(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Show queue and pairing counters to administrators."""
        user = update.effective_user
        if not user:
            return

        chat_id = update.effective_chat.id
        if not is_admin(user.id, self.settings):
            await self.transport.send_text(chat_id, ACCESS_DENIED)
            return

        try:
            stats = await self.engine.statistics()
        except StoreUnavailable as e:
            await self._report_store_error(chat_id, e)
            return
        await self.transport.send_text(chat_id, StatusFormatter.format_status(stats))

    # Callback handlers
    async def handle_chat(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Join the waiting queue and list the other waiting participants."""
        query = update.callback_query
        await query.answer()
        user = query.from_user

        async with self._serialized(user.id):
            try:
                result = await self.engine.enqueue(user.id)
                if result is EnqueueResult.ALREADY_PAIRED:
                    message, keyboard = MenuFormatter.format_already_connected()
                    await self.transport.send_text(user.id, message, reply_markup=keyboard)
                    return
                candidates = await self.engine.list_candidates(user.id)
            except RegistrationRequired:
                await self.transport.send_text(
                    user.id, RegistrationFormatter.format_instructions(self.settings.gender_options)
                )
                return
            except StoreUnavailable as e:
                await self._report_store_error(user.id, e)
                return

            if not candidates:
                await self.transport.send_text(user.id, NO_CANDIDATES)
                return

            message, keyboard = MenuFormatter.format_candidates(candidates)
            await self.transport.send_text(user.id, message, reply_markup=keyboard)

    async def handle_select(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Pair the requester with the chosen candidate."""
        query = update.callback_query
        await query.answer()
        user = query.from_user

        async with self._serialized(user.id):
            try:
                target_id = self._select_target(query.data)
                await self.engine.try_pair(user.id, target_id)
            except InvalidPairing as e:
                self.logger.info("invalid_pairing", user_id=user.id, reason=e.message)
                message, keyboard = MenuFormatter.format_invalid_pairing()
                await self.transport.send_text(user.id, message, reply_markup=keyboard)
                return
            except AlreadyPaired as e:
                if e.participant_id == user.id:
                    message, keyboard = MenuFormatter.format_already_connected()
                    await self.transport.send_text(user.id, message, reply_markup=keyboard)
                else:
                    await self.transport.send_text(user.id, MenuFormatter.format_partner_busy(e.participant_id))
                return
            except StoreUnavailable as e:
                await self._report_store_error(user.id, e)
                return

            self.logger.info("paired", user_id=user.id, partner_id=target_id)
            message, keyboard = MenuFormatter.format_connected(target_id)
            await self.transport.send_text(user.id, message, reply_markup=keyboard)

            message, keyboard = MenuFormatter.format_connected(user.id)
            try:
                await self.transport.send_text(target_id, message, reply_markup=keyboard)
            except TransportError as e:
                self.logger.warning("partner_notify_failed", user_id=user.id, partner_id=target_id, error=str(e))
                await self._force_release(user.id)

    @staticmethod
    def _select_target(data: str) -> int:
        target_id = parse_callback_data(data).get('id')
        if target_id is None:
            raise InvalidPairing(f"Malformed selection {data!r}", details={'data': data})
        return target_id

    async def _force_release(self, user_id: int) -> None:
        """End a pairing whose other side cannot be reached and tell the user."""
        try:
            await self.engine.release(user_id)
        except StoreUnavailable as e:
            await self._report_store_error(user_id, e)
            return
        await self.transport.send_text(
            user_id, PARTNER_UNREACHABLE_NOTICE, reply_markup=PairingKeyboards.chat_button()
        )

    async def handle_exit(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Leave the current conversation and tell the former partner."""
        query = update.callback_query
        await query.answer()
        user = query.from_user

        async with self._serialized(user.id):
            try:
                partner_id = await self.engine.release(user.id)
            except StoreUnavailable as e:
                await self._report_store_error(user.id, e)
                return

            if partner_id is not None:
                message, keyboard = MenuFormatter.format_partner_left()
                try:
                    await self.transport.send_text(partner_id, message, reply_markup=keyboard)
                except TransportError as e:
                    self.logger.warning("partner_notify_failed", user_id=user.id, partner_id=partner_id, error=str(e))

            message, keyboard = MenuFormatter.format_you_left()
            await self.transport.send_text(user.id, message, reply_markup=keyboard)

    async def handle_delete(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Delete a relayed message on both sides."""
        query = update.callback_query
        await query.answer()
        chat_id = query.message.chat_id if query.message else query.from_user.id

        async with self._serialized(query.from_user.id):
            try:
                token = decode_token(query.data)
                if token.sender_chat_id != chat_id:
                    raise MalformedToken(query.data, f"token does not belong to chat {chat_id}")
                await self.correlator.delete_pair(token)
            except MalformedToken as e:
                self.logger.warning("malformed_delete_token", chat_id=chat_id, error=e.message)
                await self.transport.send_text(chat_id, DELETE_FAILED)
                return
            except PartialDeleteFailure:
                await self.transport.send_text(chat_id, DELETE_PARTIAL)
                return
            except DeleteFailed:
                await self.transport.send_text(chat_id, DELETE_FAILED)
                return

            await self.transport.send_text(chat_id, DELETE_SUCCESS)

    # Message handlers
    async def handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Relay to the partner, continue registration, or explain how to connect."""
        message = update.effective_message
        user = update.effective_user
        if not message or not user:
            return

        async with self._serialized(user.id):
            try:
                partner_id = await self.engine.get_partner(user.id)
            except StoreUnavailable as e:
                await self._report_store_error(user.id, e)
                return

            if partner_id is not None:
                await self._relay(message, user.id, partner_id)
                return

            await self._ensure_user(user)
            if not await self.profiles.is_complete(user.id):
                await self.registration.handle(message, user.id)
                return

            text, keyboard = MenuFormatter.format_not_connected()
            await self.transport.send_text(message.chat_id, text, reply_markup=keyboard)

    async def _relay(self, message, sender_id: int, partner_id: int) -> None:
        envelope = envelope_from_message(message)
        try:
            await self.dispatcher.relay(envelope, sender_id, partner_id)
        except PartnerUnreachable as e:
            self.logger.warning("partner_unreachable", user_id=sender_id, partner_id=partner_id,
                                error=str(e.cause))
            await self._force_release(sender_id)
