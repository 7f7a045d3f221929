"""
Administrative commands for inspecting and repairing pairing state and profiles.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from relaybot.config import Settings, get_settings
from relaybot.core import PairingEngine, create_state_store
from relaybot.core.errors import RelayBotError
from relaybot.database import DatabaseManager, ProfileRepository

logger = logging.getLogger(__name__)


class AdminCommands:
    """Administrative commands for system management."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @asynccontextmanager
    async def _engine(self) -> AsyncIterator[PairingEngine]:
        store = create_state_store(
            self.settings.state_backend,
            redis_url=self.settings.redis_url,
            key_prefix=self.settings.state_key_prefix,
        )
        await store.start()
        try:
            yield PairingEngine(store)
        finally:
            await store.stop()

    @asynccontextmanager
    async def _profiles(self) -> AsyncIterator[ProfileRepository]:
        db_manager = DatabaseManager(self.settings.database_url)
        try:
            yield ProfileRepository(db_manager)
        finally:
            await db_manager.close()

    async def state_stats(self) -> Dict[str, Any]:
        """Queue length and number of active pairs."""
        try:
            async with self._engine() as engine:
                stats = await engine.statistics()
            return {'success': True, 'stats': stats}
        except RelayBotError as e:
            logger.error(f"Failed to read statistics: {e}")
            return {'success': False, 'error': e.message}

    async def state_queue(self) -> Dict[str, Any]:
        """Waiting participants in queue order."""
        try:
            async with self._engine() as engine:
                members = await engine.store.queue_members()
            return {'success': True, 'queue': members}
        except RelayBotError as e:
            logger.error(f"Failed to read queue: {e}")
            return {'success': False, 'error': e.message}

    async def state_partner(self, participant_id: int) -> Dict[str, Any]:
        try:
            async with self._engine() as engine:
                partner_id = await engine.get_partner(participant_id)
            return {'success': True, 'participant_id': participant_id, 'partner_id': partner_id}
        except RelayBotError as e:
            logger.error(f"Failed to read partner of {participant_id}: {e}")
            return {'success': False, 'error': e.message}

    async def state_release(self, participant_id: int) -> Dict[str, Any]:
        """Force-release a participant, e.g. after the partner blocked the bot."""
        try:
            async with self._engine() as engine:
                partner_id = await engine.release(participant_id)
        except RelayBotError as e:
            logger.error(f"Failed to release {participant_id}: {e}")
            return {'success': False, 'error': e.message}

        if partner_id is None:
            return {'success': True, 'message': f'Participant {participant_id} had no partner'}
        return {
            'success': True,
            'message': f'Released pairing {participant_id} <-> {partner_id}',
            'partner_id': partner_id,
        }

    async def show_profile(self, user_id: int) -> Dict[str, Any]:
        try:
            async with self._profiles() as profiles:
                profile = await profiles.get_profile(user_id)
        except RelayBotError as e:
            return {'success': False, 'error': e.message}
        except SQLAlchemyError as e:
            logger.error(f"Failed to load profile {user_id}: {e}", exc_info=True)
            return {'success': False, 'error': str(e)}

        return {
            'success': True,
            'profile': {
                'user_id': profile.user_id,
                'username': profile.user_name,
                'nickname': profile.user_nickname,
                'gender': profile.user_sex,
                'age': profile.user_age,
                'geo': profile.user_geo,
                'has_avatar': bool(profile.ava_file_id),
                'complete': profile.is_complete,
            },
        }

    async def init_database(self) -> Dict[str, Any]:
        """Create the profile tables."""
        db_manager = DatabaseManager(self.settings.database_url)
        try:
            await db_manager.init()
            return {'success': True, 'message': 'Database tables created'}
        except (RuntimeError, SQLAlchemyError) as e:
            logger.error(f"Database initialization failed: {e}", exc_info=True)
            return {'success': False, 'error': str(e)}
        finally:
            await db_manager.close()
