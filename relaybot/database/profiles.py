"""
Profile repository: read and update participant registration data.
"""
import logging
from typing import Optional

from sqlalchemy import func, select

from relaybot.core.errors import ProfileNotFound
from .connection import DatabaseManager
from .models import Participant

logger = logging.getLogger(__name__)


class ProfileRepository:
    """Access to the ``users`` table through a DatabaseManager."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    async def user_exists(self, user_id: int) -> bool:
        async with self.db_manager.get_session() as session:
            result = await session.execute(
                select(func.count(Participant.id)).where(Participant.user_id == user_id)
            )
            return result.scalar_one() > 0

    async def get_profile(self, user_id: int) -> Participant:
        """Return the profile or raise ProfileNotFound."""
        async with self.db_manager.get_session() as session:
            result = await session.execute(select(Participant).where(Participant.user_id == user_id))
            profile = result.scalar_one_or_none()
        if profile is None:
            raise ProfileNotFound(user_id)
        return profile

    async def upsert_profile(self, user_id: int, **fields) -> Participant:
        """Create the profile if missing, then apply the given column values."""
        async with self.db_manager.get_session() as session:
            result = await session.execute(select(Participant).where(Participant.user_id == user_id))
            profile = result.scalar_one_or_none()

            if profile is None:
                profile = Participant(user_id=user_id, user_age=0)
                session.add(profile)
                logger.info(f"Registered new participant {user_id}")

            for name, value in fields.items():
                if not hasattr(Participant, name):
                    raise AttributeError(f"Unknown profile field: {name}")
                setattr(profile, name, value)

            await session.flush()
            await session.refresh(profile)
            return profile

    async def ensure_user(self, user_id: int, username: Optional[str] = None,
                          first_name: Optional[str] = None, last_name: Optional[str] = None) -> Participant:
        """Upsert the Telegram identity fields seen on an update."""
        return await self.upsert_profile(
            user_id,
            user_name=username,
            first_name=first_name,
            last_name=last_name,
        )

    async def update_registration(self, user_id: int, nickname: str, gender: str, age: int,
                                  avatar_file_id: str, avatar_path: Optional[str] = None) -> Participant:
        """Store the attributes collected from the registration photo."""
        return await self.upsert_profile(
            user_id,
            user_nickname=nickname,
            user_sex=gender,
            user_age=age,
            ava_file_id=avatar_file_id,
            ava=avatar_path,
        )

    async def update_geo(self, user_id: int, latitude: float, longitude: float) -> Participant:
        return await self.upsert_profile(user_id, user_geo=f"{latitude:.5f},{longitude:.5f}")

    async def is_complete(self, user_id: int) -> bool:
        """True when the profile exists and every registration attribute is set."""
        try:
            profile = await self.get_profile(user_id)
        except ProfileNotFound:
            return False
        return profile.is_complete
