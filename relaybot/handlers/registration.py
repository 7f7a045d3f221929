"""
Registration flow for participants whose profile is incomplete.

Step one is a photo whose caption has three lines (``@nickname``, gender,
age); step two is a location.
"""
from dataclasses import dataclass
from typing import List

import structlog
from telegram import Message

from relaybot.core.transport import Transport
from relaybot.database import ProfileRepository
from relaybot.ui.menus import GEO_REQUEST, GEO_SAVED, REGISTRATION_DONE, RegistrationFormatter

logger = structlog.get_logger(__name__)


@dataclass
class RegistrationData:
    nickname: str
    gender: str
    age: int


def parse_registration_caption(caption: str, gender_options: List[str]) -> RegistrationData:
    """Parse the registration caption or raise ValueError with the reason."""
    lines = [line.strip() for line in (caption or "").replace("\r\n", "\n").split("\n") if line.strip()]
    if len(lines) != 3:
        raise ValueError("The caption must have exactly three lines.")

    nickname_line, gender_line, age_line = lines
    if not nickname_line.startswith("@") or len(nickname_line) < 2:
        raise ValueError("The first line must be your nickname starting with @.")

    allowed = {option.lower(): option for option in gender_options}
    gender = allowed.get(gender_line.lower())
    if gender is None:
        choices = " or ".join(option.capitalize() for option in gender_options)
        raise ValueError(f"The second line must be {choices}.")

    try:
        age = int(age_line)
    except ValueError:
        raise ValueError("The age must be a number, for example: 25") from None
    if age <= 0:
        raise ValueError("The age must be a positive number, for example: 25")

    return RegistrationData(nickname_line[1:], gender, age)


class RegistrationFlow:
    """Collects profile attributes from private messages."""

    def __init__(self, profiles: ProfileRepository, transport: Transport, gender_options: List[str]):
        self.profiles = profiles
        self.transport = transport
        self.gender_options = gender_options

    async def handle(self, message: Message, user_id: int) -> None:
        """Advance registration with one message from an unregistered participant."""
        chat_id = message.chat_id

        if message.photo:
            try:
                data = parse_registration_caption(message.caption, self.gender_options)
            except ValueError as e:
                logger.info("registration_rejected", user_id=user_id, reason=str(e))
                await self.transport.send_text(
                    chat_id, RegistrationFormatter.format_invalid_format(str(e), self.gender_options)
                )
                return

            await self.profiles.update_registration(
                user_id, data.nickname, data.gender, data.age, message.photo[-1].file_id
            )
            logger.info("registration_saved", user_id=user_id, nickname=data.nickname)
            await self.transport.send_photo(
                chat_id, message.photo[-1].file_id,
                caption=RegistrationFormatter.format_summary(data.nickname, data.gender, data.age),
            )
            await self.transport.send_text(chat_id, REGISTRATION_DONE)
            return

        if message.location:
            await self.profiles.update_geo(user_id, message.location.latitude, message.location.longitude)
            logger.info("geo_saved", user_id=user_id)
            await self.transport.send_text(chat_id, GEO_SAVED)
            return

        profile = await self.profiles.get_profile(user_id)
        if profile.ava_file_id and profile.user_nickname and not profile.user_geo:
            await self.transport.send_text(chat_id, GEO_REQUEST)
        else:
            await self.transport.send_text(chat_id, RegistrationFormatter.format_instructions(self.gender_options))
