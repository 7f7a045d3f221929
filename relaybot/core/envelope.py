"""
Normalized, kind-tagged representation of one inbound message.
"""
import enum
from dataclasses import dataclass
from typing import Any, NamedTuple, Optional, Tuple

from telegram import Message, User


class PayloadKind(enum.Enum):
    """Payload kinds the relay understands."""
    TEXT = "text"
    PHOTO = "photo"
    VIDEO = "video"
    VOICE = "voice"
    VIDEO_NOTE = "video_note"
    DOCUMENT = "document"
    AUDIO = "audio"
    LOCATION = "location"
    STICKER = "sticker"
    CONTACT = "contact"
    POLL = "poll"
    UNKNOWN = "unknown"


class GeoPoint(NamedTuple):
    latitude: float
    longitude: float


class ContactCard(NamedTuple):
    phone_number: str
    first_name: str
    last_name: str = ""


class PollSpec(NamedTuple):
    question: str
    options: Tuple[str, ...]


@dataclass(frozen=True)
class RelayEnvelope:
    """One inbound message ready for forwarding.

    ``payload`` is the transport handle for the content: a file id for
    media, the text itself, a GeoPoint, a ContactCard or a PollSpec.
    """
    kind: PayloadKind
    sender: str
    payload: Any = None
    caption: Optional[str] = None


def sender_display(user: Optional[User]) -> str:
    """@username when the sender has one, otherwise the numeric id."""
    if user is None:
        return "unknown"
    if user.username:
        return f"@{user.username}"
    return str(user.id)


def envelope_from_message(message: Message) -> RelayEnvelope:
    """Classify a Telegram message into a RelayEnvelope."""
    sender = sender_display(message.from_user)
    caption = message.caption or None

    if message.text:
        return RelayEnvelope(PayloadKind.TEXT, sender, message.text)
    if message.photo:
        # last size is the largest
        return RelayEnvelope(PayloadKind.PHOTO, sender, message.photo[-1].file_id, caption)
    if message.video:
        return RelayEnvelope(PayloadKind.VIDEO, sender, message.video.file_id, caption)
    if message.voice:
        return RelayEnvelope(PayloadKind.VOICE, sender, message.voice.file_id, caption)
    if message.video_note:
        return RelayEnvelope(PayloadKind.VIDEO_NOTE, sender, message.video_note.file_id)
    if message.document:
        return RelayEnvelope(PayloadKind.DOCUMENT, sender, message.document.file_id, caption)
    if message.audio:
        return RelayEnvelope(PayloadKind.AUDIO, sender, message.audio.file_id, caption)
    if message.location:
        location = message.location
        return RelayEnvelope(PayloadKind.LOCATION, sender, GeoPoint(location.latitude, location.longitude))
    if message.sticker:
        return RelayEnvelope(PayloadKind.STICKER, sender, message.sticker.file_id)
    if message.contact:
        contact = message.contact
        return RelayEnvelope(
            PayloadKind.CONTACT,
            sender,
            ContactCard(contact.phone_number, contact.first_name, contact.last_name or ""),
        )
    if message.poll:
        poll = message.poll
        return RelayEnvelope(
            PayloadKind.POLL,
            sender,
            PollSpec(poll.question, tuple(option.text for option in poll.options)),
        )
    return RelayEnvelope(PayloadKind.UNKNOWN, sender)
