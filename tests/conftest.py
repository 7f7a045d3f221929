from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from relaybot.config import Settings
from relaybot.core import InMemoryStateStore, PairingEngine
from relaybot.core.errors import TransportError
from relaybot.core.transport import MessageRef
from relaybot.database import DatabaseManager, ProfileRepository


@dataclass
class SentMessage:
    operation: str
    chat_id: Any
    message_id: int
    payload: Dict[str, Any]

    @property
    def reply_markup(self):
        return self.payload.get("reply_markup")

    @property
    def callback_data(self) -> List[str]:
        markup = self.reply_markup
        if markup is None:
            return []
        return [button.callback_data for row in markup.inline_keyboard for button in row]


@dataclass
class FakeTransport:
    """Records every call; chats in ``unreachable`` fail on send."""
    unreachable: Set[Any] = field(default_factory=set)
    undeletable: Set[Tuple[Any, int]] = field(default_factory=set)
    fail_edits: bool = False
    sent: List[SentMessage] = field(default_factory=list)
    edits: List[Tuple[Any, int, Any]] = field(default_factory=list)
    deleted: List[Tuple[Any, int]] = field(default_factory=list)
    _next_id: int = 1000

    def _record(self, operation: str, chat_id: Any, **payload: Any) -> MessageRef:
        if chat_id in self.unreachable:
            raise TransportError(operation, chat_id, RuntimeError("Forbidden: bot was blocked by the user"))
        self._next_id += 1
        self.sent.append(SentMessage(operation, chat_id, self._next_id, payload))
        return MessageRef(chat_id, self._next_id)

    def to(self, chat_id: Any) -> List[SentMessage]:
        return [message for message in self.sent if message.chat_id == chat_id]

    def texts(self, chat_id: Any) -> List[str]:
        return [message.payload.get("text") for message in self.to(chat_id) if message.operation == "send_text"]

    async def send_text(self, chat_id, text, reply_markup=None):
        return self._record("send_text", chat_id, text=text, reply_markup=reply_markup)

    async def send_photo(self, chat_id, photo, caption=None, reply_markup=None):
        return self._record("send_photo", chat_id, photo=photo, caption=caption, reply_markup=reply_markup)

    async def send_video(self, chat_id, video, caption=None, reply_markup=None):
        return self._record("send_video", chat_id, video=video, caption=caption, reply_markup=reply_markup)

    async def send_voice(self, chat_id, voice, caption=None, reply_markup=None):
        return self._record("send_voice", chat_id, voice=voice, caption=caption, reply_markup=reply_markup)

    async def send_video_note(self, chat_id, video_note, reply_markup=None):
        return self._record("send_video_note", chat_id, video_note=video_note, reply_markup=reply_markup)

    async def send_document(self, chat_id, document, caption=None, reply_markup=None):
        return self._record("send_document", chat_id, document=document, caption=caption, reply_markup=reply_markup)

    async def send_audio(self, chat_id, audio, caption=None, reply_markup=None):
        return self._record("send_audio", chat_id, audio=audio, caption=caption, reply_markup=reply_markup)

    async def send_location(self, chat_id, latitude, longitude, reply_markup=None):
        return self._record("send_location", chat_id, latitude=latitude, longitude=longitude,
                            reply_markup=reply_markup)

    async def send_sticker(self, chat_id, sticker, reply_markup=None):
        return self._record("send_sticker", chat_id, sticker=sticker, reply_markup=reply_markup)

    async def send_poll(self, chat_id, question, options, reply_markup=None):
        return self._record("send_poll", chat_id, question=question, options=list(options),
                            reply_markup=reply_markup)

    async def edit_reply_markup(self, chat_id, message_id, reply_markup):
        if self.fail_edits:
            raise TransportError("edit_message_reply_markup", chat_id, RuntimeError("message can't be edited"))
        self.edits.append((chat_id, message_id, reply_markup))

    async def delete_message(self, chat_id, message_id) -> bool:
        if (chat_id, message_id) in self.undeletable:
            return False
        self.deleted.append((chat_id, message_id))
        return True


_MESSAGE_FIELDS = (
    "text", "caption", "video", "voice", "video_note", "document", "audio",
    "location", "sticker", "contact", "poll",
)


def make_user(user_id: int, username: Optional[str] = None, first_name: str = "Test") -> SimpleNamespace:
    return SimpleNamespace(id=user_id, username=username, first_name=first_name, last_name=None)


def make_message(user: Optional[SimpleNamespace] = None, **fields: Any) -> SimpleNamespace:
    """Message-shaped object with every payload attribute defaulting to empty."""
    values: Dict[str, Any] = {name: None for name in _MESSAGE_FIELDS}
    values["photo"] = ()
    values.update(fields)
    values["from_user"] = user
    values["chat_id"] = user.id if user is not None else 0
    return SimpleNamespace(**values)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def engine(store) -> PairingEngine:
    return PairingEngine(store)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        bot_token="123456:TEST",
        oversight_chat_id="-1001234567890",
        admin_ids="1,2",
        state_backend="memory",
    )


@pytest.fixture
async def db_manager(tmp_path):
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'relaybot.db'}")
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
def profiles(db_manager) -> ProfileRepository:
    return ProfileRepository(db_manager)


async def register_complete(profiles: ProfileRepository, user_id: int) -> None:
    await profiles.update_registration(user_id, f"user{user_id}", "male", 25, f"file-{user_id}")
    await profiles.update_geo(user_id, 43.23801, 76.94563)
