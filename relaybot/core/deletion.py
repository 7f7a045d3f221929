"""
Deletion correlator: links the sender's control message to the partner's
relayed copy so either side can remove both with one button press.
"""
import asyncio
import logging
import re
from typing import NamedTuple, Optional

from telegram import InlineKeyboardMarkup

from relaybot.core.errors import DeleteFailed, MalformedToken, PartialDeleteFailure
from relaybot.core.transport import Transport
from relaybot.ui.keyboards import CallbackAction, DeleteKeyboards, build_callback_data

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r'^delete_(-?\d+)_(-?\d+)_(-?\d+)_(-?\d+)$')


class DeleteToken(NamedTuple):
    sender_chat_id: int
    sender_message_id: int
    partner_chat_id: int
    partner_message_id: int


class DeleteResult(NamedTuple):
    sender_deleted: bool
    partner_deleted: bool

    @property
    def complete(self) -> bool:
        return self.sender_deleted and self.partner_deleted


def encode_token(token: DeleteToken) -> str:
    """Serialize a token into callback data."""
    return build_callback_data(CallbackAction.DELETE, *token)


def decode_token(data: str) -> DeleteToken:
    """Parse callback data back into a token, or raise MalformedToken."""
    match = _TOKEN_RE.match(data or "")
    if not match:
        raise MalformedToken(data, "expected delete_ followed by four integers")
    return DeleteToken(*(int(group) for group in match.groups()))


class DeletionCorrelator:
    """Builds delete buttons and performs the paired deletion."""

    def __init__(self, transport: Transport):
        self.transport = transport

    def control_markup(self, token: DeleteToken, label: str = "🗑 Delete") -> Optional[InlineKeyboardMarkup]:
        """Keyboard with the delete button, None if the token is too long for a callback."""
        markup = DeleteKeyboards.delete_button(encode_token(token), label)
        if markup is None:
            logger.warning(f"Delete token {token} exceeds callback data limit")
        return markup

    async def delete_pair(self, token: DeleteToken) -> DeleteResult:
        """Delete both messages named by the token.

        Both deletes are always attempted. Raises PartialDeleteFailure when
        only one succeeded and DeleteFailed when neither did.
        """
        sender_deleted, partner_deleted = await asyncio.gather(
            self.transport.delete_message(token.sender_chat_id, token.sender_message_id),
            self.transport.delete_message(token.partner_chat_id, token.partner_message_id),
        )
        result = DeleteResult(bool(sender_deleted), bool(partner_deleted))

        if result.complete:
            logger.info(f"Deleted relayed pair {token}")
            return result
        if result.sender_deleted or result.partner_deleted:
            logger.warning(f"Partial delete for {token}: {result}")
            raise PartialDeleteFailure(result)
        logger.warning(f"Delete failed for {token}")
        raise DeleteFailed(result)
