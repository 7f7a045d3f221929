"""
Relay dispatcher: turns one envelope plus a resolved partner into the
outbound messages.

Every payload kind is one row of ``RELAY_ROUTES``. Only the send to the
partner must succeed; the sender's delete control and the oversight mirror
are best effort.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple

from relaybot.core.deletion import DeleteToken, DeletionCorrelator
from relaybot.core.envelope import PayloadKind, RelayEnvelope
from relaybot.core.errors import PartnerUnreachable, TransportError
from relaybot.core.transport import ChatId, MessageRef, Transport
from relaybot.ui.keyboards import PairingKeyboards
from relaybot.ui.menus import CONTROL_PROMPT, UNKNOWN_KIND_NOTICE

logger = logging.getLogger(__name__)


def _rendered_args(envelope: RelayEnvelope, rendered: str) -> Tuple:
    return (rendered,)


def _file_args(envelope: RelayEnvelope, rendered: str) -> Tuple:
    return (envelope.payload,)


def _geo_args(envelope: RelayEnvelope, rendered: str) -> Tuple:
    return (envelope.payload.latitude, envelope.payload.longitude)


def _poll_args(envelope: RelayEnvelope, rendered: str) -> Tuple:
    return (envelope.payload.question, envelope.payload.options)


def _geo_detail(payload: Any) -> str:
    return f": {payload.latitude:.5f}, {payload.longitude:.5f}"


def _contact_detail(payload: Any) -> str:
    name = f"{payload.first_name} {payload.last_name}".strip()
    return f":\nPhone: {payload.phone_number}\nName: {name}"


def _poll_detail(payload: Any) -> str:
    return f"\nQuestion: {payload.question}"


class RelayRoute(NamedTuple):
    """How one payload kind is relayed."""
    label: str
    send: str
    payload_args: Callable[[RelayEnvelope, str], Tuple]
    captioned: bool = False
    exit_keyboard: bool = True
    deletable: bool = True
    mirror_payload: bool = True
    detail: Optional[Callable[[Any], str]] = None


RELAY_ROUTES: Dict[PayloadKind, RelayRoute] = {
    PayloadKind.TEXT: RelayRoute("message", "send_text", _rendered_args, mirror_payload=False),
    PayloadKind.PHOTO: RelayRoute("photo", "send_photo", _file_args, captioned=True),
    PayloadKind.VIDEO: RelayRoute("video", "send_video", _file_args, captioned=True),
    PayloadKind.VOICE: RelayRoute("voice message", "send_voice", _file_args, captioned=True),
    PayloadKind.VIDEO_NOTE: RelayRoute("video message", "send_video_note", _file_args),
    PayloadKind.DOCUMENT: RelayRoute("document", "send_document", _file_args, captioned=True),
    PayloadKind.AUDIO: RelayRoute("audio", "send_audio", _file_args, captioned=True),
    PayloadKind.LOCATION: RelayRoute("location", "send_location", _geo_args,
                                     mirror_payload=False, detail=_geo_detail),
    PayloadKind.STICKER: RelayRoute("sticker", "send_sticker", _file_args),
    PayloadKind.CONTACT: RelayRoute("contact", "send_text", _rendered_args,
                                    mirror_payload=False, detail=_contact_detail),
    PayloadKind.POLL: RelayRoute("poll", "send_poll", _poll_args, exit_keyboard=False,
                                 detail=_poll_detail),
}


@dataclass
class RelayResult:
    """Messages produced by one relay."""
    partner_message: Optional[MessageRef]
    control_message: Optional[MessageRef] = None
    channel_messages: Tuple[MessageRef, ...] = ()
    notice: Optional[MessageRef] = None


def describe_content(envelope: RelayEnvelope, route: RelayRoute) -> str:
    """Message content without the sender prefix."""
    if envelope.kind is PayloadKind.TEXT:
        return envelope.payload
    if envelope.caption:
        return envelope.caption

    description = route.label
    if route.detail is not None:
        description += route.detail(envelope.payload)
    return description


def render_caption(envelope: RelayEnvelope, route: RelayRoute) -> str:
    """Text shown to the partner (caption for media, body for text kinds)."""
    content = describe_content(envelope, route)
    if envelope.kind is PayloadKind.TEXT or envelope.caption:
        return f"{envelope.sender}: {content}"
    return f"{envelope.sender} sent a {content}"


class RelayDispatcher:
    """Forwards envelopes between paired participants."""

    def __init__(self, transport: Transport, oversight_chat_id: ChatId,
                 correlator: Optional[DeletionCorrelator] = None):
        self.transport = transport
        self.oversight_chat_id = oversight_chat_id
        self.correlator = correlator or DeletionCorrelator(transport)

    async def relay(self, envelope: RelayEnvelope, sender_id: int, partner_id: int) -> RelayResult:
        """Relay one envelope from sender to partner.

        Raises PartnerUnreachable when the partner copy cannot be sent; the
        caller is expected to release the pairing.
        """
        route = RELAY_ROUTES.get(envelope.kind)
        if route is None:
            logger.info(f"Unsupported {envelope.kind.value} message from {sender_id}")
            try:
                notice = await self.transport.send_text(sender_id, UNKNOWN_KIND_NOTICE)
            except TransportError as e:
                logger.warning(f"Unsupported-kind notice to {sender_id} failed: {e}")
                notice = None
            return RelayResult(partner_message=None, notice=notice)

        logger.debug(f"Relaying {envelope.kind.value} from {sender_id} to {partner_id}")
        rendered = render_caption(envelope, route)

        try:
            partner_message = await self._send_payload(
                route, partner_id, envelope, rendered,
                caption=rendered,
                reply_markup=PairingKeyboards.exit_button() if route.exit_keyboard else None,
            )
        except TransportError as e:
            logger.warning(f"Partner {partner_id} unreachable for {sender_id}: {e}")
            raise PartnerUnreachable(sender_id, partner_id, e) from e

        control_message, channel_messages = await asyncio.gather(
            self._send_control(route, sender_id, partner_message),
            self._mirror(route, envelope, partner_id),
        )
        return RelayResult(partner_message, control_message, channel_messages)

    async def _send_payload(self, route: RelayRoute, chat_id: ChatId, envelope: RelayEnvelope,
                            rendered: str, caption: Optional[str] = None, reply_markup=None) -> MessageRef:
        send = getattr(self.transport, route.send)
        kwargs: Dict[str, Any] = {'reply_markup': reply_markup}
        if route.captioned:
            kwargs['caption'] = caption
        return await send(chat_id, *route.payload_args(envelope, rendered), **kwargs)

    async def _send_control(self, route: RelayRoute, sender_id: int,
                            partner_message: MessageRef) -> Optional[MessageRef]:
        """Send the sender a prompt and attach the delete button to it."""
        if not route.deletable:
            return None

        try:
            control = await self.transport.send_text(sender_id, CONTROL_PROMPT)
        except TransportError as e:
            logger.warning(f"Control message to {sender_id} failed: {e}")
            return None

        token = DeleteToken(control.chat_id, control.message_id,
                            partner_message.chat_id, partner_message.message_id)
        markup = self.correlator.control_markup(token)
        if markup is None:
            return control

        try:
            await self.transport.edit_reply_markup(control.chat_id, control.message_id, markup)
        except TransportError as e:
            logger.warning(f"Attaching delete button for {sender_id} failed: {e}")
        return control

    async def _mirror(self, route: RelayRoute, envelope: RelayEnvelope,
                      partner_id: int) -> Tuple[MessageRef, ...]:
        """Copy the message to the oversight channel; failures are only logged."""
        header = f"{envelope.sender} → {partner_id}: {describe_content(envelope, route)}"
        sent = []
        try:
            if route.mirror_payload:
                sent.append(await self._send_payload(route, self.oversight_chat_id, envelope,
                                                     header, caption=header))
                if route.captioned:
                    return tuple(sent)
            sent.append(await self.transport.send_text(self.oversight_chat_id, header))
        except TransportError as e:
            logger.warning(f"Mirroring {envelope.kind.value} from {envelope.sender} failed: {e}")
        return tuple(sent)
