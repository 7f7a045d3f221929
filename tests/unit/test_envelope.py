from types import SimpleNamespace

from conftest import make_message, make_user
from relaybot.core.envelope import ContactCard, GeoPoint, PayloadKind, PollSpec, envelope_from_message, sender_display


def test_sender_display_prefers_username() -> None:
    assert sender_display(make_user(1, username="alice")) == "@alice"
    assert sender_display(make_user(42)) == "42"
    assert sender_display(None) == "unknown"


def test_text_message_is_classified_as_text() -> None:
    envelope = envelope_from_message(make_message(make_user(1, "alice"), text="hi"))

    assert envelope.kind is PayloadKind.TEXT
    assert envelope.payload == "hi"
    assert envelope.sender == "@alice"


def test_photo_uses_largest_size_and_caption() -> None:
    sizes = (SimpleNamespace(file_id="small"), SimpleNamespace(file_id="large"))
    envelope = envelope_from_message(make_message(make_user(1), photo=sizes, caption="sunset"))

    assert envelope.kind is PayloadKind.PHOTO
    assert envelope.payload == "large"
    assert envelope.caption == "sunset"


def test_location_contact_and_poll_payloads() -> None:
    user = make_user(1)

    location = envelope_from_message(make_message(user, location=SimpleNamespace(latitude=1.5, longitude=2.5)))
    contact = envelope_from_message(make_message(
        user, contact=SimpleNamespace(phone_number="+1", first_name="Bob", last_name=None)
    ))
    poll = envelope_from_message(make_message(
        user, poll=SimpleNamespace(question="Q?", options=[SimpleNamespace(text="A"), SimpleNamespace(text="B")])
    ))

    assert location.payload == GeoPoint(1.5, 2.5)
    assert contact.payload == ContactCard("+1", "Bob", "")
    assert poll.payload == PollSpec("Q?", ("A", "B"))


def test_unsupported_message_is_unknown() -> None:
    envelope = envelope_from_message(make_message(make_user(1), dice=SimpleNamespace(value=6)))

    assert envelope.kind is PayloadKind.UNKNOWN
    assert envelope.payload is None
