from types import SimpleNamespace

import pytest

from conftest import make_message, make_user
from relaybot.handlers.registration import RegistrationFlow, parse_registration_caption
from relaybot.ui.menus import GEO_SAVED, REGISTRATION_DONE

GENDERS = ["male", "female"]


def test_parse_registration_caption_accepts_valid_caption() -> None:
    data = parse_registration_caption("@nick\r\nFemale\n 27 ", GENDERS)

    assert (data.nickname, data.gender, data.age) == ("nick", "female", 27)


@pytest.mark.parametrize("caption, reason", [
    ("@nick\nmale", "three lines"),
    ("nick\nmale\n20", "starting with @"),
    ("@nick\nrobot\n20", "Male or Female"),
    ("@nick\nmale\ntwenty", "must be a number"),
    ("@nick\nmale\n0", "positive"),
    (None, "three lines"),
])
def test_parse_registration_caption_rejects_invalid_caption(caption, reason) -> None:
    with pytest.raises(ValueError) as exc_info:
        parse_registration_caption(caption, GENDERS)

    assert reason in str(exc_info.value)


async def test_registration_flow_collects_photo_then_location(profiles, transport) -> None:
    flow = RegistrationFlow(profiles, transport, GENDERS)
    user = make_user(7)
    await profiles.ensure_user(7)

    photo = (SimpleNamespace(file_id="small"), SimpleNamespace(file_id="avatar"))
    await flow.handle(make_message(user, photo=photo, caption="@seven\nmale\n21"), 7)

    assert transport.texts(7)[-1] == REGISTRATION_DONE
    assert transport.to(7)[0].payload["photo"] == "avatar"
    assert not await profiles.is_complete(7)

    await flow.handle(make_message(user, location=SimpleNamespace(latitude=1.0, longitude=2.0)), 7)

    assert transport.texts(7)[-1] == GEO_SAVED
    assert await profiles.is_complete(7)


async def test_registration_flow_rejects_bad_caption(profiles, transport) -> None:
    flow = RegistrationFlow(profiles, transport, GENDERS)
    await profiles.ensure_user(8)

    photo = (SimpleNamespace(file_id="avatar"),)
    await flow.handle(make_message(make_user(8), photo=photo, caption="hello"), 8)

    assert transport.texts(8)[0].startswith("Invalid format!")
    assert not (await profiles.get_profile(8)).user_nickname
