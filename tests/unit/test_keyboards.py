from relaybot.ui.keyboards import CallbackAction, PairingKeyboards, build_callback_data, parse_callback_data


def test_build_callback_data_uses_prefixes() -> None:
    assert build_callback_data(CallbackAction.CHAT) == "chat"
    assert build_callback_data(CallbackAction.SELECT, 42) == "select_42"
    assert build_callback_data(CallbackAction.DELETE, 1, -2, 3, 4) == "delete_1_-2_3_4"


def test_parse_callback_data_matches_by_prefix() -> None:
    assert parse_callback_data("select_42") == {'action': CallbackAction.SELECT, 'params': "42", 'id': 42}
    assert parse_callback_data("exit")['action'] is CallbackAction.EXIT
    assert parse_callback_data("delete_1_2_3_4")['params'] == "1_2_3_4"
    assert 'id' not in parse_callback_data("select_abc")
    assert parse_callback_data("noop")['action'] is None


def test_candidates_keyboard_has_one_row_per_candidate() -> None:
    markup = PairingKeyboards.candidates([5, 7])

    assert [[button.callback_data for button in row] for row in markup.inline_keyboard] == [
        ["select_5"], ["select_7"]
    ]
