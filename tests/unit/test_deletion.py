import pytest

from relaybot.core.deletion import DeleteResult, DeleteToken, DeletionCorrelator, decode_token, encode_token
from relaybot.core.errors import DeleteFailed, MalformedToken, PartialDeleteFailure


def test_token_round_trip_preserves_all_fields() -> None:
    data = encode_token(DeleteToken(1, 2, 3, 4))

    assert data == "delete_1_2_3_4"
    assert decode_token(data) == (1, 2, 3, 4)


def test_token_round_trip_with_negative_chat_ids() -> None:
    token = DeleteToken(-1001234567890, 77, -42, 9)

    assert decode_token(encode_token(token)) == token


@pytest.mark.parametrize("data", [
    "delete_1_2_3",
    "delete_1_2_3_4_5",
    "delete_1_2_x_4",
    "delete_",
    "remove_1_2_3_4",
    "",
])
def test_decode_rejects_malformed_data(data) -> None:
    with pytest.raises(MalformedToken) as exc_info:
        decode_token(data)

    assert exc_info.value.code == "MALFORMED_TOKEN"


def test_control_markup_carries_encoded_token(transport) -> None:
    correlator = DeletionCorrelator(transport)

    markup = correlator.control_markup(DeleteToken(100, 5, 200, 6))

    buttons = [button for row in markup.inline_keyboard for button in row]
    assert [button.callback_data for button in buttons] == ["delete_100_5_200_6"]


def test_control_markup_is_none_when_data_exceeds_callback_limit(transport) -> None:
    correlator = DeletionCorrelator(transport)
    huge = 10 ** 19

    assert correlator.control_markup(DeleteToken(-huge, huge, -huge, huge)) is None


async def test_delete_pair_deletes_both_messages(transport) -> None:
    correlator = DeletionCorrelator(transport)

    result = await correlator.delete_pair(DeleteToken(100, 5, 200, 6))

    assert result == DeleteResult(True, True)
    assert sorted(transport.deleted) == [(100, 5), (200, 6)]


async def test_delete_pair_reports_partial_failure(transport) -> None:
    transport.undeletable.add((200, 6))
    correlator = DeletionCorrelator(transport)

    with pytest.raises(PartialDeleteFailure) as exc_info:
        await correlator.delete_pair(DeleteToken(100, 5, 200, 6))

    assert exc_info.value.result == DeleteResult(sender_deleted=True, partner_deleted=False)
    assert transport.deleted == [(100, 5)]


async def test_delete_pair_reports_total_failure(transport) -> None:
    transport.undeletable.update({(100, 5), (200, 6)})
    correlator = DeletionCorrelator(transport)

    with pytest.raises(DeleteFailed) as exc_info:
        await correlator.delete_pair(DeleteToken(100, 5, 200, 6))

    assert exc_info.value.code == "DELETE_FAILED"
