import pytest

from botapi.domain.exceptions import DecodeError
from botapi.domain.models.types import (
    CallbackQuery,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    Message,
    ResponseEnvelope,
    User,
    UserProfilePhotos,
)


def test_user_decodes_known_fields_and_ignores_unknown():
    user = User.from_dict({"id": 1, "is_bot": False, "first_name": "Ada", "added_later": "x"})
    assert user.id == 1
    assert user.first_name == "Ada"
    assert user.username is None


def test_missing_required_field_raises_decode_error():
    with pytest.raises(DecodeError, match="missing required field 'first_name'"):
        User.from_dict({"id": 1, "is_bot": False})


def test_wrong_scalar_type_raises_decode_error():
    with pytest.raises(DecodeError, match="expected integer"):
        User.from_dict({"id": "1", "is_bot": False, "first_name": "Ada"})


def test_bool_is_not_accepted_as_integer():
    with pytest.raises(DecodeError):
        User.from_dict({"id": True, "is_bot": False, "first_name": "Ada"})


def test_reserved_word_field_maps_to_wire_key():
    query = CallbackQuery.from_dict({
        "id": "q1",
        "from": {"id": 5, "is_bot": False, "first_name": "Bo"},
        "chat_instance": "ci",
        "data": "yes",
    })
    assert query.from_.id == 5
    assert query.to_dict()["from"]["first_name"] == "Bo"


def test_recursive_message_reply_decodes():
    raw = {
        "message_id": 2,
        "date": 10,
        "chat": {"id": 1, "type": "private"},
        "text": "reply",
        "reply_to_message": {
            "message_id": 1,
            "date": 9,
            "chat": {"id": 1, "type": "private"},
            "text": "original",
        },
    }
    message = Message.from_dict(raw)
    assert isinstance(message.reply_to_message, Message)
    assert message.reply_to_message.text == "original"
    assert message.reply_to_message.reply_to_message is None


def test_message_content_falls_back_to_caption():
    message = Message.from_dict({
        "message_id": 3, "date": 1, "chat": {"id": 1, "type": "private"}, "caption": "a photo",
    })
    assert message.content == "a photo"


def test_nested_arrays_decode_to_tuples():
    photos = UserProfilePhotos.from_dict({
        "total_count": 1,
        "photos": [[{"file_id": "f", "file_unique_id": "u", "width": 10, "height": 20}]],
    })
    assert photos.photos[0][0].width == 10
    assert isinstance(photos.photos, tuple)


def test_to_dict_omits_unset_fields_by_default():
    markup = InlineKeyboardMarkup(inline_keyboard=((InlineKeyboardButton(text="Go", callback_data="go"),),))
    assert markup.to_dict() == {"inline_keyboard": [[{"text": "Go", "callback_data": "go"}]]}
    emitted = markup.to_dict(omit_none=False)
    assert emitted["inline_keyboard"][0][0]["url"] is None


def test_response_envelope_failure_fields():
    envelope = ResponseEnvelope.from_dict({
        "ok": False, "error_code": 429, "description": "Too Many Requests", "parameters": {"retry_after": 3},
    })
    assert envelope.ok is False
    assert envelope.parameters == {"retry_after": 3}
