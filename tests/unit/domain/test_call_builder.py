import json

import pytest

from botapi.domain.models.call import ABSENT, CallBuilder, Encoding, encode_params, to_form_fields
from botapi.domain.models.types import InlineKeyboardButton, InlineKeyboardMarkup


def test_absent_is_distinct_from_none():
    assert ABSENT is not None
    assert not ABSENT
    assert repr(ABSENT) == "ABSENT"


def test_omit_absent_drops_absent_but_keeps_explicit_null():
    encoded = encode_params({"chat_id": 1, "parse_mode": ABSENT, "reply_markup": None})
    assert encoded == {"chat_id": 1, "reply_markup": None}


def test_emit_all_writes_absent_as_null():
    encoded = encode_params({"chat_id": 1, "parse_mode": ABSENT}, Encoding.EMIT_ALL)
    assert encoded == {"chat_id": 1, "parse_mode": None}


def test_typed_objects_follow_the_call_encoding():
    markup = InlineKeyboardMarkup(inline_keyboard=((InlineKeyboardButton(text="A"),),))
    omitted = encode_params({"reply_markup": markup})
    emitted = encode_params({"reply_markup": markup}, Encoding.EMIT_ALL)
    assert omitted["reply_markup"] == {"inline_keyboard": [[{"text": "A"}]]}
    assert emitted["reply_markup"]["inline_keyboard"][0][0]["callback_data"] is None


def test_builder_produces_frozen_call():
    call = CallBuilder("sendMessage").param("chat_id", 5).params(text="hi", parse_mode=ABSENT).build()
    assert call.method == "sendMessage"
    assert call.chat_id == 5
    assert call.encoded_params() == {"chat_id": 5, "text": "hi"}
    with pytest.raises(TypeError):
        call.params["text"] = "changed"


def test_builder_builds_at_most_once():
    builder = CallBuilder("getMe")
    builder.build()
    with pytest.raises(RuntimeError, match="already built"):
        builder.build()


def test_builder_encoding_is_per_call():
    call = CallBuilder("getUpdates").param("offset").encoding(Encoding.EMIT_ALL).build()
    assert call.encoded_params() == {"offset": None}


def test_attachment_is_carried_and_form_fields_are_strings():
    call = (
        CallBuilder("setChatPhoto")
        .params(chat_id=9, flags=[1, 2])
        .attach("photo", b"\x89PNG", filename="p.png", content_type="image/png")
        .build()
    )
    assert call.attachment.field_name == "photo"
    assert call.attachment.data == b"\x89PNG"
    fields = to_form_fields(call.encoded_params())
    assert fields == {"chat_id": "9", "flags": "[1, 2]"}
    assert "size=4" in repr(call.attachment)


def test_form_fields_keep_strings_verbatim():
    assert to_form_fields({"text": "plain", "n": None}) == {"text": "plain", "n": json.dumps(None)}
