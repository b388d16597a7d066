"""Decoded update variants.

A raw update envelope carries an ``update_id`` and exactly one populated
payload key. ``UpdateExt`` is the closed set of decoded variants: every
envelope maps to exactly one subclass below, so consumers dispatch on the
variant type instead of probing optional fields::

    match update:
        case MessageUpdate(message=msg):
            ...
        case CallbackQueryUpdate(callback_query=query):
            ...
        case InvalidUpdate(raw=raw):
            ...
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, FrozenSet, Tuple, Type

from .base import ApiObject
from .common import UpdateKind
from .types import (
    CallbackQuery,
    ChatJoinRequest,
    ChatMemberUpdated,
    ChosenInlineResult,
    InlineQuery,
    Message,
    Poll,
    PollAnswer,
    PreCheckoutQuery,
    ShippingQuery,
)


@dataclass(frozen=True)
class UpdateExt:
    """Base of the closed update variant set."""
    update_id: int

    kind: ClassVar[str] = ""
    payload_type: ClassVar[Type[ApiObject]] = ApiObject

    @property
    def payload(self) -> Any:
        return getattr(self, self.kind, None)


@dataclass(frozen=True)
class MessageUpdate(UpdateExt):
    message: Message
    kind: ClassVar[str] = "message"
    payload_type: ClassVar[Type[ApiObject]] = Message


@dataclass(frozen=True)
class EditedMessageUpdate(UpdateExt):
    edited_message: Message
    kind: ClassVar[str] = "edited_message"
    payload_type: ClassVar[Type[ApiObject]] = Message


@dataclass(frozen=True)
class ChannelPostUpdate(UpdateExt):
    channel_post: Message
    kind: ClassVar[str] = "channel_post"
    payload_type: ClassVar[Type[ApiObject]] = Message


@dataclass(frozen=True)
class EditedChannelPostUpdate(UpdateExt):
    edited_channel_post: Message
    kind: ClassVar[str] = "edited_channel_post"
    payload_type: ClassVar[Type[ApiObject]] = Message


@dataclass(frozen=True)
class InlineQueryUpdate(UpdateExt):
    inline_query: InlineQuery
    kind: ClassVar[str] = "inline_query"
    payload_type: ClassVar[Type[ApiObject]] = InlineQuery


@dataclass(frozen=True)
class ChosenInlineResultUpdate(UpdateExt):
    chosen_inline_result: ChosenInlineResult
    kind: ClassVar[str] = "chosen_inline_result"
    payload_type: ClassVar[Type[ApiObject]] = ChosenInlineResult


@dataclass(frozen=True)
class CallbackQueryUpdate(UpdateExt):
    callback_query: CallbackQuery
    kind: ClassVar[str] = "callback_query"
    payload_type: ClassVar[Type[ApiObject]] = CallbackQuery


@dataclass(frozen=True)
class ShippingQueryUpdate(UpdateExt):
    shipping_query: ShippingQuery
    kind: ClassVar[str] = "shipping_query"
    payload_type: ClassVar[Type[ApiObject]] = ShippingQuery


@dataclass(frozen=True)
class PreCheckoutQueryUpdate(UpdateExt):
    pre_checkout_query: PreCheckoutQuery
    kind: ClassVar[str] = "pre_checkout_query"
    payload_type: ClassVar[Type[ApiObject]] = PreCheckoutQuery


@dataclass(frozen=True)
class PollUpdate(UpdateExt):
    poll: Poll
    kind: ClassVar[str] = "poll"
    payload_type: ClassVar[Type[ApiObject]] = Poll


@dataclass(frozen=True)
class PollAnswerUpdate(UpdateExt):
    poll_answer: PollAnswer
    kind: ClassVar[str] = "poll_answer"
    payload_type: ClassVar[Type[ApiObject]] = PollAnswer


@dataclass(frozen=True)
class MyChatMemberUpdate(UpdateExt):
    my_chat_member: ChatMemberUpdated
    kind: ClassVar[str] = "my_chat_member"
    payload_type: ClassVar[Type[ApiObject]] = ChatMemberUpdated


@dataclass(frozen=True)
class ChatMemberUpdate(UpdateExt):
    chat_member: ChatMemberUpdated
    kind: ClassVar[str] = "chat_member"
    payload_type: ClassVar[Type[ApiObject]] = ChatMemberUpdated


@dataclass(frozen=True)
class ChatJoinRequestUpdate(UpdateExt):
    chat_join_request: ChatJoinRequest
    kind: ClassVar[str] = "chat_join_request"
    payload_type: ClassVar[Type[ApiObject]] = ChatJoinRequest


@dataclass(frozen=True)
class InvalidUpdate(UpdateExt):
    """An envelope with no recognised payload, or a payload that failed to decode.

    ``reason`` says which; ``raw`` is the envelope as received.
    """
    raw: Dict[str, Any] = field(default_factory=dict)
    reason: str = ""
    kind: ClassVar[str] = "invalid"

    @property
    def payload(self) -> Any:
        return self.raw


UPDATE_VARIANTS: Tuple[Type[UpdateExt], ...] = (
    MessageUpdate,
    EditedMessageUpdate,
    ChannelPostUpdate,
    EditedChannelPostUpdate,
    InlineQueryUpdate,
    ChosenInlineResultUpdate,
    CallbackQueryUpdate,
    ShippingQueryUpdate,
    PreCheckoutQueryUpdate,
    PollUpdate,
    PollAnswerUpdate,
    MyChatMemberUpdate,
    ChatMemberUpdate,
    ChatJoinRequestUpdate,
)

VARIANTS_BY_KIND: Dict[str, Type[UpdateExt]] = {variant.kind: variant for variant in UPDATE_VARIANTS}

ALL_UPDATE_KINDS: FrozenSet[UpdateKind] = frozenset(UpdateKind(kind) for kind in VARIANTS_BY_KIND)

# Subscribed when the caller does not name kinds explicitly
DEFAULT_UPDATE_KINDS: Tuple[UpdateKind, ...] = tuple(
    UpdateKind(kind)
    for kind in (
        "message",
        "edited_message",
        "channel_post",
        "edited_channel_post",
        "callback_query",
        "inline_query",
        "my_chat_member",
    )
)
