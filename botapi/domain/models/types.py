"""Typed API objects.

A hand-maintained subset of the remote API's object model, covering what the
update payloads and the bundled method bindings need. Optional fields
default to None, which means "absent on the wire".
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .base import ApiObject


@dataclass(frozen=True)
class User(ApiObject):
    id: int
    is_bot: bool
    first_name: str
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: Optional[str] = None
    is_premium: Optional[bool] = None
    can_join_groups: Optional[bool] = None
    can_read_all_group_messages: Optional[bool] = None
    supports_inline_queries: Optional[bool] = None


@dataclass(frozen=True)
class Chat(ApiObject):
    id: int
    type: str  # 'private', 'group', 'supergroup' or 'channel'
    title: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_forum: Optional[bool] = None


@dataclass(frozen=True)
class MessageEntity(ApiObject):
    type: str
    offset: int
    length: int
    url: Optional[str] = None
    user: Optional[User] = None
    language: Optional[str] = None
    custom_emoji_id: Optional[str] = None


@dataclass(frozen=True)
class PhotoSize(ApiObject):
    file_id: str
    file_unique_id: str
    width: int
    height: int
    file_size: Optional[int] = None


@dataclass(frozen=True)
class File(ApiObject):
    file_id: str
    file_unique_id: str
    file_size: Optional[int] = None
    file_path: Optional[str] = None


@dataclass(frozen=True)
class Location(ApiObject):
    longitude: float
    latitude: float
    horizontal_accuracy: Optional[float] = None
    live_period: Optional[int] = None
    heading: Optional[int] = None
    proximity_alert_radius: Optional[int] = None


@dataclass(frozen=True)
class Message(ApiObject):
    message_id: int
    date: int
    chat: Chat
    message_thread_id: Optional[int] = None
    from_: Optional[User] = None
    sender_chat: Optional[Chat] = None
    edit_date: Optional[int] = None
    text: Optional[str] = None
    entities: Optional[Tuple[MessageEntity, ...]] = None
    caption: Optional[str] = None
    caption_entities: Optional[Tuple[MessageEntity, ...]] = None
    photo: Optional[Tuple[PhotoSize, ...]] = None
    location: Optional[Location] = None
    # Self-referential fields
    reply_to_message: Optional["Message"] = None
    pinned_message: Optional["Message"] = None
    new_chat_members: Optional[Tuple[User, ...]] = None
    left_chat_member: Optional[User] = None

    @property
    def content(self) -> Optional[str]:
        """Text of the message, falling back to the media caption."""
        return self.text if self.text is not None else self.caption


@dataclass(frozen=True)
class CallbackQuery(ApiObject):
    id: str
    from_: User
    chat_instance: str
    message: Optional[Message] = None
    inline_message_id: Optional[str] = None
    data: Optional[str] = None
    game_short_name: Optional[str] = None


@dataclass(frozen=True)
class InlineQuery(ApiObject):
    id: str
    from_: User
    query: str
    offset: str
    chat_type: Optional[str] = None
    location: Optional[Location] = None


@dataclass(frozen=True)
class ChosenInlineResult(ApiObject):
    result_id: str
    from_: User
    query: str
    location: Optional[Location] = None
    inline_message_id: Optional[str] = None


@dataclass(frozen=True)
class ShippingAddress(ApiObject):
    country_code: str
    state: str
    city: str
    street_line1: str
    street_line2: str
    post_code: str


@dataclass(frozen=True)
class ShippingQuery(ApiObject):
    id: str
    from_: User
    invoice_payload: str
    shipping_address: ShippingAddress


@dataclass(frozen=True)
class PreCheckoutQuery(ApiObject):
    id: str
    from_: User
    currency: str
    total_amount: int
    invoice_payload: str
    shipping_option_id: Optional[str] = None


@dataclass(frozen=True)
class PollOption(ApiObject):
    text: str
    voter_count: int


@dataclass(frozen=True)
class Poll(ApiObject):
    id: str
    question: str
    options: Tuple[PollOption, ...]
    total_voter_count: int
    is_closed: bool
    is_anonymous: bool
    type: str
    allows_multiple_answers: bool
    correct_option_id: Optional[int] = None


@dataclass(frozen=True)
class PollAnswer(ApiObject):
    poll_id: str
    option_ids: Tuple[int, ...]
    user: Optional[User] = None
    voter_chat: Optional[Chat] = None


@dataclass(frozen=True)
class ChatMember(ApiObject):
    """Membership record; ``status`` selects which optional fields apply."""
    status: str
    user: User
    is_anonymous: Optional[bool] = None
    custom_title: Optional[str] = None
    until_date: Optional[int] = None


@dataclass(frozen=True)
class ChatInviteLink(ApiObject):
    invite_link: str
    creator: User
    creates_join_request: bool
    is_primary: bool
    is_revoked: bool
    name: Optional[str] = None


@dataclass(frozen=True)
class ChatMemberUpdated(ApiObject):
    chat: Chat
    from_: User
    date: int
    old_chat_member: ChatMember
    new_chat_member: ChatMember
    invite_link: Optional[ChatInviteLink] = None


@dataclass(frozen=True)
class ChatJoinRequest(ApiObject):
    chat: Chat
    from_: User
    user_chat_id: int
    date: int
    bio: Optional[str] = None
    invite_link: Optional[ChatInviteLink] = None


@dataclass(frozen=True)
class UserProfilePhotos(ApiObject):
    total_count: int
    photos: Tuple[Tuple[PhotoSize, ...], ...]


@dataclass(frozen=True)
class WebhookInfo(ApiObject):
    url: str
    has_custom_certificate: bool
    pending_update_count: int
    ip_address: Optional[str] = None
    last_error_date: Optional[int] = None
    last_error_message: Optional[str] = None
    max_connections: Optional[int] = None
    allowed_updates: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class InlineKeyboardButton(ApiObject):
    text: str
    url: Optional[str] = None
    callback_data: Optional[str] = None


@dataclass(frozen=True)
class InlineKeyboardMarkup(ApiObject):
    inline_keyboard: Tuple[Tuple[InlineKeyboardButton, ...], ...]


@dataclass(frozen=True)
class ResponseEnvelope(ApiObject):
    """Top-level JSON envelope wrapping every remote response."""
    ok: bool
    result: Optional[Any] = None
    error_code: Optional[int] = None
    description: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None
