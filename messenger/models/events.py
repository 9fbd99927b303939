"""Incoming Facebook Messenger webhook models.

The raw wire shapes (``Envelope`` → ``Entry`` → ``MessagingEvent``) mirror
the JSON the platform posts. A ``MessagingEvent`` carries at most one of
its optional payload fields; once classified, the populated payload is
lifted into a ``ClassifiedEvent`` whose ``payload`` is exactly one of the
variant models below.

Fields the platform omits for some event sources (checkbox plugin opt-ins
have no ``sender``) default to None, so one sparse event never rejects
the rest of its batch. Only wrong JSON types fail validation.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from pydantic import BaseModel, Field


UserId = Union[int, str]


class User(BaseModel):
    """Sender or recipient of a messaging event (page-scoped id)."""

    id: UserId


class EventCategory(str, Enum):
    """Category a messaging event is dispatched under."""

    TEXT = "text"
    DELIVERY = "delivery"
    READ = "read"
    POSTBACK = "postback"
    OPTIN = "optin"
    REFERRAL = "referral"
    ACCOUNT_LINKING = "account_linking"
    UNKNOWN = "unknown"


# =============================================================================
# Payload variants
# =============================================================================


class EventPayload(BaseModel):
    """Fields every dispatched payload is enriched with."""

    sender: User | None = None
    recipient: User | None = None
    time: datetime | None = None


class QuickReplyPayload(BaseModel):
    """Payload of a tapped quick reply."""

    payload: str | None = None


class Coordinates(BaseModel):
    """Location shared by the user."""

    lat: float | None = None
    long: float | None = None


class AttachmentPayload(BaseModel):
    """Attachment contents (media URL or shared location)."""

    url: str | None = None
    coordinates: Coordinates | None = None


class Attachment(BaseModel):
    """Media or location attached to an incoming message."""

    type: str | None = None
    payload: AttachmentPayload | None = None


class Message(EventPayload):
    """Incoming message (text, quick reply or attachments)."""

    mid: str | None = None
    text: str | None = None
    seq: int | None = None
    is_echo: bool = False
    quick_reply: QuickReplyPayload | None = None
    attachments: list[Attachment] = Field(default_factory=list)


class Delivery(EventPayload):
    """Delivery confirmation for previously sent messages."""

    mids: list[str] = Field(default_factory=list)
    watermark: int = 0
    seq: int | None = None


class Read(EventPayload):
    """Read receipt: every message sent before ``watermark`` was read."""

    watermark: int = 0
    seq: int | None = None


class Referral(EventPayload):
    """m.me link, ad or plugin referral."""

    ref: str | None = None
    source: str | None = None
    type: str | None = None


class PostBack(EventPayload):
    """Postback button, Get Started button or persistent menu tap."""

    title: str | None = None
    payload: str | None = None
    referral: Referral | None = None


class OptIn(EventPayload):
    """Send-to-Messenger plugin or checkbox opt-in."""

    ref: str | None = None
    user_ref: str | None = None


class AccountLinking(EventPayload):
    """Account link or unlink performed by the user."""

    status: str | None = None
    authorization_code: str | None = None


Payload = Union[Message, Delivery, Read, PostBack, OptIn, Referral, AccountLinking]


# =============================================================================
# Wire envelope
# =============================================================================


class MessagingEvent(BaseModel):
    """One messaging event as delivered by the webhook."""

    sender: User | None = None
    recipient: User | None = None
    timestamp: int = 0

    message: Message | None = None
    delivery: Delivery | None = None
    read: Read | None = None
    postback: PostBack | None = None
    optin: OptIn | None = None
    referral: Referral | None = None
    account_linking: AccountLinking | None = None


class Entry(BaseModel):
    """One unit of batched webhook delivery."""

    id: UserId | None = None
    time: int | None = None
    messaging: list[MessagingEvent] = Field(default_factory=list)


class Envelope(BaseModel):
    """Top-level webhook payload."""

    object: str
    entry: list[Entry] = Field(default_factory=list)

    @property
    def entries(self) -> list[Entry]:
        return self.entry


@dataclass(frozen=True)
class ClassifiedEvent:
    """A messaging event reduced to its category and enriched payload."""

    category: EventCategory
    payload: Payload
    sender: User | None = None
    recipient: User | None = None
