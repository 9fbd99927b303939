"""Outgoing Send API and thread settings models."""

from enum import Enum

from pydantic import BaseModel, Field

from messenger.models.events import UserId


class MessagingType(str, Enum):
    """Purpose of a message sent through the Send API."""

    RESPONSE = "RESPONSE"
    UPDATE = "UPDATE"
    MESSAGE_TAG = "MESSAGE_TAG"


class AttachmentType(str, Enum):
    """Media kinds accepted as attachments."""

    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    FILE = "file"


class ThreadState(str, Enum):
    """Thread a call-to-actions setting applies to."""

    NEW_THREAD = "new_thread"
    EXISTING_THREAD = "existing_thread"


class Recipient(BaseModel):
    """Target of an outgoing message.

    ``user_ref`` addresses a checkbox plugin opt-in that has no page-scoped id yet.
    """

    id: UserId | None = None
    user_ref: str | None = None


class QuickReply(BaseModel):
    """Quick reply offered beneath a text message."""

    content_type: str = "text"
    title: str | None = None
    payload: str | None = None
    image_url: str | None = None


class StructuredMessageButton(BaseModel):
    """Button attached to a generic template element."""

    type: str
    title: str | None = None
    url: str | None = None
    payload: str | None = None


class StructuredMessageElement(BaseModel):
    """One card of a generic template."""

    title: str
    subtitle: str | None = None
    image_url: str | None = None
    item_url: str | None = None
    buttons: list[StructuredMessageButton] = Field(default_factory=list)


class CallToActionsItem(BaseModel):
    """Get Started payload or persistent menu entry."""

    type: str | None = None
    title: str | None = None
    url: str | None = None
    payload: str | None = None


class GreetingInfo(BaseModel):
    """Greeting text shown before a conversation starts."""

    text: str


class GreetingSetting(BaseModel):
    """Thread setting document for the greeting text."""

    setting_type: str = "greeting"
    greeting: GreetingInfo


class CallToActionsSetting(BaseModel):
    """Thread setting document for Get Started / persistent menu."""

    setting_type: str = "call_to_actions"
    thread_state: ThreadState
    call_to_actions: list[CallToActionsItem] = Field(default_factory=list)
