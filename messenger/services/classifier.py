"""Messaging event classification.

Each event is expected to populate exactly one optional payload field.
When a malformed delivery populates several, the first field in
``_PRECEDENCE`` wins.
"""

from datetime import datetime, timezone

import logfire

from messenger.constants import TIMESTAMP_UNITS_PER_SECOND
from messenger.models.events import ClassifiedEvent, EventCategory, MessagingEvent

_PRECEDENCE: tuple[tuple[str, EventCategory], ...] = (
    ("message", EventCategory.TEXT),
    ("delivery", EventCategory.DELIVERY),
    ("read", EventCategory.READ),
    ("postback", EventCategory.POSTBACK),
    ("optin", EventCategory.OPTIN),
    ("referral", EventCategory.REFERRAL),
    ("account_linking", EventCategory.ACCOUNT_LINKING),
)


def classify(event: MessagingEvent) -> EventCategory:
    """Return the category of ``event``, or ``UNKNOWN`` if nothing is populated."""
    for field, category in _PRECEDENCE:
        if getattr(event, field) is not None:
            return category
    return EventCategory.UNKNOWN


def event_time(timestamp: int) -> datetime | None:
    """Convert a raw event timestamp (microseconds) to whole-second UTC time.

    Returns None when the timestamp lies outside the range ``datetime`` can
    represent.
    """
    try:
        return datetime.fromtimestamp(
            timestamp // TIMESTAMP_UNITS_PER_SECOND, tz=timezone.utc
        )
    except (ValueError, OverflowError, OSError):
        logfire.warn("Event timestamp out of range", timestamp=timestamp)
        return None


def to_classified(event: MessagingEvent) -> ClassifiedEvent | None:
    """Lift the populated payload of ``event`` into a ``ClassifiedEvent``.

    The payload is copied and enriched with the event's sender, recipient
    and derived time. Returns None for unknown events.
    """
    category = classify(event)
    if category is EventCategory.UNKNOWN:
        return None

    field = next(name for name, cat in _PRECEDENCE if cat is category)
    payload = getattr(event, field).model_copy(
        update={
            "sender": event.sender,
            "recipient": event.recipient,
            "time": event_time(event.timestamp),
        }
    )
    return ClassifiedEvent(
        category=category,
        payload=payload,
        sender=event.sender,
        recipient=event.recipient,
    )
