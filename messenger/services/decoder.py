"""Webhook payload decoding."""

from pydantic import ValidationError

from messenger.constants import PAGE_OBJECT
from messenger.models.events import Envelope


class DecodeError(Exception):
    """Base exception for webhook payloads that cannot be dispatched."""

    pass


class PayloadDecodeError(DecodeError):
    """Raised when the body is not valid JSON or does not match the schema."""

    pass


class ObjectMismatchError(DecodeError):
    """Raised when the envelope is not from a page subscription."""

    def __init__(self, received: str):
        super().__init__(
            f"Object is not {PAGE_OBJECT}, undefined behaviour. Got: {received}"
        )
        self.received = received


def decode_envelope(body: bytes) -> Envelope:
    """Parse a raw webhook body into an ``Envelope``.

    Args:
        body: Raw request body

    Returns:
        The decoded envelope, guaranteed to carry ``object == "page"``

    Raises:
        PayloadDecodeError: Body is malformed
        ObjectMismatchError: ``object`` is not ``"page"``
    """
    try:
        envelope = Envelope.model_validate_json(body)
    except ValidationError as e:
        raise PayloadDecodeError(f"could not decode payload: {e}") from e

    if envelope.object != PAGE_OBJECT:
        raise ObjectMismatchError(envelope.object)

    return envelope
