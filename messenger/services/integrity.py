"""Webhook signature verification.

Facebook signs every webhook delivery with the app secret and sends the
result in the ``X-Hub-Signature`` header as ``sha1=<hex digest>``. The
check works on the buffered body bytes, so the caller can keep reading
the same body afterwards.
"""

import hashlib
import hmac

from messenger.constants import SIGNATURE_ENCODING, SIGNATURE_HEADER


class IntegrityError(Exception):
    """Base exception for webhook signature verification failures."""

    pass


class MissingAppSecretError(IntegrityError):
    """Raised when verification is enabled but no app secret is configured."""

    pass


class MissingSignatureError(IntegrityError):
    """Raised when the signature header is absent or empty."""

    pass


class MalformedSignatureError(IntegrityError):
    """Raised when the signature header has no ``=`` separator."""

    pass


class UnsupportedEncodingError(IntegrityError):
    """Raised when the signature uses an algorithm other than sha1."""

    pass


class SignatureMismatchError(IntegrityError):
    """Raised when the computed digest differs from the header's."""

    pass


def compute_signature(body: bytes, app_secret: str) -> str:
    """Return the lowercase hex HMAC-SHA1 of ``body`` keyed by ``app_secret``."""
    mac = hmac.new(app_secret.encode("utf-8"), msg=body, digestmod=hashlib.sha1)
    return mac.hexdigest()


def check_integrity(
    body: bytes,
    signature_header: str | None,
    app_secret: str | None,
) -> None:
    """Confirm that ``body`` was signed by a holder of ``app_secret``.

    Args:
        body: Raw, unmodified request body
        signature_header: Value of the ``X-Hub-Signature`` header
        app_secret: Facebook App secret

    Raises:
        MissingAppSecretError: No app secret configured
        MissingSignatureError: Header absent or empty
        MalformedSignatureError: Header lacks the ``=`` separator
        UnsupportedEncodingError: Encoding other than sha1
        SignatureMismatchError: Digest does not match
    """
    if not app_secret:
        raise MissingAppSecretError("missing app secret")

    if not signature_header:
        raise MissingSignatureError(f"missing {SIGNATURE_HEADER} header")

    encoding, sep, digest = signature_header.partition("=")
    if not sep:
        raise MalformedSignatureError(
            f"malformed {SIGNATURE_HEADER} header: {signature_header}"
        )

    if encoding.lower() != SIGNATURE_ENCODING:
        raise UnsupportedEncodingError(
            f"unknown {SIGNATURE_HEADER} header encoding, "
            f"expected {SIGNATURE_ENCODING}: {encoding}"
        )

    expected = compute_signature(body, app_secret).encode("ascii")
    if not hmac.compare_digest(expected, digest.lower().encode("utf-8")):
        raise SignatureMismatchError(f"invalid signature: {digest.lower()}")
