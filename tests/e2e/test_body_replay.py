"""The body read for verification is the body handed to the decoder."""

import pytest
from starlette.requests import Request

from messenger.services.decoder import decode_envelope
from messenger.services.integrity import check_integrity, compute_signature

from tests.helpers import APP_SECRET


def _request(body: bytes, chunks: int = 3) -> Request:
    """Starlette request whose body arrives in several ASGI messages."""
    size = max(1, len(body) // chunks)
    parts = [body[i : i + size] for i in range(0, len(body), size)] or [b""]
    messages = [
        {"type": "http.request", "body": part, "more_body": i < len(parts) - 1}
        for i, part in enumerate(parts)
    ]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    signature = f"sha1={compute_signature(body, APP_SECRET)}"
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": [(b"x-hub-signature", signature.encode())],
        "query_string": b"",
    }
    return Request(scope, receive)


@pytest.mark.asyncio
async def test_body_replayed_after_verification(sign, text_payload):
    body, _ = sign(text_payload)
    request = _request(body)

    first = await request.body()
    check_integrity(first, request.headers["X-Hub-Signature"], APP_SECRET)
    second = await request.body()

    assert second == first == body
    assert decode_envelope(second).entries[0].messaging[0].message.text == "hi"


@pytest.mark.asyncio
async def test_empty_body_replayed():
    request = _request(b"")

    assert await request.body() == b""
    assert await request.body() == b""
