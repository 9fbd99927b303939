"""Facebook webhook endpoints.

GET answers the one-time subscription handshake. POST runs the delivery
pipeline:

1. Signature verification (when enabled) - rejects forged deliveries (403)
2. Payload decoding - rejects malformed or non-page payloads (422)
3. Dispatch - every event goes to the handlers registered for its category

The body is buffered once; Starlette serves the same bytes to every later
``request.body()`` call, so decoding sees exactly what was verified.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from messenger.constants import (
    ACKNOWLEDGEMENT_BODY,
    CHALLENGE_PARAM,
    SIGNATURE_HEADER,
    VERIFY_TOKEN_PARAM,
)
from messenger.services.decoder import DecodeError, decode_envelope
from messenger.services.dispatcher import DispatchContext
from messenger.services.integrity import IntegrityError

if TYPE_CHECKING:
    from messenger.client import Messenger

logger = logging.getLogger(__name__)


def create_webhook_router(messenger: Messenger, path: str) -> APIRouter:
    """Build the router serving the webhook of ``messenger`` at ``path``."""
    router = APIRouter()

    @router.get(path)
    async def verify_webhook(request: Request):
        """Facebook webhook verification endpoint."""
        token = request.query_params.get(VERIFY_TOKEN_PARAM)
        challenge = request.query_params.get(CHALLENGE_PARAM, "")

        if messenger.verify_token_matches(token):
            logger.info("Webhook verified successfully")
            return PlainTextResponse(challenge)

        logger.warning("Webhook verification failed")
        return PlainTextResponse("Incorrect verify token", status_code=403)

    @router.post(path)
    async def handle_webhook(request: Request):
        """Handle incoming Facebook Messenger webhook deliveries."""
        body = await request.body()

        try:
            messenger.verify_request(body, request.headers.get(SIGNATURE_HEADER))
        except IntegrityError as e:
            logger.warning("Could not verify request: %s", e)
            return PlainTextResponse(str(e), status_code=403)

        try:
            envelope = decode_envelope(await request.body())
        except DecodeError as e:
            logger.warning("Could not decode webhook payload: %s", e)
            return PlainTextResponse(str(e), status_code=422)

        deadline_seconds = messenger.settings.dispatch_deadline_seconds
        ctx = DispatchContext(
            correlation_id=getattr(request.state, "correlation_id", None),
            deadline=(
                time.monotonic() + deadline_seconds
                if deadline_seconds is not None
                else None
            ),
            disconnected=request.is_disconnected,
        )
        await messenger.dispatch(ctx, envelope)

        return dict(ACKNOWLEDGEMENT_BODY)

    return router
