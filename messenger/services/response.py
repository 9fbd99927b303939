"""Per-event reply handle passed to webhook handlers."""

from typing import Any, Sequence

from messenger.models.events import UserId
from messenger.models.send_models import (
    AttachmentType,
    MessagingType,
    QuickReply,
    Recipient,
    StructuredMessageElement,
)
from messenger.services.graph_api import GraphAPIClient


class Response:
    """Sends messages back to one recipient through the Send API.

    A fresh Response is built for every dispatched event, bound to that
    event's sender.

    Example:
        >>> @bot.handle_message
        ... async def echo(ctx, message, response):
        ...     await response.text(message.text)
    """

    def __init__(self, to: Recipient | UserId, graph: GraphAPIClient):
        self.to = to if isinstance(to, Recipient) else Recipient(id=to)
        self._graph = graph

    async def text(
        self,
        message: str,
        messaging_type: MessagingType = MessagingType.RESPONSE,
        tags: Sequence[str] = (),
    ) -> dict[str, Any]:
        """Send a plain text message."""
        return await self.text_with_replies(message, None, messaging_type, tags)

    async def text_with_replies(
        self,
        message: str,
        replies: Sequence[QuickReply] | None,
        messaging_type: MessagingType = MessagingType.RESPONSE,
        tags: Sequence[str] = (),
    ) -> dict[str, Any]:
        """Send a text message offering the given quick replies."""
        body: dict[str, Any] = {"text": message}
        if replies:
            body["quick_replies"] = [
                reply.model_dump(exclude_none=True) for reply in replies
            ]
        return await self._send(body, messaging_type, tags)

    async def attachment(
        self,
        data_type: AttachmentType | str,
        url: str,
        messaging_type: MessagingType = MessagingType.RESPONSE,
        tags: Sequence[str] = (),
    ) -> dict[str, Any]:
        """Send an image, sound, video or file hosted at ``url``."""
        body = {
            "attachment": {
                "type": AttachmentType(data_type).value,
                "payload": {"url": url},
            }
        }
        return await self._send(body, messaging_type, tags)

    async def generic_template(
        self,
        elements: Sequence[StructuredMessageElement],
        messaging_type: MessagingType = MessagingType.RESPONSE,
        tags: Sequence[str] = (),
    ) -> dict[str, Any]:
        """Send a horizontally scrollable carousel of cards."""
        body = {
            "attachment": {
                "type": "template",
                "payload": {
                    "template_type": "generic",
                    "elements": [
                        element.model_dump(exclude_none=True) for element in elements
                    ],
                },
            }
        }
        return await self._send(body, messaging_type, tags)

    async def _send(
        self,
        message: dict[str, Any],
        messaging_type: MessagingType,
        tags: Sequence[str],
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "messaging_type": MessagingType(messaging_type).value,
            "recipient": self.to.model_dump(exclude_none=True),
            "message": message,
        }
        # Only one tag is accepted per message
        if tags:
            payload["tag"] = tags[0]
        return await self._graph.send_message(payload)
