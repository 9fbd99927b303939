"""Messenger client: handler registration, webhook pipeline and Send API helpers."""

from typing import Any, Callable, Sequence

import httpx
import logfire
from fastapi import APIRouter

from messenger.api.webhook import create_webhook_router
from messenger.config import Settings, get_settings
from messenger.models.events import Envelope, EventCategory, UserId
from messenger.models.send_models import (
    AttachmentType,
    CallToActionsItem,
    MessagingType,
    QuickReply,
    Recipient,
    StructuredMessageElement,
    ThreadState,
)
from messenger.models.user_models import Profile
from messenger.services.dispatcher import DispatchContext, Dispatcher, DispatchSummary
from messenger.services.graph_api import GraphAPIClient
from messenger.services.integrity import check_integrity
from messenger.services.registry import Handler, HandlerRegistry
from messenger.services.response import Response


class Messenger:
    """Client managing communication with the Messenger Platform.

    Each instance owns its handler registry, so several pages can be served
    from one process.

    Example:
        >>> bot = Messenger(Settings(facebook_page_access_token="...",
        ...                          facebook_verify_token="secret"))
        >>> @bot.handle_message
        ... async def echo(ctx, message, response):
        ...     await response.text(f"You said: {message.text}")
        >>> app = create_app(bot)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            settings: Configuration; defaults to the environment settings
            client: Optional ``httpx.AsyncClient`` for outbound calls
                (custom transport, test doubles)
        """
        self.settings = settings or get_settings()
        self.registry = HandlerRegistry()
        self.graph = GraphAPIClient(
            self.settings.facebook_page_access_token,
            client=client,
            timeout=self.settings.facebook_api_timeout_seconds,
        )
        self.dispatcher = Dispatcher(self.registry, self.graph)

    # ==========================================================================
    # Handler registration
    # ==========================================================================

    def handle(self, category: EventCategory) -> Callable[[Handler], Handler]:
        """Decorator registering a handler for ``category``."""

        def decorator(handler: Handler) -> Handler:
            self.registry.register(category, handler)
            return handler

        return decorator

    def handle_message(self, handler: Handler) -> Handler:
        """Register a handler for incoming messages."""
        return self.handle(EventCategory.TEXT)(handler)

    def handle_delivery(self, handler: Handler) -> Handler:
        """Register a handler for delivery confirmations."""
        return self.handle(EventCategory.DELIVERY)(handler)

    def handle_read(self, handler: Handler) -> Handler:
        """Register a handler for read receipts."""
        return self.handle(EventCategory.READ)(handler)

    def handle_postback(self, handler: Handler) -> Handler:
        """Register a handler for postbacks."""
        return self.handle(EventCategory.POSTBACK)(handler)

    def handle_optin(self, handler: Handler) -> Handler:
        """Register a handler for plugin opt-ins."""
        return self.handle(EventCategory.OPTIN)(handler)

    def handle_referral(self, handler: Handler) -> Handler:
        """Register a handler for referrals."""
        return self.handle(EventCategory.REFERRAL)(handler)

    def handle_account_linking(self, handler: Handler) -> Handler:
        """Register a handler for account linking events."""
        return self.handle(EventCategory.ACCOUNT_LINKING)(handler)

    # ==========================================================================
    # Webhook pipeline
    # ==========================================================================

    def verify_token_matches(self, token: str | None) -> bool:
        """Whether ``token`` equals the configured webhook verify token."""
        return token is not None and token == self.settings.facebook_verify_token

    def verify_request(self, body: bytes, signature_header: str | None) -> None:
        """Check the delivery signature when verification is enabled.

        Raises:
            IntegrityError: Verification enabled and the check failed
        """
        if not self.settings.facebook_verify_signature:
            return
        check_integrity(body, signature_header, self.settings.facebook_app_secret)

    async def dispatch(
        self, ctx: DispatchContext, envelope: Envelope
    ) -> DispatchSummary:
        """Invoke the registered handlers for every event of ``envelope``."""
        return await self.dispatcher.dispatch(ctx, envelope)

    def router(self, path: str | None = None) -> APIRouter:
        """Router serving the webhook at ``path`` (default: settings.webhook_path)."""
        path = path or self.settings.webhook_path
        logfire.info("Webhook router created", path=path)
        return create_webhook_router(self, path)

    # ==========================================================================
    # Graph API
    # ==========================================================================

    async def profile_by_id(self, user_id: UserId) -> Profile:
        """Retrieve the Facebook user associated with ``user_id``."""
        return await self.graph.get_profile(user_id)

    async def greeting_setting(self, text: str) -> dict[str, Any]:
        """Set the greeting text."""
        return await self.graph.greeting_setting(text)

    async def call_to_actions_setting(
        self,
        state: ThreadState | str,
        actions: Sequence[CallToActionsItem],
    ) -> dict[str, Any]:
        """Configure the Get Started button or the persistent menu."""
        return await self.graph.call_to_actions_setting(state, actions)

    def response(self, to: Recipient | UserId) -> Response:
        """Reply handle for ``to``, usable outside of a webhook handler."""
        return Response(to, self.graph)

    async def send(
        self,
        to: Recipient | UserId,
        message: str,
        messaging_type: MessagingType = MessagingType.RESPONSE,
        tags: Sequence[str] = (),
    ) -> dict[str, Any]:
        """Send a text message to a user who has previously messaged the page."""
        return await self.send_with_replies(to, message, None, messaging_type, tags)

    async def send_with_replies(
        self,
        to: Recipient | UserId,
        message: str,
        replies: Sequence[QuickReply] | None,
        messaging_type: MessagingType = MessagingType.RESPONSE,
        tags: Sequence[str] = (),
    ) -> dict[str, Any]:
        """Send a text message with quick reply options."""
        return await self.response(to).text_with_replies(
            message, replies, messaging_type, tags
        )

    async def send_general_message(
        self,
        to: Recipient | UserId,
        elements: Sequence[StructuredMessageElement],
        messaging_type: MessagingType = MessagingType.RESPONSE,
        tags: Sequence[str] = (),
    ) -> dict[str, Any]:
        """Send a generic template."""
        return await self.response(to).generic_template(
            elements, messaging_type, tags
        )

    async def attachment(
        self,
        to: Recipient | UserId,
        data_type: AttachmentType | str,
        url: str,
        messaging_type: MessagingType = MessagingType.RESPONSE,
        tags: Sequence[str] = (),
    ) -> dict[str, Any]:
        """Send an image, sound, video or regular file."""
        return await self.response(to).attachment(data_type, url, messaging_type, tags)
