"""Facebook Graph API client: profiles, thread settings and the Send API."""

import time
from typing import Any, Sequence

import httpx
import logfire
from pydantic import ValidationError

from messenger.constants import (
    FACEBOOK_API_TIMEOUT_SECONDS,
    FACEBOOK_GRAPH_API_VERSION,
    PROFILE_FIELDS,
    PROFILE_URL,
    SEND_MESSAGE_URL,
    SEND_SETTINGS_URL,
)
from messenger.logging_config import redact_tokens
from messenger.models.events import UserId
from messenger.models.send_models import (
    CallToActionsItem,
    CallToActionsSetting,
    GreetingInfo,
    GreetingSetting,
    ThreadState,
)
from messenger.models.user_models import GraphError, Profile


class GraphAPIError(Exception):
    """Raised when the Graph API reports an error or an unexpected response."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: int | None = None,
        error_type: str | None = None,
        fbtrace_id: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.error_type = error_type
        self.fbtrace_id = fbtrace_id


def check_facebook_error(response: httpx.Response) -> dict[str, Any]:
    """Return the decoded body of ``response`` or raise ``GraphAPIError``.

    The Graph API reports failures as ``{"error": {"message": ...}}``,
    usually together with a 4xx status.
    """
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict) and data.get("error"):
        raw = data["error"]
        if not isinstance(raw, dict):
            raw = {"message": str(raw)}
        error = GraphError.model_validate(raw)
        raise GraphAPIError(
            f"Facebook error : {error.message}",
            status_code=response.status_code,
            code=error.code,
            error_type=error.type,
            fbtrace_id=error.fbtrace_id,
        )

    if response.is_error:
        raise GraphAPIError(
            f"Facebook API returned HTTP {response.status_code}: {response.text[:500]}",
            status_code=response.status_code,
        )

    return data if isinstance(data, dict) else {}


class GraphAPIClient:
    """Thin wrapper over the Graph API endpoints used by the SDK.

    Example:
        >>> graph = GraphAPIClient(access_token="...")
        >>> profile = await graph.get_profile(1234)
        >>> profile.name
        'Jane Doe'

        # With a shared client (custom transport, test doubles):
        >>> graph = GraphAPIClient("...", client=httpx.AsyncClient(transport=...))
    """

    def __init__(
        self,
        access_token: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = FACEBOOK_API_TIMEOUT_SECONDS,
    ):
        """Initialize the client.

        Args:
            access_token: Facebook Page access token
            client: Optional shared ``httpx.AsyncClient``; a short-lived
                client is opened per call when omitted
            timeout: Timeout for calls made with the per-call client
        """
        self._token = access_token
        self._client = client
        self._timeout = timeout

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        params = {**(params or {}), "access_token": self._token}
        logfire.debug(
            "Graph API request",
            method=method,
            url=url,
            params=redact_tokens(params),
        )
        if self._client is not None:
            return await self._client.request(method, url, params=params, json=json)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(method, url, params=params, json=json)

    async def get_profile(self, user_id: UserId) -> Profile:
        """Retrieve the Facebook user associated with ``user_id``.

        Raises:
            GraphAPIError: Graph error response or unexpected body
            httpx.RequestError: Transport failure
        """
        start_time = time.time()
        logfire.info("Fetching user profile from Facebook", user_id=user_id)

        response = await self._request(
            "GET", f"{PROFILE_URL}{user_id}", params={"fields": PROFILE_FIELDS}
        )
        elapsed = time.time() - start_time

        try:
            data = check_facebook_error(response)
            profile = Profile.model_validate(data)
        except ValidationError as e:
            logfire.error(
                "Unexpected profile response",
                user_id=user_id,
                response_body=response.text[:500],
            )
            raise GraphAPIError(
                f"unexpected profile response: {e}", status_code=response.status_code
            ) from e
        except GraphAPIError as e:
            logfire.error(
                "Failed to fetch user profile",
                user_id=user_id,
                status_code=e.status_code,
                error=str(e),
                response_time_ms=elapsed * 1000,
            )
            raise

        logfire.info(
            "User profile fetched successfully",
            user_id=user_id,
            has_name=bool(profile.name),
            response_time_ms=elapsed * 1000,
        )
        return profile

    async def greeting_setting(self, text: str) -> dict[str, Any]:
        """Set the greeting text shown before a conversation starts."""
        setting = GreetingSetting(greeting=GreetingInfo(text=text))
        return await self._post_setting(setting.model_dump(mode="json"))

    async def call_to_actions_setting(
        self,
        state: ThreadState | str,
        actions: Sequence[CallToActionsItem],
    ) -> dict[str, Any]:
        """Configure the Get Started button or the persistent menu.

        Args:
            state: ``new_thread`` for Get Started, ``existing_thread`` for the menu
            actions: Call-to-action items; an empty list removes the setting
        """
        setting = CallToActionsSetting(
            thread_state=ThreadState(state),
            call_to_actions=list(actions),
        )
        return await self._post_setting(
            setting.model_dump(mode="json", exclude_none=True)
        )

    async def _post_setting(self, document: dict[str, Any]) -> dict[str, Any]:
        logfire.info(
            "Pushing thread setting",
            setting_type=document.get("setting_type"),
            api_version=FACEBOOK_GRAPH_API_VERSION,
        )
        response = await self._request("POST", SEND_SETTINGS_URL, json=document)
        try:
            return check_facebook_error(response)
        except GraphAPIError as e:
            logfire.error(
                "Thread setting rejected",
                setting_type=document.get("setting_type"),
                status_code=e.status_code,
                error=str(e),
            )
            raise

    async def send_message(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Post a Send API payload.

        Args:
            payload: Complete Send API document (recipient, message, ...)

        Returns:
            Decoded response, typically ``recipient_id`` and ``message_id``
        """
        start_time = time.time()
        recipient_id = payload.get("recipient", {}).get("id")

        logfire.info(
            "Sending Facebook message",
            recipient_id=recipient_id,
            messaging_type=payload.get("messaging_type"),
            api_version=FACEBOOK_GRAPH_API_VERSION,
        )

        try:
            response = await self._request("POST", SEND_MESSAGE_URL, json=payload)
        except httpx.RequestError as e:
            elapsed = time.time() - start_time
            logfire.error(
                "Facebook API request error",
                recipient_id=recipient_id,
                error=str(e),
                error_type=type(e).__name__,
                response_time_ms=elapsed * 1000,
            )
            raise

        elapsed = time.time() - start_time
        try:
            data = check_facebook_error(response)
        except GraphAPIError as e:
            logfire.error(
                "Facebook message send failed",
                recipient_id=recipient_id,
                status_code=e.status_code,
                error=str(e),
                response_time_ms=elapsed * 1000,
            )
            raise

        logfire.info(
            "Facebook message sent successfully",
            recipient_id=recipient_id,
            message_id=data.get("message_id"),
            response_time_ms=elapsed * 1000,
        )
        return data
