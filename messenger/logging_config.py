"""Logfire setup and log redaction for tokens, secrets and signatures."""

import logging
from typing import Any

import logfire
from fastapi import FastAPI

from messenger.config import Settings, get_settings

SERVICE_NAME = "fb-messenger-webhook"

# Compared case-insensitively; header names arrive lower-cased from Starlette
SENSITIVE_KEYS = frozenset(
    {
        "token",
        "access_token",
        "verify_token",
        "hub.verify_token",
        "app_secret",
        "appsecret_proof",
        "secret",
        "authorization",
        "x-hub-signature",
    }
)

LOCAL_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logfire(app: FastAPI, settings: Settings | None = None) -> None:
    """
    Configure Logfire for the webhook application.

    Traces webhook requests through FastAPI, outbound Graph API calls
    through httpx and payload validation through pydantic. Without a
    Logfire token nothing leaves the process.
    """
    settings = settings or get_settings()

    logfire_config: dict[str, Any] = {
        "service_name": SERVICE_NAME,
        "environment": settings.env,
        "send_to_logfire": "if-token-present",
    }
    if settings.logfire_token:
        logfire_config["token"] = settings.logfire_token

    logfire.configure(**logfire_config)
    logfire.instrument_fastapi(app)
    logfire.instrument_pydantic()
    logfire.instrument_httpx()

    # Standard logging (webhook router) only needs a console format locally
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=LOCAL_LOG_FORMAT if settings.env == "local" else "%(message)s",
    )


def mask_pii(value: str | None, mask_char: str = "*") -> str:
    """Mask a secret, keeping two characters at each end when long enough."""
    if not value:
        return ""
    if len(value) <= 4:
        return mask_char * len(value)
    return value[:2] + mask_char * (len(value) - 4) + value[-2:]


def redact_tokens(data: dict[str, Any]) -> dict[str, Any]:
    """
    Copy ``data`` with access tokens, secrets and signatures masked.

    Nested dictionaries are redacted as well. Non-string values under a
    sensitive key are left untouched.

    Args:
        data: Query parameters, headers or any other log payload

    Returns:
        Redacted copy; ``data`` itself is not modified
    """
    redacted: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            redacted[key] = redact_tokens(value)
        elif isinstance(value, str) and str(key).lower() in SENSITIVE_KEYS:
            redacted[key] = mask_pii(value)
        else:
            redacted[key] = value
    return redacted
