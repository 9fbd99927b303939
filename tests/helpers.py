"""Constants and builders shared by fixtures and tests."""

from messenger.config import Settings

APP_SECRET = "test-app-secret"
VERIFY_TOKEN = "abc"
PAGE_TOKEN = "test-page-token"


def make_settings(**overrides) -> Settings:
    """Settings isolated from the developer's .env files."""
    values = {
        "facebook_page_access_token": PAGE_TOKEN,
        "facebook_verify_token": VERIFY_TOKEN,
        "facebook_app_secret": None,
        "facebook_verify_signature": False,
        "webhook_path": "/",
        "env": "local",
        "logfire_token": None,
        "sentry_dsn": None,
        "dispatch_deadline_seconds": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)
