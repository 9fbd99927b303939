"""Application-wide constants.

This module centralizes the Messenger Platform endpoints, wire sentinels
and timeouts so the webhook pipeline and the outbound Graph API client
share a single source of truth.
"""

# =============================================================================
# Facebook Graph API
# =============================================================================

# Facebook Graph API version used by every outbound call
FACEBOOK_GRAPH_API_VERSION = "v2.6"

GRAPH_API_BASE_URL = f"https://graph.facebook.com/{FACEBOOK_GRAPH_API_VERSION}"

# Profile lookup: {GRAPH_API_BASE_URL}/<USER_ID>?fields=<PROFILE_FIELDS>&access_token=<TOKEN>
PROFILE_URL = f"{GRAPH_API_BASE_URL}/"

# Fields populated by a profile query
PROFILE_FIELDS = "id,name,profile_pic"

# Thread settings (greeting text, Get Started button, persistent menu)
SEND_SETTINGS_URL = f"{GRAPH_API_BASE_URL}/me/thread_settings"

# Send API
SEND_MESSAGE_URL = f"{GRAPH_API_BASE_URL}/me/messages"

# Timeout for Facebook Graph API calls (seconds)
FACEBOOK_API_TIMEOUT_SECONDS = 10.0

# =============================================================================
# Webhook Contract
# =============================================================================

# Value of the envelope "object" field for page subscriptions
PAGE_OBJECT = "page"

# Header carrying "<encoding>=<hex digest>" of the raw request body
SIGNATURE_HEADER = "X-Hub-Signature"

# The only supported signature encoding
SIGNATURE_ENCODING = "sha1"

# Query parameters of the webhook setup handshake
VERIFY_TOKEN_PARAM = "hub.verify_token"
CHALLENGE_PARAM = "hub.challenge"

# Body returned to the platform once a delivery has been dispatched
ACKNOWLEDGEMENT_BODY = {"status": "ok"}

# Raw event timestamps are expressed in microseconds
TIMESTAMP_UNITS_PER_SECOND = 1_000_000

# Default path the webhook router listens on
DEFAULT_WEBHOOK_PATH = "/"
