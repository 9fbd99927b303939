"""Pydantic models for Graph API user lookups."""

from typing import Optional

from pydantic import BaseModel

from messenger.models.events import UserId


class Profile(BaseModel):
    """User info from Facebook Graph API (public profile fields only)."""

    id: UserId
    name: Optional[str] = None
    profile_pic: Optional[str] = None


class GraphError(BaseModel):
    """Error object embedded in a failed Graph API response."""

    message: str = "unknown error"
    type: Optional[str] = None
    code: Optional[int] = None
    fbtrace_id: Optional[str] = None
