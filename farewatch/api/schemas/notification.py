"""
Pydantic schemas for notification endpoints.
"""

from typing import Literal

from pydantic import BaseModel, field_validator


class NotificationTestRequest(BaseModel):
    """Which channel to send a test message on."""

    channel: Literal["email", "telegram", "all"] = "all"

    @field_validator("channel", mode="before")
    @classmethod
    def lowercase(cls, v):
        return v.lower() if isinstance(v, str) else v
