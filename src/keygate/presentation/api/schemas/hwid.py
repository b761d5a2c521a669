"""Hardware-ID binding schemas."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from keygate_licensing import HwidBinding


class BindRequest(BaseModel):
    subscription_id: str = Field(..., min_length=1, max_length=64)
    fingerprint: str = Field(..., max_length=1024)


class VerifyRequest(BaseModel):
    subscription_id: str = Field(..., min_length=1, max_length=64)
    fingerprint: str = Field(..., max_length=1024)


class VerifyResponse(BaseModel):
    valid: bool


class HardwareSignalsRequest(BaseModel):
    """Client-side hardware signals a fingerprint is derived from."""

    screen_width: int = Field(..., ge=0)
    screen_height: int = Field(..., ge=0)
    color_depth: int = Field(..., ge=0)
    timezone: str = Field(..., max_length=64)
    locale: str = Field(..., max_length=64)
    platform: str = Field(..., max_length=128)
    user_agent: str = Field(default="", max_length=512)
    canvas: str = Field(default="", max_length=512)
    webgl: str = Field(default="", max_length=512)
    audio: str = Field(default="", max_length=512)


class FingerprintResponse(BaseModel):
    fingerprint: str
    suspicious: bool
    reason: str | None = None


class HwidBindingResponse(BaseModel):
    """A binding as seen by clients. The fingerprint itself is not echoed."""

    subscription_id: str
    locked: bool
    user_id: UUID | None = None
    bound_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_binding(cls, binding: HwidBinding) -> HwidBindingResponse:
        return cls(
            subscription_id=binding.subscription_id,
            locked=binding.locked,
            user_id=binding.user_id,
            bound_at=binding.bound_at,
            updated_at=binding.updated_at,
        )
