"""Schemas shared by every router."""

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Body of every error answered by the exception handlers."""

    detail: str = Field(..., description="Human-readable message")
    code: str = Field(..., description="Stable machine-readable error code")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"detail": "Permission denied", "code": "PERMISSION_DENIED"},
        },
    )


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    api_versions: list[str] = Field(default_factory=list)
