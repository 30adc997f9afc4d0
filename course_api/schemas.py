from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    success: bool = Field(default=False, examples=[False])
    message: str = Field(examples=["Something went wrong!"])

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "message": "Something went wrong!",
            }
        }
    )


class DevIdentityResponse(BaseModel):
    created_by: str = Field(examples=["MD SAMIR ANSARI"])


class HealthResponse(BaseModel):
    status: str = Field(examples=["ok"])


class ReadinessCheck(BaseModel):
    ok: bool
    detail: Optional[str] = None


class ReadinessResponse(BaseModel):
    status: str = Field(examples=["ok", "starting", "degraded"])
    checks: dict[str, ReadinessCheck]
