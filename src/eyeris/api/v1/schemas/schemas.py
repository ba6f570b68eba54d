from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from eyeris.domain.models import TokenUsage

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool
    message: str
    data: Optional[T] = None
    error: Optional[Dict[str, Any]] = None


class AnalysisData(BaseModel):
    analysis: str
    token_usage: TokenUsage
    provider: str
    model: str
    thumbnail_b64: Optional[str] = Field(None, description="Base64 JPEG thumbnail, only when requested.")


class HealthData(BaseModel):
    status: str
    token_usage: TokenUsage = Field(..., description="Cumulative usage since the process started.")
