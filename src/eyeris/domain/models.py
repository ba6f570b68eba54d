import base64
from typing import Optional

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field


class TokenUsage(BaseModel):
    """Backend-reported token counts for a single request."""
    prompt_tokens: int = Field(0, ge=0)
    completion_tokens: int = Field(0, ge=0)
    total_tokens: int = Field(0, ge=0)


class ProviderReply(BaseModel):
    """What a vision provider returns: the analysis text and optional usage."""
    text: str
    usage: Optional[TokenUsage] = None


class DecodedImage(BaseModel):
    """A decoded RGB pixel grid plus what we learned while sniffing it."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    image: Image.Image
    source_format: str = Field(..., description="Container format detected in the input, e.g. 'PNG'.")
    original_size: int = Field(..., description="Length of the input byte sequence.")

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


class TranscodedImage(BaseModel):
    """A size-bounded JPEG ready to be sent to a provider."""
    model_config = ConfigDict(frozen=True)

    data: bytes
    width: int
    height: int
    original_size: int

    @property
    def encoded_size(self) -> int:
        return len(self.data)

    @property
    def b64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")


class AnalysisResult(BaseModel):
    """The final product of one pipeline run."""
    analysis: str
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    provider: str
    model: str
    thumbnail: Optional[bytes] = Field(None, description="Enhanced JPEG thumbnail, absent when disabled or failed.")
