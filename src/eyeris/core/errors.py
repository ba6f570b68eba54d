from enum import Enum
from typing import Any, Dict, Optional


class ImageErrorKind(str, Enum):
    UNRECOGNIZED_FORMAT = "unrecognized_format"
    DECODE_FAILED = "decode_failed"
    ENCODE_FAILED = "encode_failed"


class ProviderErrorKind(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    REQUEST_REJECTED = "request_rejected"
    MALFORMED_RESPONSE = "malformed_response"
    EMPTY_RESPONSE = "empty_response"
    TRANSPORT_FAILED = "transport_failed"


class EyerisError(Exception):
    """
    Base class for every failure raised by the analysis pipeline.

    Each subclass names the pipeline stage it belongs to so callers can tell
    which part of the request failed without inspecting the message.
    """

    stage: str = "pipeline"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"stage": self.stage, "message": self.message}


class ImageError(EyerisError):
    """Raised when the input bytes cannot be turned into a transport image."""

    stage = "transcode"

    def __init__(self, kind: ImageErrorKind, original_size: int, detail: Optional[str] = None):
        self.kind = kind
        self.original_size = original_size
        self.detail = detail
        message = f"Image {kind.value.replace('_', ' ')} ({original_size} bytes)"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(kind=self.kind.value, original_size=self.original_size)
        return data


class ProviderError(EyerisError):
    """Raised when a vision backend cannot produce an analysis."""

    stage = "provider"

    def __init__(
        self,
        kind: ProviderErrorKind,
        provider: str,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.kind = kind
        self.provider = provider
        self.detail = detail
        self.status_code = status_code
        self.body = body

        message = f"{provider} {kind.value.replace('_', ' ')}"
        if status_code is not None:
            message = f"{message} (status {status_code})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(kind=self.kind.value, provider=self.provider)
        if self.status_code is not None:
            data["status_code"] = self.status_code
        if self.body is not None:
            data["body"] = self.body
        return data


class ThumbnailError(EyerisError):
    """Thumbnail generation failed. Never escapes the image processor."""

    stage = "thumbnail"
