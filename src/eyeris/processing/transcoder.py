from __future__ import annotations

import asyncio
import io
import time
from typing import Optional, Tuple

import numpy as np
import structlog
from PIL import Image, UnidentifiedImageError

from eyeris.core.config import Settings
from eyeris.core.errors import ImageError, ImageErrorKind, ThumbnailError
from eyeris.core.logging import LoggerRegistry
from eyeris.domain.models import DecodedImage, TranscodedImage
from eyeris.processing.enhance import brighten


def bounded_size(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """
    Returns the size an image should be scaled to so that its longer side is
    at most `max_dimension`, preserving the aspect ratio.
    """
    longest = max(width, height)
    if longest <= max_dimension:
        return width, height
    ratio = max_dimension / longest
    return max(1, int(width * ratio)), max(1, int(height * ratio))


class ImageTranscoder:
    """
    Prepares raw image bytes for a vision provider.

    All public sync methods are CPU-bound. The `*_async` variants push them
    onto a worker thread so the event loop keeps serving other requests.
    """

    def __init__(
        self,
        max_dimension: int = 768,
        jpeg_quality: int = 10,
        thumbnail_size: int = 300,
        thumbnail_quality: int = 85,
        brightness_factor: float = 1.1,
        enhance_workers: Optional[int] = None,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ):
        self.max_dimension = max_dimension
        self.jpeg_quality = jpeg_quality
        self.thumbnail_size = thumbnail_size
        self.thumbnail_quality = thumbnail_quality
        self.brightness_factor = brightness_factor
        self.enhance_workers = enhance_workers
        self.logger = logger or LoggerRegistry.get_processor_logger("transcoder")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageTranscoder":
        return cls(
            max_dimension=settings.MAX_DIMENSION,
            jpeg_quality=settings.ANALYSIS_JPEG_QUALITY,
            thumbnail_size=settings.THUMBNAIL_SIZE,
            thumbnail_quality=settings.THUMBNAIL_JPEG_QUALITY,
            brightness_factor=settings.BRIGHTNESS_FACTOR,
            enhance_workers=settings.ENHANCE_WORKERS,
        )

    def decode(self, raw: bytes) -> DecodedImage:
        """Sniffs the container format and decodes the pixels into RGB."""
        try:
            image = Image.open(io.BytesIO(raw))
        except UnidentifiedImageError as e:
            raise ImageError(ImageErrorKind.UNRECOGNIZED_FORMAT, len(raw), str(e)) from e
        except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
            raise ImageError(ImageErrorKind.DECODE_FAILED, len(raw), str(e)) from e

        source_format = image.format or "UNKNOWN"
        try:
            image.load()
            rgb = image.convert("RGB")
        except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
            raise ImageError(ImageErrorKind.DECODE_FAILED, len(raw), str(e)) from e

        return DecodedImage(image=rgb, source_format=source_format, original_size=len(raw))

    def _encode_jpeg(self, image: Image.Image, quality: int) -> bytes:
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=quality)
        return buffer.getvalue()

    def transcode(self, raw: bytes) -> TranscodedImage:
        """
        Decodes `raw`, bounds its longer side to `max_dimension` using
        Lanczos resampling and re-encodes it as a low quality JPEG.

        Raises:
            ImageError: If the bytes cannot be recognized, decoded or encoded.
        """
        start_time = time.perf_counter()
        decoded = self.decode(raw)

        new_size = bounded_size(decoded.width, decoded.height, self.max_dimension)
        if new_size != (decoded.width, decoded.height):
            resized = decoded.image.resize(new_size, Image.Resampling.LANCZOS)
        else:
            resized = decoded.image

        try:
            data = self._encode_jpeg(resized, self.jpeg_quality)
        except (OSError, ValueError) as e:
            raise ImageError(ImageErrorKind.ENCODE_FAILED, len(raw), str(e)) from e

        transcoded = TranscodedImage(
            data=data,
            width=resized.width,
            height=resized.height,
            original_size=len(raw),
        )

        reduction = 0.0
        if transcoded.original_size:
            reduction = (transcoded.original_size - transcoded.encoded_size) / transcoded.original_size * 100
        self.logger.info(
            "transcode.finished",
            source_format=decoded.source_format,
            original_dimensions=(decoded.width, decoded.height),
            dimensions=(transcoded.width, transcoded.height),
            original_size=transcoded.original_size,
            optimized_size=transcoded.encoded_size,
            reduction_percent=round(reduction, 2),
            duration_ms=round((time.perf_counter() - start_time) * 1000),
        )
        return transcoded

    def thumbnail(self, raw: bytes) -> bytes:
        """
        Builds a brightened, high quality JPEG thumbnail of the original image
        that fits within `thumbnail_size` on both sides.

        Raises:
            ThumbnailError: On any failure; callers treat this as best-effort.
        """
        start_time = time.perf_counter()
        try:
            decoded = self.decode(raw)
            small = decoded.image.copy()
            small.thumbnail((self.thumbnail_size, self.thumbnail_size), Image.Resampling.BILINEAR)

            pixels = np.asarray(small, dtype=np.uint8)
            enhanced = brighten(pixels, self.brightness_factor, self.enhance_workers)
            data = self._encode_jpeg(Image.fromarray(enhanced), self.thumbnail_quality)
        except ImageError as e:
            raise ThumbnailError(f"Could not decode image for thumbnail: {e.message}") from e
        except (OSError, ValueError) as e:
            raise ThumbnailError(f"Thumbnail generation failed: {e}") from e

        self.logger.info(
            "thumbnail.finished",
            dimensions=(small.width, small.height),
            size=len(data),
            duration_ms=round((time.perf_counter() - start_time) * 1000),
        )
        return data

    async def transcode_async(self, raw: bytes) -> TranscodedImage:
        return await asyncio.to_thread(self.transcode, raw)

    async def thumbnail_async(self, raw: bytes) -> bytes:
        return await asyncio.to_thread(self.thumbnail, raw)
