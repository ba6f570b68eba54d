import asyncio
import time
from typing import Optional

import structlog

from eyeris.core.config import Settings
from eyeris.core.errors import ThumbnailError
from eyeris.core.logging import LoggerRegistry
from eyeris.domain.models import AnalysisResult, ProviderReply, TokenUsage, TranscodedImage
from eyeris.domain.ports.vision_provider import VisionProvider
from eyeris.domain.prompt_spec import PromptFormat, PromptSpec
from eyeris.domain.token_stats import TokenStats
from eyeris.infrastructure.factory import ProviderFactory
from eyeris.processing.decorators import instrument_stage
from eyeris.processing.prompts import build_prompt
from eyeris.processing.transcoder import ImageTranscoder


class ImageProcessor:
    """
    Runs one image through the analysis pipeline.

    Transcoding happens on a worker thread; the provider call and the
    thumbnail are then run side by side. Only the provider outcome decides
    whether the request succeeds. A failed thumbnail is logged and dropped.

    One instance is created at startup and shared by all requests. The only
    state it mutates is its TokenStats, which receives the usage of every
    successful provider reply.
    """

    def __init__(
        self,
        provider: VisionProvider,
        transcoder: Optional[ImageTranscoder] = None,
        token_stats: Optional[TokenStats] = None,
        default_spec: Optional[PromptSpec] = None,
        thumbnails_enabled: bool = True,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ):
        self.provider = provider
        self.transcoder = transcoder or ImageTranscoder()
        self.token_stats = token_stats or TokenStats()
        self.default_spec = default_spec or PromptSpec()
        self.thumbnails_enabled = thumbnails_enabled
        self.logger = logger or LoggerRegistry.get_service_logger("image_processor")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider_name: Optional[str] = None,
        model: Optional[str] = None,
        token_stats: Optional[TokenStats] = None,
    ) -> "ImageProcessor":
        provider = ProviderFactory.create(provider_name or settings.PROVIDER, settings, model=model)
        return cls(
            provider=provider,
            transcoder=ImageTranscoder.from_settings(settings),
            token_stats=token_stats,
            default_spec=PromptSpec(format=PromptFormat(settings.DEFAULT_FORMAT)),
            thumbnails_enabled=settings.THUMBNAIL_ENABLED,
        )

    @instrument_stage("transcode")
    async def _transcode(self, raw: bytes) -> TranscodedImage:
        return await self.transcoder.transcode_async(raw)

    @instrument_stage("analyze")
    async def _analyze(self, image: TranscodedImage, prompt: str) -> ProviderReply:
        return await self.provider.analyze(image.b64, prompt)

    async def _thumbnail(self, raw: bytes) -> Optional[bytes]:
        try:
            return await self.transcoder.thumbnail_async(raw)
        except ThumbnailError as e:
            self.logger.warning("thumbnail.discarded", error=e.message)
            return None

    async def process(self, raw: bytes, spec: Optional[PromptSpec] = None) -> AnalysisResult:
        """
        Transcodes `raw`, asks the provider to analyze it and returns the text
        with token usage.

        Args:
            raw: Image bytes in any format Pillow can sniff.
            spec: Output format and analysis configuration; falls back to the
                  processor's default spec.

        Raises:
            ImageError: If the image cannot be transcoded.
            ProviderError: If the provider cannot produce an analysis.
        """
        start_time = time.perf_counter()
        log = self.logger.bind(provider=self.provider.name, model=self.provider.model, bytes=len(raw))
        log.info("Starting image analysis")

        transcoded = await self._transcode(raw)
        prompt = build_prompt(spec or self.default_spec)

        if self.thumbnails_enabled:
            # Both branches run to completion before the analysis outcome is raised.
            reply, thumbnail = await asyncio.gather(
                self._analyze(transcoded, prompt),
                self._thumbnail(raw),
                return_exceptions=True,
            )
            if isinstance(thumbnail, BaseException):
                log.error("thumbnail.crashed", error=str(thumbnail), exc_info=thumbnail)
                thumbnail = None
            if isinstance(reply, BaseException):
                raise reply
        else:
            reply, thumbnail = await self._analyze(transcoded, prompt), None

        if reply.usage is not None:
            self.token_stats.add(reply.usage)
        usage = reply.usage or TokenUsage()
        log.info(
            "Image analysis completed",
            duration_ms=round((time.perf_counter() - start_time) * 1000),
            thumbnail=thumbnail is not None,
            **usage.model_dump(),
        )

        return AnalysisResult(
            analysis=reply.text,
            token_usage=usage,
            provider=self.provider.name,
            model=self.provider.model,
            thumbnail=thumbnail,
        )

    async def aclose(self) -> None:
        await self.provider.aclose()
