import asyncio
from functools import lru_cache
from typing import Dict, Optional, Tuple

from eyeris.core.config import Settings, get_settings
from eyeris.domain.token_stats import TokenStats
from eyeris.services.image_processor import ImageProcessor


class ProcessorPool:
    """
    Holds one ImageProcessor per (provider, model) pair for the life of the
    process. All of them share a single TokenStats.
    """

    def __init__(self, settings: Settings, token_stats: TokenStats):
        self.settings = settings
        self.token_stats = token_stats
        self._processors: Dict[Tuple[str, str], ImageProcessor] = {}
        self._lock = asyncio.Lock()

    async def get(self, provider_name: Optional[str] = None, model: Optional[str] = None) -> ImageProcessor:
        provider_name = (provider_name or self.settings.PROVIDER).lower()
        key = (provider_name, model or "")
        processor = self._processors.get(key)
        if processor is not None:
            return processor

        async with self._lock:
            processor = self._processors.get(key)
            if processor is None:
                processor = ImageProcessor.from_settings(
                    self.settings,
                    provider_name=provider_name,
                    model=model,
                    token_stats=self.token_stats,
                )
                self._processors[key] = processor
        return processor

    async def aclose(self) -> None:
        for processor in self._processors.values():
            await processor.aclose()
        self._processors.clear()


@lru_cache()
def get_token_stats() -> TokenStats:
    """Get the process-wide token counter."""
    return TokenStats()


@lru_cache()
def get_processor_pool() -> ProcessorPool:
    """Get the processor pool."""
    return ProcessorPool(settings=get_settings(), token_stats=get_token_stats())
