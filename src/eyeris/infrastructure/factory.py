from typing import Dict, Optional, Type

from eyeris.core.config import Settings
from eyeris.core.logging import LoggerRegistry
from eyeris.domain.ports.vision_provider import VisionProvider
from eyeris.infrastructure.providers.ollama_provider import OllamaProvider
from eyeris.infrastructure.providers.openai_provider import OpenAIProvider


class ProviderFactory:
    _provider_registry: Dict[str, Type[VisionProvider]] = {
        "ollama": OllamaProvider,
        "openai": OpenAIProvider,
    }

    @classmethod
    def available(cls) -> list:
        return list(cls._provider_registry.keys())

    @classmethod
    def create(
        cls,
        provider_name: str,
        settings: Settings,
        model: Optional[str] = None,
    ) -> VisionProvider:
        """
        Factory method to create a provider bound to its model and endpoint.

        Args:
            provider_name: The registry name of the provider ('ollama', 'openai').
            settings: Application settings supplying endpoints and defaults.
            model: Overrides the provider's configured default model.

        Returns:
            An instantiated provider, ready to be shared across requests.

        Raises:
            ValueError: If the requested provider is not in the registry.
        """
        provider_name = provider_name.lower()
        provider_class = cls._provider_registry.get(provider_name)
        if not provider_class:
            raise ValueError(
                f"Unknown provider: '{provider_name}'. "
                f"Available providers: {cls.available()}"
            )

        logger = LoggerRegistry.get_infrastructure_logger(provider_name)

        if provider_class is OpenAIProvider:
            return OpenAIProvider(
                base_url=settings.OPENAI_BASE_URL,
                model=model or settings.OPENAI_MODEL,
                api_key_env=settings.OPENAI_API_KEY_ENV,
                temperature=settings.OPENAI_TEMPERATURE,
                max_tokens=settings.OPENAI_MAX_TOKENS,
                timeout=settings.HTTP_TIMEOUT,
                logger=logger,
            )

        return OllamaProvider(
            base_url=settings.OLLAMA_BASE_URL,
            model=model or settings.OLLAMA_MODEL,
            timeout=settings.HTTP_TIMEOUT,
            logger=logger,
        )
