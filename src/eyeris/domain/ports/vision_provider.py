from abc import ABC, abstractmethod

from eyeris.domain.models import ProviderReply


class VisionProvider(ABC):
    """
    Port defining the contract for a vision-capable AI backend.

    One subclass exists per backend. Instances are created once at startup
    and shared by all concurrent requests, so implementations must not keep
    per-request state.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The unique name of the provider."""
        pass

    @property
    @abstractmethod
    def model(self) -> str:
        """The model the provider sends requests to."""
        pass

    @abstractmethod
    async def analyze(self, image_b64: str, prompt: str) -> ProviderReply:
        """
        Sends a base64 encoded JPEG and instruction text to the backend.

        Args:
            image_b64: The transcoded image, base64 encoded.
            prompt: Instruction text produced by the prompt builder.

        Returns:
            The analysis text and, when the backend reports it, token usage.

        Raises:
            ProviderError: If the backend cannot produce an analysis.
        """
        pass

    async def aclose(self) -> None:
        """Releases network resources held by the provider."""
        pass
