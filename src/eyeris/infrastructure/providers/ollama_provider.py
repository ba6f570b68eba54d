import json
from typing import Optional

import httpx
import structlog

from eyeris.core.errors import ProviderError, ProviderErrorKind
from eyeris.core.logging import LoggerRegistry
from eyeris.domain.models import ProviderReply
from eyeris.domain.ports.vision_provider import VisionProvider


class OllamaProvider(VisionProvider):
    """
    Local inference through an Ollama server's `/api/generate` endpoint.

    Ollama streams its answer as newline-delimited JSON objects even though
    everything arrives in one HTTP response body. Ollama does not report token
    usage on this path.
    """

    name = "ollama"

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "moondream",
        timeout: float = 120.0,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._model = model
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.logger = (logger or LoggerRegistry.get_infrastructure_logger("ollama")).bind(model=model)

    @property
    def model(self) -> str:
        return self._model

    def collect_response(self, body: str) -> str:
        """Concatenates the `response` field of every parsable NDJSON line, in order."""
        parts = []
        for line_number, line in enumerate(body.splitlines(), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                chunk = json.loads(line)
            except json.JSONDecodeError:
                self.logger.debug("ollama.chunk.unparsable", line_number=line_number)
                continue
            text = chunk.get("response") if isinstance(chunk, dict) else None
            if isinstance(text, str):
                parts.append(text)
            else:
                self.logger.debug("ollama.chunk.skipped", line_number=line_number)
        return "".join(parts)

    async def analyze(self, image_b64: str, prompt: str) -> ProviderReply:
        payload = {
            "model": self._model,
            "prompt": prompt,
            "images": [image_b64],
        }

        try:
            response = await self.client.post(f"{self.base_url}/api/generate", json=payload)
        except httpx.RequestError as e:
            self.logger.error("ollama.request.failed", error=str(e))
            raise ProviderError(ProviderErrorKind.TRANSPORT_FAILED, self.name, detail=str(e)) from e

        if not response.is_success:
            self.logger.error(
                "ollama.request.rejected",
                status_code=response.status_code,
                response_text=response.text,
            )
            raise ProviderError(
                ProviderErrorKind.REQUEST_REJECTED,
                self.name,
                status_code=response.status_code,
                body=response.text,
            )

        text = self.collect_response(response.text)
        if not text:
            raise ProviderError(
                ProviderErrorKind.EMPTY_RESPONSE,
                self.name,
                detail="No response text in Ollama output",
                body=response.text,
            )

        self.logger.info("ollama.analysis.finished", response_length=len(text))
        return ProviderReply(text=text, usage=None)

    async def aclose(self) -> None:
        await self.client.aclose()
