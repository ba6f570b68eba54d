import os
from typing import List, Optional

import httpx
import structlog
from pydantic import BaseModel, Field, ValidationError

from eyeris.core.errors import ProviderError, ProviderErrorKind
from eyeris.core.logging import LoggerRegistry
from eyeris.domain.models import ProviderReply, TokenUsage
from eyeris.domain.ports.vision_provider import VisionProvider

SYSTEM_PROMPT = (
    "You are an image analysis assistant. Follow the output instructions in the "
    "user message exactly and base every statement on what is visible in the image."
)


class ChatMessage(BaseModel):
    content: Optional[str] = None


class ChatChoice(BaseModel):
    message: ChatMessage


class ChatUsage(BaseModel):
    prompt_tokens: int = Field(0, ge=0)
    completion_tokens: int = Field(0, ge=0)
    total_tokens: int = Field(0, ge=0)


class ChatCompletionResponse(BaseModel):
    choices: List[ChatChoice]
    usage: Optional[ChatUsage] = None


class OpenAIProvider(VisionProvider):
    """
    Hosted inference through an OpenAI-compatible chat completions endpoint.

    The API key is looked up in the environment on every call, so a missing
    key fails the request instead of the process startup.
    """

    name = "openai"

    def __init__(
        self,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        api_key_env: str = "OPENAI_API_KEY",
        temperature: float = 0.2,
        max_tokens: int = 1000,
        timeout: float = 120.0,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._model = model
        self.api_key_env = api_key_env
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.logger = (logger or LoggerRegistry.get_infrastructure_logger("openai")).bind(model=model)

    @property
    def model(self) -> str:
        return self._model

    def build_payload(self, image_b64: str, prompt: str) -> dict:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/jpeg;base64,{image_b64}"},
                        },
                    ],
                },
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def _malformed(self, detail: str, body: str) -> ProviderError:
        self.logger.error("openai.response.malformed", detail=detail, response_text=body)
        return ProviderError(ProviderErrorKind.MALFORMED_RESPONSE, self.name, detail=detail, body=body)

    async def analyze(self, image_b64: str, prompt: str) -> ProviderReply:
        api_key = os.environ.get(self.api_key_env)
        if not api_key:
            raise ProviderError(
                ProviderErrorKind.MISSING_CREDENTIAL,
                self.name,
                detail=f"{self.api_key_env} is not set",
            )

        try:
            response = await self.client.post(
                f"{self.base_url}/chat/completions",
                json=self.build_payload(image_b64, prompt),
                headers={"Authorization": f"Bearer {api_key}"},
            )
        except httpx.RequestError as e:
            self.logger.error("openai.request.failed", error=str(e))
            raise ProviderError(ProviderErrorKind.TRANSPORT_FAILED, self.name, detail=str(e)) from e

        body = response.text
        if not response.is_success:
            self.logger.error(
                "openai.request.rejected",
                status_code=response.status_code,
                response_text=body,
            )
            raise ProviderError(
                ProviderErrorKind.REQUEST_REJECTED,
                self.name,
                status_code=response.status_code,
                body=body,
            )

        try:
            parsed = ChatCompletionResponse.model_validate_json(body)
        except ValidationError as e:
            raise self._malformed(f"Failed to parse OpenAI response: {e}", body) from e

        if not parsed.choices:
            raise self._malformed("No choices in response", body)

        content = parsed.choices[0].message.content
        if content is None:
            raise self._malformed("First choice has no message content", body)

        usage = None
        if parsed.usage is not None:
            usage = TokenUsage(**parsed.usage.model_dump())
            self.logger.info("Token usage for request", **usage.model_dump())

        return ProviderReply(text=content, usage=usage)

    async def aclose(self) -> None:
        await self.client.aclose()
